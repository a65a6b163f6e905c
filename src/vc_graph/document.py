"""Graph-backed documents."""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from typing import Any

from rdflib import BNode, URIRef

from vc_graph.exceptions import ImmutableMutationAttempt
from vc_graph.graph import MUTATORS, Graph, Node, Quad


class GraphBackedDocument(Mapping[str, Any]):
    """A read-only view over a parsed graph and its document's top-level fields.

    Indexing returns the plain JSON fields (``doc["id"]``), while ``match``,
    ``has`` and ``size`` query the graph. Nothing about the document can be
    changed once it is built.

    Attributes:
        graph: The parsed graph.
        root: The root node of the document, if known.
        credentials: Graph-backed documents for embedded credentials.
    """

    def __init__(
        self,
        graph: Graph,
        id: str | URIRef | BNode | None,
        fields: Mapping[str, Any] | None = None,
        credentials: tuple[GraphBackedDocument, ...] = (),
    ) -> None:
        if isinstance(id, BNode):
            root: URIRef | BNode | None = id
            plain_id = None
        elif id is not None:
            root = URIRef(str(id))
            plain_id = str(id)
        else:
            root = None
            plain_id = None

        fields = copy.deepcopy(dict(fields or {}))
        if plain_id is not None:
            fields["id"] = plain_id

        object.__setattr__(self, "graph", graph)
        object.__setattr__(self, "root", root)
        object.__setattr__(self, "credentials", tuple(credentials))
        object.__setattr__(self, "_fields", fields)

    def __setattr__(self, name: str, value: Any) -> None:
        raise ImmutableMutationAttempt(
            f"GraphBackedDocument is immutable: cannot set attribute {name!r}"
        )

    def __delattr__(self, name: str) -> None:
        raise ImmutableMutationAttempt(
            f"GraphBackedDocument is immutable: cannot delete attribute {name!r}"
        )

    def __getattr__(self, name: str) -> Any:
        if name in MUTATORS:
            raise ImmutableMutationAttempt(f"GraphBackedDocument is immutable: cannot {name}")
        raise AttributeError(f"'GraphBackedDocument' object has no attribute {name!r}")

    @property
    def id(self) -> str | None:
        """The document IRI, or None for an anonymous document."""
        return self._fields.get("id")

    def __getitem__(self, key: str) -> Any:
        return copy.deepcopy(self._fields[key])

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"<GraphBackedDocument id={self.id!r} size={self.size}>"

    def match(
        self,
        subject: Node | None = None,
        predicate: Node | None = None,
        object: Node | None = None,
        graph: Node | None = None,
    ) -> Iterator[Quad]:
        """Yield the quads of the underlying graph matching a pattern."""
        return self.graph.match(subject, predicate, object, graph)

    def has(self, quad: Quad) -> bool:
        """Return whether the underlying graph holds the quad."""
        return self.graph.has(quad)

    @property
    def size(self) -> int:
        """Number of statements in the underlying graph."""
        return self.graph.size

    def to_dict(self) -> dict[str, Any]:
        """Return the plain document fields, without the graph surface."""
        return copy.deepcopy(self._fields)
