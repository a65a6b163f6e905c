"""
In-memory graph of statements.

A Graph is a frozen set of quads built once from a parse and read many times,
backed by indexed rdflib graphs.
It has no mutation methods; attribute assignment raises
ImmutableMutationAttempt, and so does any attempt to call add/delete style
methods on it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

import rdflib
from rdflib import BNode, Literal, URIRef

from vc_graph.exceptions import ImmutableMutationAttempt, UnexpectedTermKind
from vc_graph.vocab import DEFAULT_GRAPH

Node = Union[URIRef, BNode, Literal]

# Method names a mutable dataset would expose.
MUTATORS = frozenset({"add", "delete", "remove", "discard", "clear", "update"})


class TermKind(Enum):
    """The closed set of node kinds a statement may hold."""

    IRI = "IRI"
    BLANK_NODE = "blank node"
    LITERAL = "literal"


def term_kind(term: Any) -> TermKind:
    """Classify an RDF term.

    Raises:
        UnexpectedTermKind: If the term is not an IRI, blank node or literal.
    """
    if isinstance(term, URIRef):
        return TermKind.IRI
    if isinstance(term, BNode):
        return TermKind.BLANK_NODE
    if isinstance(term, Literal):
        return TermKind.LITERAL
    raise UnexpectedTermKind(
        f"Unexpected term kind [{type(term).__name__}] for value [{term!r}]"
    )


@dataclass(frozen=True)
class Quad:
    """A subject-predicate-object statement inside a graph label."""

    subject: URIRef | BNode
    predicate: URIRef
    object: Node
    graph: URIRef | BNode = DEFAULT_GRAPH

    def __iter__(self) -> Iterator[Node]:
        return iter((self.subject, self.predicate, self.object, self.graph))


def _reject_mutation(owner: object, name: str) -> ImmutableMutationAttempt:
    return ImmutableMutationAttempt(
        f"{type(owner).__name__} is immutable: cannot {name}"
    )


class Graph:
    """An immutable set of quads.

    Statements are held in one indexed ``rdflib.Graph`` per graph label, so
    pattern lookups do not scan the whole graph. The rdflib graphs are
    private; this class exposes no way to change them. Duplicate quads
    collapse, and results follow first-insertion order so that multi-valued
    properties come back in document order.
    """

    __slots__ = ("_positions", "_graphs")

    def __init__(self, quads: Iterable[Quad] = ()) -> None:
        """Build the graph.

        Raises:
            UnexpectedTermKind: If a quad holds something other than an IRI,
                blank node or literal.
        """
        positions: dict[Quad, int] = {}
        graphs: dict[Node, rdflib.Graph] = {}
        for quad in quads:
            if quad in positions:
                continue
            for term in (quad.subject, quad.predicate, quad.object, quad.graph):
                term_kind(term)
            positions[quad] = len(positions)
            store = graphs.get(quad.graph)
            if store is None:
                store = graphs[quad.graph] = rdflib.Graph(identifier=quad.graph)
            store.add((quad.subject, quad.predicate, quad.object))
        object.__setattr__(self, "_positions", positions)
        object.__setattr__(self, "_graphs", graphs)

    def __setattr__(self, name: str, value: Any) -> None:
        raise _reject_mutation(self, f"set attribute {name!r}")

    def __delattr__(self, name: str) -> None:
        raise _reject_mutation(self, f"delete attribute {name!r}")

    def __getattr__(self, name: str) -> Any:
        if name in MUTATORS:
            raise _reject_mutation(self, name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def match(
        self,
        subject: Node | None = None,
        predicate: Node | None = None,
        object: Node | None = None,
        graph: Node | None = None,
    ) -> Iterator[Quad]:
        """Yield the quads matching a pattern; None matches anything.

        Pass ``DEFAULT_GRAPH`` as ``graph`` to restrict the match to
        statements outside named graphs.
        """
        if graph is None:
            stores = self._graphs.items()
        elif graph in self._graphs:
            stores = [(graph, self._graphs[graph])]
        else:
            return iter(())

        found = [
            Quad(s, p, o, label)
            for label, store in stores
            for s, p, o in store.triples((subject, predicate, object))
        ]
        found.sort(key=self._positions.__getitem__)
        return iter(found)

    def has(self, quad: Quad) -> bool:
        """Return whether the quad is in the graph."""
        store = self._graphs.get(quad.graph)
        return store is not None and (quad.subject, quad.predicate, quad.object) in store

    def __contains__(self, quad: object) -> bool:
        return isinstance(quad, Quad) and self.has(quad)

    @property
    def size(self) -> int:
        """Number of distinct quads."""
        return sum(len(store) for store in self._graphs.values())

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[Quad]:
        return iter(self._positions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return self._positions.keys() == other._positions.keys()

    def __hash__(self) -> int:
        return hash(frozenset(self._positions))

    def __repr__(self) -> str:
        return f"<Graph size={self.size}>"

    def union(self, *others: Iterable[Quad]) -> Graph:
        """Return a new graph holding the quads of this graph and the others."""
        quads = list(self._positions)
        for other in others:
            quads.extend(other)
        return Graph(quads)

    def __or__(self, other: Graph) -> Graph:
        if not isinstance(other, Graph):
            return NotImplemented
        return self.union(other)

    def objects(
        self,
        subject: Node | None = None,
        predicate: Node | None = None,
        graph: Node | None = DEFAULT_GRAPH,
    ) -> list[Node]:
        """Return the objects of matching statements, in order."""
        return [quad.object for quad in self.match(subject, predicate, None, graph)]

    def subjects(
        self,
        predicate: Node | None = None,
        object: Node | None = None,
        graph: Node | None = DEFAULT_GRAPH,
    ) -> list[URIRef | BNode]:
        """Return the distinct subjects of matching statements, in order."""
        found = (quad.subject for quad in self.match(None, predicate, object, graph))
        return list(dict.fromkeys(found))
