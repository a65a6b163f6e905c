"""
JSON-LD to graph parsing.

Documents are converted to RDF with pyld, using a document loader backed by
the context cache, and the resulting dataset is turned into an immutable
Graph of rdflib terms. Blank node labels are replaced by fresh rdflib blank
nodes on every call, so graphs from different parses never share a blank
node by accident.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin

import httpx
from pyld import jsonld
from rdflib import BNode, Literal, URIRef

from vc_graph.config import check_payload_size, check_response_size
from vc_graph.contexts import ContextCache, default_context_cache
from vc_graph.document import GraphBackedDocument
from vc_graph.exceptions import GraphParseFailure, UnexpectedTermKind
from vc_graph.graph import Graph, Quad
from vc_graph.resolver import find_library_error
from vc_graph.vocab import DEFAULT_GRAPH, RDF

logger = logging.getLogger(__name__)


def load_json(payload: bytes | str) -> Any:
    """Decode a raw JSON payload after checking its size.

    Raises:
        GraphParseFailure: If the payload is empty or not valid JSON.
        UnsafeResponseError: If the payload is larger than the configured maximum.
    """
    raw = payload.encode("utf-8") if isinstance(payload, str) else payload
    if not raw or not raw.strip():
        raise GraphParseFailure("no content to parse")
    check_payload_size(len(raw))

    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise GraphParseFailure(f"Invalid JSON-LD: {e}") from e


def _term(node: Mapping[str, Any], blank_nodes: dict[str, BNode]) -> URIRef | BNode | Literal:
    """Convert a pyld RDF term to an rdflib term."""
    kind = node.get("type")
    value = node.get("value")
    if kind == "IRI":
        return URIRef(value)
    if kind == "blank node":
        return _blank(value, blank_nodes)
    if kind == "literal":
        # Keep the lexical form as written; distinct lexical forms are distinct statements.
        language = node.get("language")
        if language:
            return Literal(value, lang=language, normalize=False)
        datatype = node.get("datatype")
        return Literal(
            value, datatype=URIRef(datatype) if datatype else None, normalize=False
        )
    raise UnexpectedTermKind(f"Unexpected term kind [{kind}] for value [{value}]")


def _blank(label: str, blank_nodes: dict[str, BNode]) -> BNode:
    node = blank_nodes.get(label)
    if node is None:
        node = blank_nodes[label] = BNode()
    return node


def _graph_label(name: str, blank_nodes: dict[str, BNode]) -> URIRef | BNode:
    if name == "@default":
        return DEFAULT_GRAPH
    if name.startswith("_:"):
        return _blank(name, blank_nodes)
    return URIRef(name)


def dataset_to_graph(dataset: Mapping[str, list[Mapping[str, Any]]]) -> Graph:
    """Build a Graph from the dataset returned by ``pyld.jsonld.to_rdf``."""
    blank_nodes: dict[str, BNode] = {}
    quads = []
    for name, triples in dataset.items():
        label = _graph_label(name, blank_nodes)
        for triple in triples:
            quads.append(
                Quad(
                    _term(triple["subject"], blank_nodes),
                    _term(triple["predicate"], blank_nodes),
                    _term(triple["object"], blank_nodes),
                    label,
                )
            )
    return Graph(quads)


def parse(
    document: bytes | str | Mapping[str, Any] | list[Any],
    *,
    base_iri: str | None = None,
    contexts: Mapping[str, Any] | None = None,
    allow_remote_context_fetch: bool | None = None,
    cache: ContextCache | None = None,
) -> Graph:
    """Parse a JSON-LD document into a graph.

    Args:
        document: A decoded JSON-LD document, or the raw JSON payload.
        base_iri: Base IRI for relative identifiers.
        contexts: Context documents keyed by IRI, made available to this
            parse (and registered in the cache).
        allow_remote_context_fetch: Whether unknown contexts may be fetched.
            Defaults to the cache-wide setting.
        cache: Context cache to load contexts from.

    Returns:
        The parsed graph.

    Raises:
        GraphParseFailure: If the payload is empty, not JSON, or not valid
            JSON-LD.
        UnknownContext: If the document references a context that is not
            allow-listed.
    """
    if isinstance(document, (bytes, bytearray, str)):
        document = load_json(bytes(document) if isinstance(document, bytearray) else document)
    if not document:
        raise GraphParseFailure("no content to parse")

    cache = cache or default_context_cache()
    options = cache.pyld_options(allow_remote_context_fetch, contexts, base=base_iri)
    try:
        dataset = jsonld.to_rdf(document, options)
    except jsonld.JsonLdError as e:
        inner = find_library_error(e)
        if inner is not None:
            raise inner from e
        raise GraphParseFailure(f"Could not parse JSON-LD document: {e}") from e

    graph = dataset_to_graph(dataset)
    logger.debug("Parsed JSON-LD document into %d statements", graph.size)
    return graph


def parse_document(
    document: bytes | str | Mapping[str, Any],
    *,
    base_iri: str | None = None,
    contexts: Mapping[str, Any] | None = None,
    allow_remote_context_fetch: bool | None = None,
    cache: ContextCache | None = None,
) -> GraphBackedDocument:
    """Parse a JSON-LD document into a graph-backed document.

    The root id is the document's top-level ``id``; when it is missing the
    single subject typed in the default graph is used instead.

    Raises:
        GraphParseFailure: If the document cannot be parsed or is not a
            JSON object.
    """
    if isinstance(document, (bytes, bytearray, str)):
        document = load_json(bytes(document) if isinstance(document, bytearray) else document)
    if not isinstance(document, Mapping):
        raise GraphParseFailure(
            f"Expected a JSON-LD object, found {type(document).__name__}"
        )

    graph = parse(
        document,
        base_iri=base_iri,
        contexts=contexts,
        allow_remote_context_fetch=allow_remote_context_fetch,
        cache=cache,
    )

    root = document.get("id", document.get("@id"))
    if isinstance(root, str) and base_iri:
        root = urljoin(base_iri, root)
    if root is None:
        typed = graph.subjects(RDF.type, None)
        if len(typed) == 1:
            root = typed[0]
    return GraphBackedDocument(graph, root, document)


def parse_response(
    response: httpx.Response,
    *,
    base_iri: str | None = None,
    contexts: Mapping[str, Any] | None = None,
    allow_remote_context_fetch: bool | None = None,
    cache: ContextCache | None = None,
) -> GraphBackedDocument:
    """Parse the body of an HTTP response into a graph-backed document.

    The declared Content-Length is checked before the body is read, so an
    oversized streamed response is rejected without being buffered.

    Raises:
        UnsafeResponseError: If the response is too large or has no length
            while a maximum is configured.
        GraphParseFailure: If the body cannot be parsed.
    """
    check_response_size(response)
    return parse_document(
        response.read(),
        base_iri=base_iri,
        contexts=contexts,
        allow_remote_context_fetch=allow_remote_context_fetch,
        cache=cache,
    )
