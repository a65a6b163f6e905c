"""
Verifiable Presentation conversion.

A presentation is parsed in two steps: its shell (everything except the
embedded credentials) and then each embedded credential on its own. The
credentials are converted in sequential chunks, each chunk running its
conversions concurrently, so a very large presentation never starts an
unbounded number of parses at once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, TypeVar
from urllib.parse import urljoin

from rdflib import BNode, URIRef

from vc_graph.contexts import ContextCache
from vc_graph.document import GraphBackedDocument
from vc_graph.exceptions import ConfigurationError, GraphParseFailure, ShapeViolation
from vc_graph.framing import credential_to_dict
from vc_graph.graph import Graph, Quad
from vc_graph.parser import load_json, parse, parse_document
from vc_graph.resolver import ContextResolver, default_context_resolver
from vc_graph.shapes import is_credential, is_presentation, is_url
from vc_graph.vocab import CRED, DEFAULT_GRAPH, RDF

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100

T = TypeVar("T")
R = TypeVar("R")


def convert_in_chunks(
    items: Sequence[T],
    convert: Callable[[T], R],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[R]:
    """Apply ``convert`` to every item, at most ``chunk_size`` at a time.

    Chunks run one after the other. Inside a chunk all conversions run
    concurrently; the first failure is raised once the conversions already
    running have finished, and the remaining ones are cancelled.

    Returns:
        The results, in the order of ``items``.
    """
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ConfigurationError("chunk_size must be a positive integer.")

    results: list[R] = []
    for start in range(0, len(items), chunk_size):
        chunk = items[start : start + chunk_size]
        executor = ThreadPoolExecutor(max_workers=len(chunk))
        try:
            futures = [executor.submit(convert, item) for item in chunk]
            for future in as_completed(futures):
                future.result()
            results.extend(future.result() for future in futures)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
    return results


def _find_root(data: Mapping[str, Any], graph: Graph, base_iri: str | None) -> URIRef | BNode:
    """Find the presentation node of a parsed presentation shell."""
    if isinstance(data.get("id"), str):
        return URIRef(urljoin(base_iri, data["id"]) if base_iri else data["id"])

    typed = graph.subjects(RDF.type, CRED.VerifiablePresentation)
    if len(typed) == 1:
        return typed[0]

    subjects = list(dict.fromkeys(quad.subject for quad in graph.match(graph=DEFAULT_GRAPH)))
    if len(subjects) == 1:
        return subjects[0]
    raise ShapeViolation(
        f"Could not identify the presentation node. Found {len(subjects)} candidates."
    )


def parse_presentation(
    data: bytes | str | Mapping[str, Any],
    *,
    base_iri: str | None = None,
    contexts: Mapping[str, Any] | None = None,
    allow_remote_context_fetch: bool | None = None,
    cache: ContextCache | None = None,
    resolver: ContextResolver | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    strict_type: bool = False,
) -> GraphBackedDocument:
    """Parse and validate a Verifiable Presentation.

    Args:
        data: The presentation, decoded or as a raw JSON payload.
        base_iri: Base IRI for relative identifiers.
        contexts: Context documents keyed by IRI for this parse.
        allow_remote_context_fetch: Whether unknown contexts may be fetched.
        cache: Context cache to load contexts from.
        resolver: Resolver used to compact the embedded credentials.
        chunk_size: Largest number of credentials converted at once.
        strict_type: Require the presentation to be typed
            ``VerifiablePresentation``.

    Returns:
        A graph-backed document whose graph links the presentation to each
        of its credentials, whose ``verifiableCredential`` field holds the
        reconstructed credentials, and whose ``credentials`` are the parsed
        credential documents.

    Raises:
        GraphParseFailure: If the presentation or a credential cannot be parsed.
        ShapeViolation: If the holder is not a URL, or a credential or the
            presentation is not structurally valid.
    """
    if isinstance(data, (bytes, str)):
        data = load_json(data)
    if not isinstance(data, Mapping):
        raise GraphParseFailure(f"Expected a JSON-LD object, found {type(data).__name__}")

    holder = data.get("holder")
    if holder is not None and not is_url(holder):
        raise ShapeViolation(f"The presentation holder [{holder}] is not a URL")

    credentials = data.get("verifiableCredential", [])
    if isinstance(credentials, Mapping):
        credentials = [credentials]
    if not isinstance(credentials, list):
        raise ShapeViolation("Expected verifiableCredential to be a list of credentials")

    parse_options: dict[str, Any] = {
        "base_iri": base_iri,
        "contexts": contexts,
        "allow_remote_context_fetch": allow_remote_context_fetch,
        "cache": cache,
    }
    if resolver is None:
        resolver = ContextResolver(cache) if cache is not None else default_context_resolver()

    shell = {key: value for key, value in data.items() if key != "verifiableCredential"}
    shell_graph = parse(shell, **parse_options)
    root = _find_root(shell, shell_graph, base_iri)

    def convert(item: Any) -> tuple[GraphBackedDocument, dict[str, Any]]:
        if not isinstance(item, Mapping):
            raise ShapeViolation("Expected each verifiable credential to be a JSON object")
        vc = parse_document(item, **parse_options)
        if vc.id is None or not is_credential(vc.graph, vc.id):
            raise ShapeViolation(f"[{vc.id}] is not a valid Verifiable Credential")
        return vc, credential_to_dict(vc, resolver=resolver)

    converted = convert_in_chunks(credentials, convert, chunk_size)
    logger.debug("Converted %d credentials of presentation %s", len(converted), root)

    documents = tuple(vc for vc, _ in converted)
    links = [Quad(root, CRED.verifiableCredential, URIRef(vc.id)) for vc in documents]
    graph = shell_graph.union(*(vc.graph for vc in documents), links)

    if not is_presentation(graph, root, strict_type=strict_type):
        raise ShapeViolation(f"[{root}] is not a valid Verifiable Presentation")

    fields = dict(shell)
    if "verifiableCredential" in data:
        fields["verifiableCredential"] = [legacy for _, legacy in converted]
    return GraphBackedDocument(graph, root, fields, credentials=documents)
