"""
Shape validation over credential graphs.

The ``is_*`` predicates walk a Graph (never the source JSON) and answer
True or False; they never raise for a well-formed graph and node reference.
``get_single_object`` is the strict counterpart used by the getters and the
reconstruction code.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

from rdflib import BNode, Literal, URIRef

from vc_graph.exceptions import ShapeViolation, VCGraphError
from vc_graph.graph import Graph, Node, Quad, TermKind, term_kind
from vc_graph.vocab import CRED, DC, DEFAULT_GRAPH, RDF, SEC, XSD

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")

NODE_KINDS = (TermKind.IRI, TermKind.BLANK_NODE)


def as_node(ref: str | URIRef | BNode) -> URIRef | BNode:
    """Turn a node reference into an rdflib node.

    Strings starting with ``_:`` become blank nodes, other strings IRIs.
    """
    if isinstance(ref, (URIRef, BNode)):
        return ref
    if not isinstance(ref, str):
        raise TypeError(f"Expected a node reference, found {type(ref).__name__}")
    if ref.startswith("_:"):
        return BNode(ref[2:])
    return URIRef(ref)


def is_url(value: Any) -> bool:
    """Return whether a value is an absolute, URL-shaped string."""
    if not isinstance(value, str) or not value or any(c.isspace() for c in value):
        return False
    parsed = urlparse(value)
    return bool(
        parsed.scheme
        and _SCHEME.match(parsed.scheme)
        and (parsed.netloc or parsed.path)
    )


def is_date(literal: Any) -> bool:
    """Return whether a term is an xsd:dateTime literal holding a real date."""
    if not isinstance(literal, Literal) or literal.datatype != XSD.dateTime:
        return False
    return isinstance(literal.toPython(), datetime)


def lenient_single(
    quads: Iterable[Quad],
    kinds: Iterable[TermKind] = NODE_KINDS,
) -> Node | None:
    """Return the object of the only quad, or None.

    None is returned when there are zero or several quads, or when the
    object is not one of the expected kinds.
    """
    found = list(quads)
    if len(found) != 1:
        return None
    obj = found[0].object
    try:
        kind = term_kind(obj)
    except VCGraphError:
        return None
    return obj if kind in tuple(kinds) else None


def get_single_object(
    graph: Graph,
    subject: str | URIRef | BNode,
    predicate: URIRef,
    kind: TermKind | Iterable[TermKind] | None = None,
    required: bool = True,
    graph_label: Node = DEFAULT_GRAPH,
) -> Node | None:
    """Return the single object of ``subject predicate ?o`` in a graph label.

    Args:
        graph: The graph to read.
        subject: The subject node or IRI.
        predicate: The predicate IRI.
        kind: The expected kind(s) of the object. Defaults to an IRI or a
            blank node.
        required: If False, a missing statement yields None instead of an
            error.
        graph_label: The graph label to look in.

    Returns:
        The object, or None if it is absent and not required.

    Raises:
        ShapeViolation: If there is not exactly one statement, or the object
            is of the wrong kind.
    """
    quads = list(graph.match(as_node(subject), predicate, None, graph_label))
    if not quads and not required:
        return None
    if len(quads) != 1:
        raise ShapeViolation(f"Expected exactly one result. Found {len(quads)}.")

    obj = quads[0].object
    if kind is None:
        expected = NODE_KINDS
    elif isinstance(kind, TermKind):
        expected = (kind,)
    else:
        expected = tuple(kind)

    found_kind = term_kind(obj)
    if found_kind not in expected:
        names = " or ".join(k.value for k in expected)
        raise ShapeViolation(f"Expected [{obj}] to be a {names}. Found [{found_kind.value}]")
    return obj


def is_valid_proof(graph: Graph, proof: Node) -> bool:
    """Check the single proof node held in the proof graph labelled ``proof``."""
    return (
        is_date(lenient_single(graph.match(None, DC.created, None, proof), [TermKind.LITERAL]))
        and lenient_single(graph.match(None, SEC.proofValue, None, proof), [TermKind.LITERAL])
        is not None
        and lenient_single(graph.match(None, SEC.proofPurpose, None, proof), [TermKind.IRI])
        is not None
        and lenient_single(
            graph.match(None, SEC.verificationMethod, None, proof), [TermKind.IRI]
        )
        is not None
        and lenient_single(graph.match(None, RDF.type, None, proof), [TermKind.IRI])
        is not None
    )


def _has_valid_expiration(graph: Graph, node: URIRef | BNode) -> bool:
    quads = list(graph.match(node, CRED.expirationDate, None, DEFAULT_GRAPH))
    if not quads:
        return True
    return is_date(lenient_single(quads, [TermKind.LITERAL]))


def is_credential(graph: Graph, subject: str | URIRef | BNode) -> bool:
    """Check that ``subject`` is a structurally valid Verifiable Credential.

    Requires, in the default graph: one proof reference whose proof graph
    passes ``is_valid_proof``, one IRI issuer, one xsd:dateTime issuance
    date, at most one xsd:dateTime expiration date, one IRI credential
    subject, and an ``rdf:type cred:VerifiableCredential`` statement.
    """
    try:
        node = as_node(subject)
        proof = lenient_single(graph.match(node, SEC.proof, None, DEFAULT_GRAPH))
        return (
            proof is not None
            and is_valid_proof(graph, proof)
            and lenient_single(
                graph.match(node, CRED.issuer, None, DEFAULT_GRAPH), [TermKind.IRI]
            )
            is not None
            and is_date(
                lenient_single(
                    graph.match(node, CRED.issuanceDate, None, DEFAULT_GRAPH),
                    [TermKind.LITERAL],
                )
            )
            and _has_valid_expiration(graph, node)
            and lenient_single(
                graph.match(node, CRED.credentialSubject, None, DEFAULT_GRAPH),
                [TermKind.IRI],
            )
            is not None
            and graph.has(Quad(node, RDF.type, CRED.VerifiableCredential, DEFAULT_GRAPH))
        )
    except (VCGraphError, TypeError):
        return False


def is_presentation(
    graph: Graph,
    subject: str | URIRef | BNode,
    strict_type: bool = False,
) -> bool:
    """Check that ``subject`` is a structurally valid Verifiable Presentation.

    Every linked credential must be an IRI that passes ``is_credential``. A
    holder, if any, must be a single URL-shaped IRI. By default any
    ``rdf:type`` statement satisfies the type check; with ``strict_type``
    the subject must be typed ``cred:VerifiablePresentation``.
    """
    try:
        node = as_node(subject)
        for obj in graph.objects(node, CRED.verifiableCredential):
            if not isinstance(obj, URIRef) or not is_credential(graph, obj):
                return False

        holders = graph.objects(node, CRED.holder)
        if holders and (
            len(holders) != 1
            or not isinstance(holders[0], URIRef)
            or not is_url(str(holders[0]))
        ):
            return False

        if strict_type:
            return graph.has(
                Quad(node, RDF.type, CRED.VerifiablePresentation, DEFAULT_GRAPH)
            )
        return len(graph.objects(node, RDF.type)) >= 1
    except (VCGraphError, TypeError):
        return False


def _parses_as_datetime(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def is_verifiable_credential_object(data: Any) -> bool:
    """Check the plain JSON shape of a credential, before any graph parsing."""
    if not isinstance(data, Mapping):
        return False
    subject = data.get("credentialSubject")
    proof = data.get("proof")
    return (
        isinstance(data.get("id"), str)
        and isinstance(data.get("type"), list)
        and isinstance(data.get("issuer"), str)
        and _parses_as_datetime(data.get("issuanceDate"))
        and isinstance(subject, Mapping)
        and isinstance(subject.get("id"), str)
        and isinstance(proof, Mapping)
        and _parses_as_datetime(proof.get("created"))
        and all(
            isinstance(proof.get(key), str)
            for key in ("proofPurpose", "proofValue", "type", "verificationMethod")
        )
    )


def is_verifiable_presentation_object(data: Any) -> bool:
    """Check the plain JSON shape of a presentation, before any graph parsing."""
    if not isinstance(data, Mapping):
        return False
    if not isinstance(data.get("type"), (list, str)):
        return False

    credentials = data.get("verifiableCredential")
    if credentials is not None and not (
        isinstance(credentials, list)
        and all(is_verifiable_credential_object(vc) for vc in credentials)
    ):
        return False

    if "holder" in data and not is_url(data["holder"]):
        return False
    return True
