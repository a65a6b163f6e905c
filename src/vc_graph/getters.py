"""
Strict accessors for parsed credentials.

Each getter reads a single-valued relation of a credential out of its graph
and raises ShapeViolation when the relation is missing, repeated, or holds
the wrong kind of term.
"""

from __future__ import annotations

from datetime import datetime

from rdflib import BNode, Literal, URIRef

from vc_graph.document import GraphBackedDocument
from vc_graph.exceptions import ShapeViolation
from vc_graph.graph import TermKind
from vc_graph.shapes import get_single_object, is_date
from vc_graph.vocab import CRED, DEFAULT_GRAPH, SEC


def get_id(vc: GraphBackedDocument) -> str:
    """Return the IRI of a credential.

    Raises:
        ShapeViolation: If the credential has no IRI.
    """
    if vc.id is None:
        raise ShapeViolation("Expected the credential to have an IRI id")
    return vc.id


def _root(vc: GraphBackedDocument) -> URIRef:
    return URIRef(get_id(vc))


def get_issuer(vc: GraphBackedDocument) -> str:
    """Return the issuer IRI of a credential."""
    return str(get_single_object(vc.graph, _root(vc), CRED.issuer, TermKind.IRI))


def get_credential_subject(vc: GraphBackedDocument) -> URIRef:
    """Return the credential subject node."""
    return get_single_object(vc.graph, _root(vc), CRED.credentialSubject, TermKind.IRI)


def _as_datetime(literal: Literal) -> datetime:
    if not is_date(literal):
        raise ShapeViolation(f"Expected [{literal}] to be a valid xsd:dateTime")
    return literal.toPython()


def get_issuance_date(vc: GraphBackedDocument) -> datetime:
    """Return the issuance date of a credential."""
    return _as_datetime(
        get_single_object(vc.graph, _root(vc), CRED.issuanceDate, TermKind.LITERAL)
    )


def get_expiration_date(vc: GraphBackedDocument) -> datetime | None:
    """Return the expiration date of a credential, or None if it has none.

    Raises:
        ShapeViolation: If there is more than one expiration date, or it is
            not a valid date literal.
    """
    quads = list(vc.match(_root(vc), CRED.expirationDate, None, DEFAULT_GRAPH))
    if not quads:
        return None
    if len(quads) != 1:
        raise ShapeViolation(f"Expected 0 or 1 expiration date. Found {len(quads)}.")

    obj = quads[0].object
    if not isinstance(obj, Literal):
        raise ShapeViolation(
            f"Expected expiration date to be a literal. Found [{obj}]."
        )
    return _as_datetime(obj)


def get_proof_graph(vc: GraphBackedDocument) -> URIRef | BNode:
    """Return the label of the named graph holding the credential's proof."""
    return get_single_object(vc.graph, _root(vc), SEC.proof)
