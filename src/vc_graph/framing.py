"""
Reconstruction of nested objects from a graph.

Callers that still expect the legacy nested-JSON shape of a credential get
it from here: ``reconstruct`` rebuilds the properties of one node, following
blank nodes recursively, and ``credential_to_dict`` assembles a whole
credential around it.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Any

from rdflib import BNode, Literal, URIRef

from vc_graph.document import GraphBackedDocument
from vc_graph.exceptions import ShapeViolation, UnexpectedTermKind
from vc_graph.getters import (
    get_credential_subject,
    get_expiration_date,
    get_id,
    get_issuer,
    get_proof_graph,
)
from vc_graph.graph import Graph, Node, TermKind, term_kind
from vc_graph.resolver import ContextResolver, NormalizedContext, default_context_resolver
from vc_graph.shapes import as_node, get_single_object, is_date
from vc_graph.vocab import CRED, CREDENTIALS_V1_URL, DC, DEFAULT_GRAPH, RDF, SEC, XSD

logger = logging.getLogger(__name__)

# Only predicates that compact to a plain term become keys.
SIMPLE_TERM = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

INTEGER_TYPES = frozenset(
    {
        XSD.integer,
        XSD.int,
        XSD.long,
        XSD.short,
        XSD.byte,
        XSD.nonNegativeInteger,
        XSD.nonPositiveInteger,
        XSD.positiveInteger,
        XSD.negativeInteger,
        XSD.unsignedLong,
        XSD.unsignedInt,
        XSD.unsignedShort,
        XSD.unsignedByte,
    }
)
FLOAT_TYPES = frozenset({XSD.double, XSD.float, XSD.decimal})


def literal_to_value(literal: Literal) -> Any:
    """Convert a literal to a plain value according to its datatype.

    Booleans and numbers become Python values; language-tagged strings,
    dates, unknown datatypes and ill-typed values keep their lexical form.
    """
    if literal.language is not None or literal.datatype is None:
        return str(literal)

    value = literal.toPython()
    if literal.datatype == XSD.boolean and isinstance(value, bool):
        return value
    if literal.datatype in INTEGER_TYPES and isinstance(value, int) and not isinstance(value, bool):
        return value
    if literal.datatype in FLOAT_TYPES and isinstance(value, (int, float, Decimal)):
        return float(value)
    return str(literal)


def _key(predicate: Node, context: NormalizedContext) -> str | None:
    if not isinstance(predicate, URIRef):
        raise UnexpectedTermKind(f"Predicate [{predicate}] must be an IRI")
    if predicate == RDF.type:
        return context.keyword_alias("@type")
    compact = context.compact(str(predicate))
    return compact if SIMPLE_TERM.match(compact) else None


def _value(
    graph: Graph,
    obj: Node,
    context: NormalizedContext,
    path: frozenset[BNode],
) -> Any:
    kind = term_kind(obj)
    if kind is TermKind.BLANK_NODE:
        if obj in path:
            logger.debug("Blank node %s already on the current path, using a placeholder", obj)
            return {}
        return _properties(graph, obj, context, path)
    if kind is TermKind.IRI:
        return context.compact(str(obj))
    return literal_to_value(obj)


def _properties(
    graph: Graph,
    node: URIRef | BNode,
    context: NormalizedContext,
    path: frozenset[BNode],
) -> dict[str, Any]:
    if isinstance(node, BNode):
        path = path | {node}

    result: dict[str, Any] = {}
    predicates = dict.fromkeys(quad.predicate for quad in graph.match(node, None, None, DEFAULT_GRAPH))
    for predicate in predicates:
        key = _key(predicate, context)
        if key is None:
            continue
        values = [
            value
            for value in (
                _value(graph, obj, context, path) for obj in graph.objects(node, predicate)
            )
            if value != {}
        ]
        if not values:
            continue
        result[key] = values[0] if len(values) == 1 else values
    return result


def reconstruct(
    graph: Graph,
    root: str | URIRef | BNode,
    context: NormalizedContext,
) -> dict[str, Any]:
    """Rebuild the nested object rooted at a node.

    Outgoing predicates of the node (in the default graph) become keys,
    compacted with ``context``; ``rdf:type`` becomes the alias of ``@type``.
    Predicates that do not compact to a plain term are skipped. IRI values
    are compacted, literals converted with ``literal_to_value`` and blank
    nodes reconstructed recursively. A blank node met again on the current
    path becomes an empty object, and empty objects are then dropped, so
    cyclic graphs always terminate.

    Args:
        graph: The graph to read.
        root: The node to start from.
        context: Context used to compact IRIs into terms.

    Returns:
        The reconstructed object. A single value is kept bare, several values
        become a list.

    Raises:
        UnexpectedTermKind: If a statement holds a term that is not an IRI,
            blank node or literal.
    """
    return _properties(graph, as_node(root), context, frozenset())


def _lexical_date(literal: Literal) -> str:
    if not is_date(literal):
        raise ShapeViolation(f"Expected [{literal}] to be a valid xsd:dateTime")
    return str(literal)


def _proof_to_dict(
    graph: Graph,
    proof_graph: URIRef | BNode,
    context: NormalizedContext,
) -> dict[str, Any]:
    typed = list(graph.match(None, RDF.type, None, proof_graph))
    if len(typed) != 1:
        raise ShapeViolation(f"Expected exactly one result. Found {len(typed)}.")
    proof = typed[0].subject

    def single(predicate: URIRef, kind: TermKind) -> Node:
        return get_single_object(graph, proof, predicate, kind, graph_label=proof_graph)

    return {
        "type": context.compact(str(single(RDF.type, TermKind.IRI))),
        "created": _lexical_date(single(DC.created, TermKind.LITERAL)),
        "proofPurpose": context.compact(str(single(SEC.proofPurpose, TermKind.IRI))),
        "proofValue": str(single(SEC.proofValue, TermKind.LITERAL)),
        "verificationMethod": str(single(SEC.verificationMethod, TermKind.IRI)),
    }


def credential_to_dict(
    vc: GraphBackedDocument,
    context: NormalizedContext | None = None,
    resolver: ContextResolver | None = None,
) -> dict[str, Any]:
    """Assemble the legacy nested-JSON shape of a parsed credential.

    Args:
        vc: The parsed credential.
        context: Context used for compaction. Resolved from the credential's
            own ``@context`` if not provided.
        resolver: Resolver used when ``context`` is not provided.

    Returns:
        A plain dict with ``@context``, ``id``, ``type``, ``issuer``,
        ``issuanceDate``, optional ``expirationDate``, ``credentialSubject``
        and ``proof``.

    Raises:
        ShapeViolation: If a required relation is missing, repeated or of
            the wrong kind.
    """
    document_context = vc.get("@context", [CREDENTIALS_V1_URL])
    if context is None:
        context = (resolver or default_context_resolver()).resolve(document_context)

    graph = vc.graph
    root = URIRef(get_id(vc))

    types = []
    for value in graph.objects(root, RDF.type):
        if not isinstance(value, URIRef):
            raise ShapeViolation(
                f"Expected all credential types to be IRIs. Found [{value}]"
            )
        types.append(context.compact(str(value)))
    if CRED.VerifiableCredential not in graph.objects(root, RDF.type):
        raise ShapeViolation(f"[{root}] is not typed as a VerifiableCredential")

    subject = get_credential_subject(vc)
    issuance_date = get_single_object(graph, root, CRED.issuanceDate, TermKind.LITERAL)

    data: dict[str, Any] = {
        "@context": document_context,
        "id": str(root),
        "type": types,
        "issuer": get_issuer(vc),
        "issuanceDate": _lexical_date(issuance_date),
    }
    if get_expiration_date(vc) is not None:
        expiration = get_single_object(graph, root, CRED.expirationDate, TermKind.LITERAL)
        data["expirationDate"] = str(expiration)

    data["credentialSubject"] = {**reconstruct(graph, subject, context), "id": str(subject)}
    data["proof"] = _proof_to_dict(graph, get_proof_graph(vc), context)
    return data
