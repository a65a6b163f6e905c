"""
vc-graph - Verifiable Credentials as linked data.

Supports:
- JSON-LD context resolution from an allow-listed, bundled context cache
- Parsing credentials and presentations into immutable RDF graphs
- Structural validation of credentials, presentations and proofs
- Reconstruction of nested credential objects from a graph
"""

from vc_graph.config import get_max_json_size, set_max_json_size
from vc_graph.contexts import ContextCache
from vc_graph.document import GraphBackedDocument
from vc_graph.exceptions import (
    ContextParseFailure,
    GraphParseFailure,
    ImmutableMutationAttempt,
    ShapeViolation,
    UnexpectedTermKind,
    UnknownContext,
    UnsafeResponseError,
    VCGraphError,
)
from vc_graph.framing import credential_to_dict, reconstruct
from vc_graph.graph import Graph, Quad, TermKind
from vc_graph.inspector import CredentialInspector, InspectionResult, inspect_credential
from vc_graph.parser import parse, parse_document, parse_response
from vc_graph.presentation import parse_presentation
from vc_graph.resolver import ContextResolver, NormalizedContext, get_vc_context
from vc_graph.shapes import is_credential, is_presentation

__version__ = "0.1.0"

__all__ = [
    "ContextCache",
    "ContextResolver",
    "NormalizedContext",
    "get_vc_context",
    "Graph",
    "Quad",
    "TermKind",
    "GraphBackedDocument",
    "parse",
    "parse_document",
    "parse_response",
    "parse_presentation",
    "is_credential",
    "is_presentation",
    "reconstruct",
    "credential_to_dict",
    "CredentialInspector",
    "InspectionResult",
    "inspect_credential",
    "set_max_json_size",
    "get_max_json_size",
    "VCGraphError",
    "UnknownContext",
    "ContextParseFailure",
    "GraphParseFailure",
    "UnsafeResponseError",
    "ShapeViolation",
    "ImmutableMutationAttempt",
    "UnexpectedTermKind",
]
