"""Vocabularies used to read credentials and presentations out of a graph."""

from __future__ import annotations

from rdflib import RDF, XSD, Namespace
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID

CRED = Namespace("https://www.w3.org/2018/credentials#")
SEC = Namespace("https://w3id.org/security#")
DC = Namespace("http://purl.org/dc/terms/")

# Graph label of statements that are not inside a named graph.
DEFAULT_GRAPH = DATASET_DEFAULT_GRAPH_ID

CREDENTIALS_V1_URL = "https://www.w3.org/2018/credentials/v1"

__all__ = [
    "CRED",
    "SEC",
    "DC",
    "XSD",
    "RDF",
    "DEFAULT_GRAPH",
    "CREDENTIALS_V1_URL",
]
