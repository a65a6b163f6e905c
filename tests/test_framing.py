"""Tests for nested-object reconstruction."""

import pytest
from rdflib import BNode, Literal, URIRef

from vc_graph.exceptions import ShapeViolation
from vc_graph.framing import credential_to_dict, literal_to_value, reconstruct
from vc_graph.graph import Graph, Quad
from vc_graph.parser import parse, parse_document
from vc_graph.resolver import get_vc_context
from vc_graph.vocab import CRED, RDF, XSD

from conftest import EXAMPLE_CONTEXT

EX = "https://example.org/ns#"
ALICE = URIRef("https://example.org/subjects/alice")
NAME = URIRef(f"{EX}name")
FRIEND = URIRef(f"{EX}friend")
KNOWS = URIRef(f"{EX}knows")


@pytest.fixture
def context():
    """The credentials context extended with the example terms."""
    return get_vc_context(EXAMPLE_CONTEXT)


class TestLiteralToValue:
    """Tests for literal conversion."""

    def test_native_types(self):
        """Booleans and numbers become Python values."""
        assert literal_to_value(Literal("true", datatype=XSD.boolean)) is True
        assert literal_to_value(Literal("false", datatype=XSD.boolean)) is False
        assert literal_to_value(Literal("30", datatype=XSD.integer)) == 30
        assert literal_to_value(Literal("1.5", datatype=XSD.double)) == 1.5
        assert literal_to_value(Literal("3", datatype=XSD.decimal)) == 3.0

    def test_lexical_forms(self):
        """Strings, dates and unknown datatypes keep their lexical form."""
        assert literal_to_value(Literal("Alice")) == "Alice"
        assert literal_to_value(Literal("Bonjour", lang="fr")) == "Bonjour"
        assert (
            literal_to_value(
                Literal("2021-01-01T00:00:00Z", datatype=XSD.dateTime, normalize=False)
            )
            == "2021-01-01T00:00:00Z"
        )
        custom = URIRef("https://example.org/ns#colour")
        assert literal_to_value(Literal("blue", datatype=custom)) == "blue"

    def test_ill_typed(self):
        """An ill-typed number keeps its lexical form."""
        assert literal_to_value(Literal("thirty", datatype=XSD.integer)) == "thirty"


class TestReconstruct:
    """Tests for rebuilding nested objects."""

    def test_credential_subject(self, credential, context):
        """Properties, typed values and nested blank nodes are rebuilt."""
        graph = parse(credential)
        subject = reconstruct(graph, ALICE, context)

        assert subject == {
            "name": "Alice",
            "age": 30,
            "verified": True,
            "address": {"city": "Paris"},
        }

    def test_type_uses_alias(self, context):
        """rdf:type becomes the @type alias and its value is compacted."""
        graph = Graph([Quad(ALICE, RDF.type, URIRef(f"{EX}Person"))])
        assert reconstruct(graph, ALICE, context) == {"type": "Person"}

    def test_multiple_values_become_list(self, context):
        """Several values for one predicate become a list in order."""
        graph = Graph(
            [
                Quad(ALICE, KNOWS, URIRef("https://example.org/people/bob")),
                Quad(ALICE, KNOWS, URIRef("https://example.org/people/carol")),
            ]
        )
        assert reconstruct(graph, ALICE, context) == {
            "knows": [
                "https://example.org/people/bob",
                "https://example.org/people/carol",
            ]
        }

    def test_non_term_predicate_skipped(self, context):
        """Predicates that do not compact to a plain term are left out."""
        graph = Graph(
            [
                Quad(ALICE, NAME, Literal("Alice")),
                Quad(ALICE, URIRef("https://unrelated.example.com/thing"), Literal("x")),
                Quad(ALICE, URIRef(f"{EX}colour"), Literal("blue")),
            ]
        )
        assert reconstruct(graph, ALICE, context) == {"name": "Alice"}

    def test_self_reference_terminates(self, context):
        """A blank node pointing at itself does not loop."""
        node = BNode()
        graph = Graph([Quad(node, NAME, Literal("Alice")), Quad(node, FRIEND, node)])
        assert reconstruct(graph, node, context) == {"name": "Alice"}

    def test_cycle_terminates(self, context):
        """A blank node cycle is cut where it closes."""
        first, second = BNode(), BNode()
        graph = Graph(
            [
                Quad(first, NAME, Literal("Alice")),
                Quad(first, FRIEND, second),
                Quad(second, NAME, Literal("Bob")),
                Quad(second, FRIEND, first),
            ]
        )
        assert reconstruct(graph, first, context) == {
            "name": "Alice",
            "friend": {"name": "Bob"},
        }

    def test_shared_blank_node_repeated(self, context):
        """A blank node reached by two paths appears under both."""
        shared = BNode()
        graph = Graph(
            [
                Quad(ALICE, FRIEND, shared),
                Quad(ALICE, KNOWS, shared),
                Quad(shared, NAME, Literal("Bob")),
            ]
        )
        assert reconstruct(graph, ALICE, context) == {
            "friend": {"name": "Bob"},
            "knows": {"name": "Bob"},
        }

    def test_parsed_cycle(self, context):
        """A document whose blank nodes refer to each other terminates."""
        document = {
            "@context": EXAMPLE_CONTEXT,
            "@id": str(ALICE),
            "friend": {"@id": "_:bob", "name": "Bob", "friend": {"@id": "_:bob"}},
        }
        graph = parse(document)
        assert reconstruct(graph, ALICE, context) == {"friend": {"name": "Bob"}}


class TestCredentialToDict:
    """Tests for assembling the nested credential shape."""

    def test_fields(self, credential):
        """Every credential field is rebuilt from the graph."""
        data = credential_to_dict(parse_document(credential))

        assert data["@context"] == credential["@context"]
        assert data["id"] == credential["id"]
        assert data["type"] == ["VerifiableCredential"]
        assert data["issuer"] == "https://example.org/issuer"
        assert data["issuanceDate"] == "2021-01-01T00:00:00Z"
        assert "expirationDate" not in data
        assert data["credentialSubject"] == credential["credentialSubject"]

    def test_proof(self, credential):
        """The proof is rebuilt with compacted type and purpose."""
        data = credential_to_dict(parse_document(credential))
        assert data["proof"] == credential["proof"]

    def test_expiration_date(self, credential):
        """A present expiration date is kept in its lexical form."""
        credential["expirationDate"] = "2031-01-01T00:00:00Z"
        data = credential_to_dict(parse_document(credential))
        assert data["expirationDate"] == "2031-01-01T00:00:00Z"

    def test_explicit_context(self, credential, context):
        """A supplied context is used for compaction."""
        data = credential_to_dict(parse_document(credential), context=context)
        assert data["credentialSubject"]["address"] == {"city": "Paris"}

    def test_not_a_credential(self, credential):
        """A document missing a required relation fails."""
        del credential["issuer"]
        with pytest.raises(ShapeViolation):
            credential_to_dict(parse_document(credential))

    def test_untyped(self, credential):
        """A document not typed as a credential fails."""
        credential["type"] = ["Person"]
        with pytest.raises(ShapeViolation):
            credential_to_dict(parse_document(credential))

    def test_second_subject(self, credential):
        """A repeated credential subject fails."""
        vc = parse_document(credential)
        graph = vc.graph.union(
            [
                Quad(
                    URIRef(credential["id"]),
                    CRED.credentialSubject,
                    URIRef("https://example.org/subjects/bob"),
                )
            ]
        )
        doctored = type(vc)(graph, vc.id, vc.to_dict())
        with pytest.raises(ShapeViolation, match="Found 2"):
            credential_to_dict(doctored)
