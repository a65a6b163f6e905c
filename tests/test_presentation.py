"""Tests for Verifiable Presentation parsing."""

import json
import threading

import pytest
from rdflib import URIRef

from vc_graph.exceptions import ConfigurationError, GraphParseFailure, ShapeViolation
from vc_graph.parser import parse
from vc_graph.presentation import convert_in_chunks, parse_presentation
from vc_graph.vocab import CRED

VP_ID = URIRef("https://example.org/presentations/1")


class TestConvertInChunks:
    """Tests for chunked concurrent conversion."""

    def test_keeps_order(self):
        """Results come back in input order."""
        assert convert_in_chunks(list(range(10)), lambda n: n * n, chunk_size=3) == [
            n * n for n in range(10)
        ]

    def test_empty(self):
        """No items, no results."""
        assert convert_in_chunks([], str) == []

    def test_chunk_bound(self):
        """No more than chunk_size conversions run at once."""
        lock = threading.Lock()
        running = 0
        peak = 0

        def convert(item):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            with lock:
                running -= 1
            return item

        convert_in_chunks(list(range(20)), convert, chunk_size=4)
        assert peak <= 4

    def test_failure_raised(self):
        """A failed conversion is raised and later chunks never start."""
        seen = []

        def convert(item):
            seen.append(item)
            if item == 1:
                raise ShapeViolation("bad item")
            return item

        with pytest.raises(ShapeViolation, match="bad item"):
            convert_in_chunks(list(range(6)), convert, chunk_size=2)
        assert sorted(seen) == [0, 1]

    @pytest.mark.parametrize("chunk_size", [0, -1, 1.5, True, "10"])
    def test_invalid_chunk_size(self, chunk_size):
        """The chunk size must be a positive integer."""
        with pytest.raises(ConfigurationError, match="chunk_size"):
            convert_in_chunks([1], str, chunk_size=chunk_size)


class TestParsePresentation:
    """Tests for presentation parsing and validation."""

    def test_valid_presentation(self, presentation, credential):
        """A valid presentation links its credential in the graph."""
        vp = parse_presentation(presentation)

        assert vp.root == VP_ID
        assert vp.id == str(VP_ID)
        assert vp["holder"] == "https://some.holder"
        assert list(vp.match(VP_ID, CRED.verifiableCredential, URIRef(credential["id"])))
        assert len(vp.credentials) == 1
        assert vp.credentials[0].id == credential["id"]

    def test_reconstructed_credentials(self, presentation, credential):
        """The verifiableCredential field holds the rebuilt credentials."""
        vp = parse_presentation(presentation)
        (rebuilt,) = vp["verifiableCredential"]

        assert rebuilt["id"] == credential["id"]
        assert rebuilt["issuer"] == credential["issuer"]
        assert rebuilt["credentialSubject"] == credential["credentialSubject"]
        assert rebuilt["proof"]["proofValue"] == credential["proof"]["proofValue"]

    def test_raw_payload(self, presentation):
        """A raw JSON payload is decoded first."""
        vp = parse_presentation(json.dumps(presentation).encode("utf-8"))
        assert vp.id == str(VP_ID)

    def test_graph_holds_every_credential(self, presentation, make_credential):
        """The presentation graph is the union of all credential graphs."""
        presentation["verifiableCredential"] = [make_credential(i) for i in range(5)]
        vp = parse_presentation(presentation, chunk_size=2)

        assert [vc.id for vc in vp.credentials] == [
            f"https://example.org/credentials/{i}" for i in range(5)
        ]
        for vc in vp.credentials:
            assert all(vp.has(quad) for quad in vc.graph)
        assert [item["id"] for item in vp["verifiableCredential"]] == [
            f"https://example.org/credentials/{i}" for i in range(5)
        ]

    def test_empty_presentation(self, presentation):
        """A presentation without credentials is valid."""
        del presentation["verifiableCredential"]
        vp = parse_presentation(presentation)
        assert vp.credentials == ()
        assert "verifiableCredential" not in vp

    def test_holder_not_url(self, presentation):
        """A holder that is not a URL is rejected."""
        presentation["holder"] = "not a valid url"
        with pytest.raises(ShapeViolation, match="not a URL"):
            parse_presentation(presentation)

    def test_holder_not_url_drops_statement(self, presentation):
        """A relative holder produces no holder statement at all."""
        presentation["holder"] = "not a valid url"
        del presentation["verifiableCredential"]
        assert not list(parse(presentation).match(None, CRED.holder))

    def test_invalid_credential(self, presentation):
        """An embedded credential that is not valid fails the presentation."""
        del presentation["verifiableCredential"][0]["proof"]
        with pytest.raises(ShapeViolation, match="not a valid Verifiable Credential"):
            parse_presentation(presentation)

    def test_credential_not_object(self, presentation):
        """Embedded credentials must be objects."""
        presentation["verifiableCredential"] = ["https://example.org/credentials/1"]
        with pytest.raises(ShapeViolation):
            parse_presentation(presentation)

    def test_single_credential_object(self, presentation, credential):
        """A single embedded credential need not be wrapped in a list."""
        presentation["verifiableCredential"] = credential
        vp = parse_presentation(presentation)
        assert len(vp.credentials) == 1

    def test_strict_type(self, presentation):
        """Strict typing rejects presentations not typed VerifiablePresentation."""
        del presentation["verifiableCredential"]
        presentation["type"] = ["VerifiableCredential"]
        del presentation["holder"]

        assert parse_presentation(presentation).id == str(VP_ID)
        with pytest.raises(ShapeViolation):
            parse_presentation(presentation, strict_type=True)

    def test_not_an_object(self):
        """Only JSON objects can be presentations."""
        with pytest.raises(GraphParseFailure):
            parse_presentation(b"[]")

    def test_invalid_chunk_size(self, presentation):
        """A bad chunk size is a configuration error."""
        with pytest.raises(ConfigurationError):
            parse_presentation(presentation, chunk_size=0)
