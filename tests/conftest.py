"""Shared fixtures for vc_graph tests."""

import copy

import pytest

from vc_graph.config import DEFAULT_MAX_JSON_SIZE, set_max_json_size
from vc_graph.contexts import ContextCache, default_context_cache
from vc_graph.resolver import default_context_resolver

CREDENTIALS_V1 = "https://www.w3.org/2018/credentials/v1"

EXAMPLE_CONTEXT = {
    "ex": "https://example.org/ns#",
    "name": "ex:name",
    "age": {"@id": "ex:age", "@type": "http://www.w3.org/2001/XMLSchema#integer"},
    "score": {"@id": "ex:score", "@type": "http://www.w3.org/2001/XMLSchema#double"},
    "verified": "ex:verified",
    "nickname": "ex:nickname",
    "address": "ex:address",
    "city": "ex:city",
    "friend": {"@id": "ex:friend", "@type": "@id"},
    "knows": {"@id": "ex:knows", "@type": "@id"},
    "Person": "ex:Person",
}

CREDENTIAL = {
    "@context": [CREDENTIALS_V1, EXAMPLE_CONTEXT],
    "id": "https://example.org/credentials/1",
    "type": ["VerifiableCredential"],
    "issuer": "https://example.org/issuer",
    "issuanceDate": "2021-01-01T00:00:00Z",
    "credentialSubject": {
        "id": "https://example.org/subjects/alice",
        "name": "Alice",
        "age": 30,
        "verified": True,
        "address": {"city": "Paris"},
    },
    "proof": {
        "type": "Ed25519Signature2018",
        "created": "2021-01-01T00:00:00Z",
        "proofPurpose": "assertionMethod",
        "verificationMethod": "https://example.org/issuer#key-1",
        "proofValue": "z58DAdFfa9SkqZMVPxAQpic7ndSayn1PzZs6ZjWp1CktyGesjuTSwRdoWhAfGFCF5bppETSTojQCrfFPP2oumHKtz",
    },
}


@pytest.fixture(autouse=True)
def reset_process_state():
    """Restore the process-wide settings and caches after each test."""
    yield
    set_max_json_size(DEFAULT_MAX_JSON_SIZE)
    default_context_cache().clear_cache()
    default_context_resolver().clear()


@pytest.fixture
def credential():
    """A structurally valid Verifiable Credential."""
    return copy.deepcopy(CREDENTIAL)


@pytest.fixture
def make_credential():
    """Build a valid credential with a given id."""

    def _make(index: int) -> dict:
        vc = copy.deepcopy(CREDENTIAL)
        vc["id"] = f"https://example.org/credentials/{index}"
        vc["credentialSubject"]["id"] = f"https://example.org/subjects/{index}"
        return vc

    return _make


@pytest.fixture
def presentation(credential):
    """A Verifiable Presentation holding one credential."""
    return {
        "@context": [CREDENTIALS_V1],
        "id": "https://example.org/presentations/1",
        "type": ["VerifiablePresentation"],
        "holder": "https://some.holder",
        "verifiableCredential": [credential],
    }


@pytest.fixture
def context_cache():
    """A context cache isolated from the process-wide one."""
    return ContextCache()
