"""Tests for credential and presentation inspection."""

import json

import pytest

from vc_graph.contexts import ContextCache
from vc_graph.inspector import (
    CredentialInspector,
    InspectionResult,
    InspectionStatus,
    inspect_credential,
)


@pytest.fixture
def inspector():
    """An inspector over an isolated context cache."""
    return CredentialInspector(cache=ContextCache())


class TestInspectCredential:
    """Tests for credential inspection."""

    def test_valid_credential(self, inspector, credential):
        """A valid credential passes with its rebuilt document."""
        result = inspector.inspect_credential(credential)

        assert result.status == InspectionStatus.VALID
        assert result.is_valid
        assert result.credential_id == credential["id"]
        assert result.issuer == "https://example.org/issuer"
        assert result.statements > 0
        assert result.document["credentialSubject"]["name"] == "Alice"
        assert result.errors == []
        assert result.warnings == []

    def test_raw_payload(self, inspector, credential):
        """A raw JSON payload is accepted."""
        result = inspector.inspect_credential(json.dumps(credential).encode("utf-8"))
        assert result.is_valid

    def test_missing_proof(self, inspector, credential):
        """A credential without a proof is invalid and says why."""
        del credential["proof"]
        result = inspector.inspect_credential(credential)

        assert result.status == InspectionStatus.INVALID
        assert not result.is_valid
        assert any("proof" in error for error in result.errors)

    def test_duplicate_issuer(self, inspector, credential):
        """Shape errors name the offending relation."""
        credential["issuer"] = ["https://example.org/issuer", "https://example.org/other"]
        result = inspector.inspect_credential(credential)

        assert result.status == InspectionStatus.INVALID
        assert any(
            error.startswith("Invalid issuer") and "Found 2" in error for error in result.errors
        )
        assert result.issuer is None

    def test_unknown_context(self, inspector, credential):
        """An unknown context is an error, not an invalid shape."""
        credential["@context"].append("https://contexts.example.org/unknown")
        result = inspector.inspect_credential(credential)

        assert result.status == InspectionStatus.ERROR
        assert result.credential_id == credential["id"]
        assert "https://contexts.example.org/unknown" in result.errors[0]

    def test_broken_json(self, inspector):
        """A payload that is not JSON is an error."""
        result = inspector.inspect_credential(b'{"id": ')
        assert result.status == InspectionStatus.ERROR
        assert result.credential_id is None

    def test_expired_credential(self, inspector, credential):
        """An expired credential is still valid but carries a warning."""
        credential["expirationDate"] = "2020-01-01T00:00:00Z"
        result = inspector.inspect_credential(credential)

        assert result.is_valid
        assert result.document["expirationDate"] == "2020-01-01T00:00:00Z"
        assert len(result.warnings) == 1
        assert "expired" in result.warnings[0]

    def test_future_expiration(self, inspector, credential):
        """A credential expiring in the future has no warning."""
        credential["expirationDate"] = "2999-01-01T00:00:00Z"
        assert inspector.inspect_credential(credential).warnings == []

    def test_convenience_function(self, credential):
        """The module-level helper inspects with default settings."""
        assert inspect_credential(credential).is_valid


class TestInspectPresentation:
    """Tests for presentation inspection."""

    def test_valid_presentation(self, inspector, presentation):
        """A valid presentation reports its holder and credentials."""
        result = inspector.inspect_presentation(presentation)

        assert result.is_valid
        assert result.kind == "presentation"
        assert result.issuer == "https://some.holder"
        assert result.credential_count == 1
        assert result.document["verifiableCredential"][0]["issuer"] == (
            "https://example.org/issuer"
        )

    def test_invalid_holder(self, inspector, presentation):
        """A holder that is not a URL makes the presentation invalid."""
        presentation["holder"] = "not a valid url"
        result = inspector.inspect_presentation(presentation)

        assert result.status == InspectionStatus.INVALID
        assert result.credential_id == presentation["id"]

    def test_invalid_credential(self, inspector, presentation):
        """An invalid embedded credential makes the presentation invalid."""
        del presentation["verifiableCredential"][0]["issuanceDate"]
        result = inspector.inspect_presentation(presentation)
        assert result.status == InspectionStatus.INVALID

    def test_unknown_context(self, inspector, presentation):
        """An unknown context is an error."""
        presentation["@context"].append("https://contexts.example.org/unknown")
        result = inspector.inspect_presentation(presentation)
        assert result.status == InspectionStatus.ERROR

    def test_expired_credential_warning(self, inspector, presentation):
        """Warnings of embedded credentials are collected."""
        presentation["verifiableCredential"][0]["expirationDate"] = "2020-01-01T00:00:00Z"
        result = inspector.inspect_presentation(presentation)

        assert result.is_valid
        assert len(result.warnings) == 1


class TestInspectionResult:
    """Tests for the result record."""

    def test_to_dict(self):
        """The result serializes to plain data."""
        result = InspectionResult(
            status=InspectionStatus.INVALID,
            credential_id="https://example.org/credentials/1",
            issuer=None,
            errors=["Invalid proof: missing"],
        )
        data = result.to_dict()

        assert data["status"] == "invalid"
        assert data["valid"] is False
        assert data["kind"] == "credential"
        assert data["errors"] == ["Invalid proof: missing"]
        json.dumps(data)

    def test_errors_make_result_invalid(self):
        """A valid status with errors is not valid."""
        result = InspectionResult(
            status=InspectionStatus.VALID,
            credential_id=None,
            issuer=None,
            errors=["something"],
        )
        assert not result.is_valid
