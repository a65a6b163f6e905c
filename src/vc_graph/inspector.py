"""
Credential and presentation inspection.

Runs the full pipeline on one document (parse into a graph, validate its
shape, reconstruct the legacy object) and reports the outcome as an
InspectionResult rather than raising.

Proof signatures are not checked here; that is the job of a verification
service.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from vc_graph.contexts import ContextCache, default_context_cache
from vc_graph.document import GraphBackedDocument
from vc_graph.exceptions import ShapeViolation, VCGraphError
from vc_graph.framing import credential_to_dict
from vc_graph.getters import (
    get_credential_subject,
    get_expiration_date,
    get_id,
    get_issuance_date,
    get_issuer,
    get_proof_graph,
)
from vc_graph.parser import load_json, parse_document
from vc_graph.presentation import DEFAULT_CHUNK_SIZE, parse_presentation
from vc_graph.resolver import ContextResolver
from vc_graph.shapes import is_credential, is_valid_proof
from vc_graph.vocab import CRED, RDF


class InspectionStatus(Enum):
    """Overall inspection status."""

    VALID = "valid"
    INVALID = "invalid"
    ERROR = "error"


@dataclass
class InspectionResult:
    """Complete inspection result."""

    status: InspectionStatus
    credential_id: str | None
    issuer: str | None
    kind: str = "credential"
    statements: int = 0
    credential_count: int = 0
    document: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Check if the document has a valid shape."""
        return self.status == InspectionStatus.VALID and not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Return the result as plain JSON-compatible data."""
        return {
            "status": self.status.value,
            "valid": self.is_valid,
            "kind": self.kind,
            "id": self.credential_id,
            "issuer": self.issuer,
            "statements": self.statements,
            "credential_count": self.credential_count,
            "document": self.document,
            "errors": self.errors,
            "warnings": self.warnings,
        }


class CredentialInspector:
    """Inspects Verifiable Credentials and Presentations.

    Checks:
    - JSON-LD contexts are allow-listed (or fetched, when enabled)
    - The graph has the shape of a credential or presentation
    - Expiration dates (reported as warnings)
    """

    def __init__(
        self,
        cache: ContextCache | None = None,
        allow_remote_contexts: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialize the inspector.

        Args:
            cache: Context cache. The process-wide cache is used if not provided.
            allow_remote_contexts: Whether unknown contexts may be fetched.
            chunk_size: Largest number of presentation credentials converted at once.
        """
        self.cache = cache or default_context_cache()
        self.resolver = ContextResolver(self.cache)
        self.allow_remote_contexts = allow_remote_contexts
        self.chunk_size = chunk_size

    def inspect_credential(self, credential: Mapping[str, Any] | bytes | str) -> InspectionResult:
        """Inspect a Verifiable Credential.

        Args:
            credential: The credential, decoded or as a raw JSON payload.

        Returns:
            InspectionResult with the reconstructed credential when valid.
        """
        try:
            if not isinstance(credential, Mapping):
                credential = load_json(credential)
            vc = parse_document(
                credential,
                allow_remote_context_fetch=self.allow_remote_contexts,
                cache=self.cache,
            )
        except VCGraphError as e:
            return InspectionResult(
                status=InspectionStatus.ERROR,
                credential_id=_plain_id(credential),
                issuer=None,
                errors=[str(e)],
            )

        if vc.root is None or not is_credential(vc.graph, vc.root):
            return InspectionResult(
                status=InspectionStatus.INVALID,
                credential_id=vc.id,
                issuer=_safe_issuer(vc),
                statements=vc.size,
                errors=self._shape_errors(vc)
                or ["Document does not have the shape of a Verifiable Credential"],
            )

        try:
            document = credential_to_dict(vc, resolver=self.resolver)
        except VCGraphError as e:
            return InspectionResult(
                status=InspectionStatus.INVALID,
                credential_id=vc.id,
                issuer=_safe_issuer(vc),
                statements=vc.size,
                errors=[f"Could not reconstruct credential: {e}"],
            )

        return InspectionResult(
            status=InspectionStatus.VALID,
            credential_id=vc.id,
            issuer=document["issuer"],
            statements=vc.size,
            document=document,
            warnings=self._expiration_warnings(vc),
        )

    def inspect_presentation(self, presentation: Mapping[str, Any] | bytes | str) -> InspectionResult:
        """Inspect a Verifiable Presentation and the credentials it embeds.

        Args:
            presentation: The presentation, decoded or as a raw JSON payload.

        Returns:
            InspectionResult whose document holds the reconstructed credentials.
        """
        try:
            vp = parse_presentation(
                presentation,
                allow_remote_context_fetch=self.allow_remote_contexts,
                cache=self.cache,
                resolver=self.resolver,
                chunk_size=self.chunk_size,
            )
        except ShapeViolation as e:
            return InspectionResult(
                status=InspectionStatus.INVALID,
                credential_id=_plain_id(presentation),
                issuer=None,
                kind="presentation",
                errors=[str(e)],
            )
        except VCGraphError as e:
            return InspectionResult(
                status=InspectionStatus.ERROR,
                credential_id=_plain_id(presentation),
                issuer=None,
                kind="presentation",
                errors=[str(e)],
            )

        warnings: list[str] = []
        for vc in vp.credentials:
            warnings.extend(self._expiration_warnings(vc))

        holder = vp.get("holder")
        return InspectionResult(
            status=InspectionStatus.VALID,
            credential_id=vp.id,
            issuer=holder if isinstance(holder, str) else None,
            kind="presentation",
            statements=vp.size,
            credential_count=len(vp.credentials),
            document=vp.to_dict(),
            warnings=warnings,
        )

    def _shape_errors(self, vc: GraphBackedDocument) -> list[str]:
        """Describe why a credential graph is not valid.

        Returns:
            List of shape errors (may be empty if the cause is not pinned down).
        """
        try:
            root = get_id(vc)
        except ShapeViolation as e:
            return [str(e)]

        errors: list[str] = []
        checks = (
            ("issuer", get_issuer),
            ("issuanceDate", get_issuance_date),
            ("expirationDate", get_expiration_date),
            ("credentialSubject", get_credential_subject),
        )
        for name, getter in checks:
            try:
                getter(vc)
            except ShapeViolation as e:
                errors.append(f"Invalid {name}: {e}")

        try:
            proof = get_proof_graph(vc)
        except ShapeViolation as e:
            errors.append(f"Invalid proof: {e}")
        else:
            if not is_valid_proof(vc.graph, proof):
                errors.append(
                    "Invalid proof: the proof must have exactly one created date, "
                    "proofValue, proofPurpose, verificationMethod and type"
                )

        if CRED.VerifiableCredential not in vc.graph.objects(vc.root, RDF.type):
            errors.append(f"[{root}] is not typed as a VerifiableCredential")
        return errors

    def _expiration_warnings(self, vc: GraphBackedDocument) -> list[str]:
        """Warn about credentials whose expiration date has passed."""
        try:
            expiration = get_expiration_date(vc)
        except ShapeViolation:
            return []
        if expiration is None:
            return []
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        if expiration < datetime.now(timezone.utc):
            return [f"Credential {vc.id} expired on {expiration.isoformat()}"]
        return []


def _plain_id(data: Any) -> str | None:
    if isinstance(data, Mapping) and isinstance(data.get("id"), str):
        return data["id"]
    return None


def _safe_issuer(vc: GraphBackedDocument) -> str | None:
    try:
        return get_issuer(vc)
    except ShapeViolation:
        return None


def inspect_credential(
    credential: Mapping[str, Any] | bytes | str,
    allow_remote_contexts: bool = False,
) -> InspectionResult:
    """Convenience function to inspect a credential.

    Args:
        credential: The Verifiable Credential to inspect.
        allow_remote_contexts: Whether unknown contexts may be fetched.

    Returns:
        InspectionResult with details of all checks.
    """
    inspector = CredentialInspector(allow_remote_contexts=allow_remote_contexts)
    return inspector.inspect_credential(credential)
