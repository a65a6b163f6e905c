"""
JSON-LD context cache.

Holds the context documents a parse is allowed to use. The credential
vocabulary and the known proof-suite vocabularies are bundled and never
fetched. Any other context must either be supplied by the caller or, when
remote fetching is explicitly enabled, be retrieved once over HTTPS and kept
for later requests.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx
from cachetools import LRUCache
from pyld.jsonld import ContextResolver as PyLdContextResolver

from vc_graph.config import check_response_size
from vc_graph.exceptions import (
    ContextFetchFailure,
    ContextParseFailure,
    UnknownContext,
)

logger = logging.getLogger(__name__)


def _signature_suite(iri: str) -> dict[str, Any]:
    """Term definition shared by the 2018/2019 signature suites."""
    return {
        "@id": iri,
        "@context": {
            "@version": 1.1,
            "@protected": True,
            "id": "@id",
            "type": "@type",
            "sec": "https://w3id.org/security#",
            "xsd": "http://www.w3.org/2001/XMLSchema#",
            "challenge": "sec:challenge",
            "created": {
                "@id": "http://purl.org/dc/terms/created",
                "@type": "xsd:dateTime",
            },
            "domain": "sec:domain",
            "expires": {"@id": "sec:expiration", "@type": "xsd:dateTime"},
            "jws": "sec:jws",
            "nonce": "sec:nonce",
            "proofPurpose": {
                "@id": "sec:proofPurpose",
                "@type": "@vocab",
                "@context": {
                    "@version": 1.1,
                    "@protected": True,
                    "id": "@id",
                    "type": "@type",
                    "sec": "https://w3id.org/security#",
                    "assertionMethod": {
                        "@id": "sec:assertionMethod",
                        "@type": "@id",
                        "@container": "@set",
                    },
                    "authentication": {
                        "@id": "sec:authenticationMethod",
                        "@type": "@id",
                        "@container": "@set",
                    },
                },
            },
            "proofValue": "sec:proofValue",
            "verificationMethod": {"@id": "sec:verificationMethod", "@type": "@id"},
        },
    }


CREDENTIALS_V1 = {
    "@context": {
        "@version": 1.1,
        "@protected": True,
        "id": "@id",
        "type": "@type",
        "VerifiableCredential": {
            "@id": "https://www.w3.org/2018/credentials#VerifiableCredential",
            "@context": {
                "@version": 1.1,
                "@protected": True,
                "id": "@id",
                "type": "@type",
                "cred": "https://www.w3.org/2018/credentials#",
                "sec": "https://w3id.org/security#",
                "xsd": "http://www.w3.org/2001/XMLSchema#",
                "credentialSchema": {
                    "@id": "cred:credentialSchema",
                    "@type": "@id",
                    "@context": {
                        "@version": 1.1,
                        "@protected": True,
                        "id": "@id",
                        "type": "@type",
                        "cred": "https://www.w3.org/2018/credentials#",
                        "JsonSchemaValidator2018": "cred:JsonSchemaValidator2018",
                    },
                },
                "credentialStatus": {"@id": "cred:credentialStatus", "@type": "@id"},
                "credentialSubject": {"@id": "cred:credentialSubject", "@type": "@id"},
                "evidence": {"@id": "cred:evidence", "@type": "@id"},
                "expirationDate": {"@id": "cred:expirationDate", "@type": "xsd:dateTime"},
                "holder": {"@id": "cred:holder", "@type": "@id"},
                "issued": {"@id": "cred:issued", "@type": "xsd:dateTime"},
                "issuer": {"@id": "cred:issuer", "@type": "@id"},
                "issuanceDate": {"@id": "cred:issuanceDate", "@type": "xsd:dateTime"},
                "proof": {"@id": "sec:proof", "@type": "@id", "@container": "@graph"},
                "refreshService": {
                    "@id": "cred:refreshService",
                    "@type": "@id",
                    "@context": {
                        "@version": 1.1,
                        "@protected": True,
                        "id": "@id",
                        "type": "@type",
                        "cred": "https://www.w3.org/2018/credentials#",
                        "ManualRefreshService2018": "cred:ManualRefreshService2018",
                    },
                },
                "termsOfUse": {"@id": "cred:termsOfUse", "@type": "@id"},
                "validFrom": {"@id": "cred:validFrom", "@type": "xsd:dateTime"},
                "validUntil": {"@id": "cred:validUntil", "@type": "xsd:dateTime"},
            },
        },
        "VerifiablePresentation": {
            "@id": "https://www.w3.org/2018/credentials#VerifiablePresentation",
            "@context": {
                "@version": 1.1,
                "@protected": True,
                "id": "@id",
                "type": "@type",
                "cred": "https://www.w3.org/2018/credentials#",
                "sec": "https://w3id.org/security#",
                "holder": {"@id": "cred:holder", "@type": "@id"},
                "proof": {"@id": "sec:proof", "@type": "@id", "@container": "@graph"},
                "verifiableCredential": {
                    "@id": "cred:verifiableCredential",
                    "@type": "@id",
                    "@container": "@graph",
                },
            },
        },
        "EcdsaSecp256k1Signature2019": _signature_suite(
            "https://w3id.org/security#EcdsaSecp256k1Signature2019"
        ),
        "EcdsaSecp256r1Signature2019": _signature_suite(
            "https://w3id.org/security#EcdsaSecp256r1Signature2019"
        ),
        "Ed25519Signature2018": _signature_suite(
            "https://w3id.org/security#Ed25519Signature2018"
        ),
        "RsaSignature2018": _signature_suite("https://w3id.org/security#RsaSignature2018"),
        "proof": {
            "@id": "https://w3id.org/security#proof",
            "@type": "@id",
            "@container": "@graph",
        },
    }
}

STATUS_LIST_2021_V1 = {
    "@context": {
        "@protected": True,
        "StatusList2021Credential": {
            "@id": "https://w3id.org/vc/status-list#StatusList2021Credential",
            "@context": {
                "@protected": True,
                "id": "@id",
                "type": "@type",
                "description": "http://schema.org/description",
                "name": "http://schema.org/name",
            },
        },
        "StatusList2021": {
            "@id": "https://w3id.org/vc/status-list#StatusList2021",
            "@context": {
                "@protected": True,
                "id": "@id",
                "type": "@type",
                "statusPurpose": "https://w3id.org/vc/status-list#statusPurpose",
                "encodedList": {
                    "@id": "https://w3id.org/vc/status-list#encodedList",
                    "@type": "https://w3id.org/security#multibase",
                },
            },
        },
        "StatusList2021Entry": {
            "@id": "https://w3id.org/vc/status-list#StatusList2021Entry",
            "@context": {
                "@protected": True,
                "id": "@id",
                "type": "@type",
                "statusPurpose": "https://w3id.org/vc/status-list#statusPurpose",
                "statusListIndex": "https://w3id.org/vc/status-list#statusListIndex",
                "statusListCredential": {
                    "@id": "https://w3id.org/vc/status-list#statusListCredential",
                    "@type": "@id",
                },
            },
        },
    }
}

ED25519_2020_V1 = {
    "@context": {
        "id": "@id",
        "type": "@type",
        "@protected": True,
        "proof": {
            "@id": "https://w3id.org/security#proof",
            "@type": "@id",
            "@container": "@graph",
        },
        "Ed25519VerificationKey2020": {
            "@id": "https://w3id.org/security#Ed25519VerificationKey2020",
            "@context": {
                "@protected": True,
                "id": "@id",
                "type": "@type",
                "controller": {
                    "@id": "https://w3id.org/security#controller",
                    "@type": "@id",
                },
                "revoked": {
                    "@id": "https://w3id.org/security#revoked",
                    "@type": "http://www.w3.org/2001/XMLSchema#dateTime",
                },
                "publicKeyMultibase": {
                    "@id": "https://w3id.org/security#publicKeyMultibase",
                    "@type": "https://w3id.org/security#multibase",
                },
            },
        },
        "Ed25519Signature2020": {
            "@id": "https://w3id.org/security#Ed25519Signature2020",
            "@context": {
                "@protected": True,
                "id": "@id",
                "type": "@type",
                "challenge": "https://w3id.org/security#challenge",
                "created": {
                    "@id": "http://purl.org/dc/terms/created",
                    "@type": "http://www.w3.org/2001/XMLSchema#dateTime",
                },
                "domain": "https://w3id.org/security#domain",
                "expires": {
                    "@id": "https://w3id.org/security#expiration",
                    "@type": "http://www.w3.org/2001/XMLSchema#dateTime",
                },
                "nonce": "https://w3id.org/security#nonce",
                "proofPurpose": {
                    "@id": "https://w3id.org/security#proofPurpose",
                    "@type": "@vocab",
                    "@context": {
                        "@protected": True,
                        "id": "@id",
                        "type": "@type",
                        "assertionMethod": {
                            "@id": "https://w3id.org/security#assertionMethod",
                            "@type": "@id",
                            "@container": "@set",
                        },
                        "authentication": {
                            "@id": "https://w3id.org/security#authenticationMethod",
                            "@type": "@id",
                            "@container": "@set",
                        },
                    },
                },
                "proofValue": {
                    "@id": "https://w3id.org/security#proofValue",
                    "@type": "https://w3id.org/security#multibase",
                },
                "verificationMethod": {
                    "@id": "https://w3id.org/security#verificationMethod",
                    "@type": "@id",
                },
            },
        },
    }
}

BUNDLED_CONTEXTS: dict[str, dict[str, Any]] = {
    "https://www.w3.org/2018/credentials/v1": CREDENTIALS_V1,
    "https://w3id.org/vc/status-list/2021/v1": STATUS_LIST_2021_V1,
    "https://w3id.org/security/suites/ed25519-2020/v1": ED25519_2020_V1,
}

DocumentLoader = Callable[..., dict[str, Any]]


class ContextCache:
    """Allow-listed store of JSON-LD context documents.

    Bundled contexts are always available. Other contexts are available once
    they have been added (by the caller, or through the ``contexts`` parse
    option) or fetched with remote fetching enabled.
    """

    def __init__(
        self,
        contexts: Mapping[str, Any] | None = None,
        allow_remote_fetch: bool = False,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the context cache.

        Args:
            contexts: Extra context documents keyed by IRI.
            allow_remote_fetch: Whether unknown contexts may be fetched.
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self.allow_remote_fetch = allow_remote_fetch
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._contexts: dict[str, dict[str, Any]] = copy.deepcopy(BUNDLED_CONTEXTS)
        # Bumped whenever a known IRI changes content; keys memoised resolutions.
        self.generation = 0
        for url, document in (contexts or {}).items():
            self.add(url, document)

    def __contains__(self, url: object) -> bool:
        return url in self._contexts

    def add(self, url: str, document: Any) -> None:
        """Register a context document under an IRI.

        Raises:
            ContextParseFailure: If the document is not a JSON-LD context
                document, or would replace a bundled context.
        """
        if not isinstance(document, dict) or "@context" not in document:
            raise ContextParseFailure(
                f"Context document for [{url}] must be a JSON object with an @context entry"
            )
        if not isinstance(document["@context"], (dict, list, str)):
            raise ContextParseFailure(
                f"Context document for [{url}] has an invalid @context value"
            )

        existing = self._contexts.get(url)
        if existing == document:
            return
        if url in BUNDLED_CONTEXTS:
            raise ContextParseFailure(f"The bundled context [{url}] cannot be replaced")
        if existing is not None:
            self.generation += 1

        logger.info("Registered JSON-LD context %s", url)
        self._contexts[url] = copy.deepcopy(document)

    def load(
        self,
        url: str,
        allow_remote_fetch: bool | None = None,
        contexts: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Return the context document for an IRI.

        Args:
            url: The context IRI.
            allow_remote_fetch: Overrides the cache-wide remote fetch setting.
            contexts: Context documents supplied for this request.

        Returns:
            A copy of the context document.

        Raises:
            UnknownContext: If the context is unknown and may not be fetched.
            ContextFetchFailure: If the remote fetch fails.
            ContextParseFailure: If the fetched document is not a context.
        """
        if contexts and url in contexts:
            self.add(url, contexts[url])

        document = self._contexts.get(url)
        if document is not None:
            logger.debug("Using cached JSON-LD context for %s", url)
            return copy.deepcopy(document)

        if allow_remote_fetch is None:
            allow_remote_fetch = self.allow_remote_fetch
        if not allow_remote_fetch:
            raise UnknownContext(url)

        logger.warning(
            "Context %s is not bundled; fetching it because remote context fetching is enabled",
            url,
        )
        document = self._fetch(url)
        self.add(url, document)
        return copy.deepcopy(document)

    def _fetch(self, url: str) -> Any:
        """Fetch a context document over HTTP.

        Raises:
            ContextFetchFailure: On HTTP or network errors.
            ContextParseFailure: If the body is not JSON.
        """
        try:
            with httpx.Client(timeout=self.timeout, verify=self.verify_ssl) as client:
                with client.stream(
                    "GET",
                    url,
                    headers={"Accept": "application/ld+json, application/json"},
                ) as response:
                    response.raise_for_status()
                    check_response_size(response)
                    body = response.read()

        except httpx.HTTPStatusError as e:
            raise ContextFetchFailure(
                f"HTTP error fetching context {url}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ContextFetchFailure(f"Network error fetching context {url}: {e}") from e

        logger.info("Fetched remote JSON-LD context %s", url)
        try:
            return json.loads(body)
        except ValueError as e:
            raise ContextParseFailure(f"Invalid JSON in context document {url}") from e

    def document_loader(
        self,
        allow_remote_fetch: bool | None = None,
        contexts: Mapping[str, Any] | None = None,
    ) -> DocumentLoader:
        """Create a pyld document loader backed by this cache."""

        def loader(url: str, options: Any = None) -> dict[str, Any]:
            return {
                "contextUrl": None,
                "documentUrl": url,
                "document": self.load(
                    url, allow_remote_fetch=allow_remote_fetch, contexts=contexts
                ),
            }

        return loader

    def pyld_options(
        self,
        allow_remote_fetch: bool | None = None,
        contexts: Mapping[str, Any] | None = None,
        base: str | None = None,
    ) -> dict[str, Any]:
        """Build the pyld processing options for one request.

        Each request gets its own pyld context resolver so that pyld's
        process-wide resolution cache cannot bypass the allow-list.
        """
        loader = self.document_loader(allow_remote_fetch, contexts)
        return {
            "base": base or "",
            "documentLoader": loader,
            "contextResolver": PyLdContextResolver(LRUCache(maxsize=100), loader),
        }

    def clear_cache(self) -> None:
        """Forget every context that is not bundled."""
        if len(self._contexts) != len(BUNDLED_CONTEXTS):
            self.generation += 1
        self._contexts = copy.deepcopy(BUNDLED_CONTEXTS)


_default_cache = ContextCache()


def default_context_cache() -> ContextCache:
    """Return the process-wide context cache."""
    return _default_cache
