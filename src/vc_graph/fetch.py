"""
Fetching credentials over HTTP.

Responses are streamed so that the size guard can reject an oversized or
unsized body from its headers, before the body is buffered.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from vc_graph.config import check_response_size
from vc_graph.contexts import ContextCache
from vc_graph.document import GraphBackedDocument
from vc_graph.exceptions import FetchError, ShapeViolation
from vc_graph.parser import load_json, parse_document
from vc_graph.shapes import is_credential

logger = logging.getLogger(__name__)

ACCEPT_JSON_LD = "application/ld+json, application/vc+ld+json, application/json"


def fetch_json_ld(
    url: str,
    client: httpx.Client | None = None,
    timeout: float = 30.0,
    verify_ssl: bool = True,
) -> Any:
    """Fetch and decode a JSON-LD document.

    Args:
        url: URL of the document.
        client: HTTP client to use. A short-lived client is created if not
            provided.
        timeout: HTTP request timeout in seconds, for a created client.
        verify_ssl: Whether a created client verifies SSL certificates.

    Returns:
        The decoded JSON document.

    Raises:
        FetchError: On HTTP or network errors.
        UnsafeResponseError: If the response is too large or unsized while a
            maximum is configured.
        GraphParseFailure: If the body is empty or not JSON.
    """
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=timeout, verify=verify_ssl, follow_redirects=True)

    try:
        with client.stream("GET", url, headers={"Accept": ACCEPT_JSON_LD}) as response:
            response.raise_for_status()
            check_response_size(response)
            body = response.read()

    except httpx.HTTPStatusError as e:
        raise FetchError(f"HTTP error fetching {url}: {e.response.status_code}") from e
    except httpx.RequestError as e:
        raise FetchError(f"Network error fetching {url}: {e}") from e
    finally:
        if owns_client:
            client.close()

    logger.debug("Fetched %d bytes from %s", len(body), url)
    return load_json(body)


def get_verifiable_credential(
    url: str,
    *,
    client: httpx.Client | None = None,
    contexts: Mapping[str, Any] | None = None,
    allow_remote_context_fetch: bool | None = None,
    cache: ContextCache | None = None,
    timeout: float = 30.0,
    verify_ssl: bool = True,
) -> GraphBackedDocument:
    """Fetch a credential and check that it is a valid Verifiable Credential.

    Raises:
        FetchError: If the credential cannot be fetched.
        ShapeViolation: If the document is not a Verifiable Credential.
    """
    data = fetch_json_ld(url, client=client, timeout=timeout, verify_ssl=verify_ssl)
    vc = parse_document(
        data,
        base_iri=url,
        contexts=contexts,
        allow_remote_context_fetch=allow_remote_context_fetch,
        cache=cache,
    )
    if vc.id is None or not is_credential(vc.graph, vc.id):
        raise ShapeViolation(f"The data at [{url}] is not a valid Verifiable Credential")
    return vc
