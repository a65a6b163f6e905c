"""
Exceptions raised by vc_graph.

Every error derives from VCGraphError so callers can catch the whole family.
The shape validators never raise these; they answer False instead.
"""

from __future__ import annotations


class VCGraphError(Exception):
    """Base class for all vc_graph errors."""


class ConfigurationError(VCGraphError, ValueError):
    """Raised when a process-wide setting is given an invalid value."""


class ContextError(VCGraphError):
    """Base class for JSON-LD context errors."""


class UnknownContext(ContextError):
    """Raised when a context is not allow-listed and remote fetching is disabled."""

    def __init__(self, url: str) -> None:
        super().__init__(
            f"Unknown JSON-LD context [{url}] (remote context fetching is disabled)"
        )
        self.url = url


class ContextParseFailure(ContextError):
    """Raised when a context document cannot be parsed or processed."""


class ContextFetchFailure(ContextError):
    """Raised when a remote context cannot be retrieved."""


class GraphParseFailure(VCGraphError):
    """Raised when a payload cannot be turned into a graph."""


class UnsafeResponseError(GraphParseFailure):
    """Raised when a response body is too large (or of unknown size) to parse."""

    def __init__(self, max_size: int, actual: str | None) -> None:
        super().__init__(
            "The response body is not safe to parse as JSON. "
            f"Max size=[{max_size}], actual=[{actual}]"
        )
        self.max_size = max_size
        self.actual = actual


class ShapeViolation(VCGraphError):
    """Raised when a graph does not have the structure a strict accessor expects."""


class ImmutableMutationAttempt(VCGraphError, AttributeError):
    """Raised when code tries to modify a graph or a graph-backed document."""


class UnexpectedTermKind(VCGraphError, TypeError):
    """Raised when a term is neither an IRI, a blank node nor a literal."""


class FetchError(VCGraphError):
    """Raised when a credential or presentation cannot be fetched."""
