"""
JSON-LD context resolution.

Turns one or more context references (IRIs, inline mappings, arrays) into a
NormalizedContext that can compact an IRI to a short term and expand a term
back to an IRI. Context processing itself is delegated to pyld; the
resolver memoises a bounded number of results, keyed by a canonical
serialization of its input.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

from cachetools import LRUCache
from pyld import jsonld

from vc_graph.contexts import ContextCache, default_context_cache
from vc_graph.exceptions import ContextParseFailure, VCGraphError
from vc_graph.vocab import CREDENTIALS_V1_URL

logger = logging.getLogger(__name__)

# Memoised resolutions kept per resolver.
DEFAULT_MAX_RESOLVED = 1024

# Characters that make an IRI usable as a CURIE prefix.
_PREFIX_DELIMITERS = ("/", "#", ":", "?", "[", "]", "@")


@dataclass(frozen=True)
class TermDefinition:
    """A single term of a normalized context."""

    iri: str
    type_mapping: str | None = None
    container: tuple[str, ...] = ()
    scoped: bool = False


@dataclass(frozen=True)
class NormalizedContext:
    """A merged, read-only JSON-LD context.

    ``terms`` are the top-level terms of the active context. ``scoped_terms``
    are terms only defined inside type- or property-scoped contexts; they are
    consulted after the top-level terms.
    """

    terms: dict[str, TermDefinition] = field(default_factory=dict)
    scoped_terms: dict[str, TermDefinition] = field(default_factory=dict)
    base: str | None = None
    vocab: str | None = None

    def term_definition(self, term: str) -> TermDefinition | None:
        """Return the definition of a term, top-level terms first."""
        return self.terms.get(term) or self.scoped_terms.get(term)

    def keyword_alias(self, keyword: str) -> str:
        """Return the shortest term aliasing a keyword (e.g. ``type`` for ``@type``)."""
        aliases = [term for term, d in self.terms.items() if d.iri == keyword]
        return min(aliases, key=lambda t: (len(t), t)) if aliases else keyword

    def expand(self, term: str) -> str:
        """Expand a term, CURIE or relative IRI to an absolute IRI."""
        if term.startswith("@"):
            return term

        definition = self.term_definition(term)
        if definition is not None:
            return definition.iri

        if ":" in term:
            prefix, suffix = term.split(":", 1)
            if prefix == "_" or suffix.startswith("//"):
                return term
            prefix_definition = self.term_definition(prefix)
            if prefix_definition is not None:
                return prefix_definition.iri + suffix
            return term

        if self.vocab:
            return self.vocab + term
        if self.base:
            return urljoin(self.base, term)
        return term

    def compact(self, iri: str, vocab: bool = True) -> str:
        """Compact an IRI to a term, a CURIE, or leave it unchanged.

        Args:
            iri: The absolute IRI (or keyword) to compact.
            vocab: Whether terms and @vocab may be used, as for predicates
                and type values.
        """
        if iri.startswith("@"):
            return self.keyword_alias(iri)

        if vocab:
            for table in (self.terms, self.scoped_terms):
                term = _select_term(table, iri)
                if term is not None:
                    return term

        for table in (self.terms, self.scoped_terms):
            curie = _select_curie(table, iri)
            if curie is not None:
                return curie

        if vocab and self.vocab and iri.startswith(self.vocab):
            suffix = iri[len(self.vocab):]
            if suffix and self.term_definition(suffix) is None:
                return suffix

        return iri


def _select_term(table: Mapping[str, TermDefinition], iri: str) -> str | None:
    candidates = [term for term, d in table.items() if d.iri == iri and ":" not in term]
    return min(candidates, key=lambda t: (len(t), t)) if candidates else None


def _select_curie(table: Mapping[str, TermDefinition], iri: str) -> str | None:
    candidates = []
    for term, d in table.items():
        if ":" in term or d.iri == iri or not iri.startswith(d.iri):
            continue
        if not d.iri.endswith(_PREFIX_DELIMITERS):
            continue
        candidates.append(f"{term}:{iri[len(d.iri):]}")
    return min(candidates, key=lambda t: (len(t), t)) if candidates else None


def _term_definitions(active_ctx: Mapping[str, Any]) -> dict[str, TermDefinition]:
    """Read the term definitions out of a pyld active context."""
    terms: dict[str, TermDefinition] = {}
    for term, mapping in active_ctx.get("mappings", {}).items():
        if not mapping or not mapping.get("@id") or mapping.get("reverse"):
            continue
        container = mapping.get("@container") or ()
        if isinstance(container, str):
            container = (container,)
        terms[term] = TermDefinition(
            iri=mapping["@id"],
            type_mapping=mapping.get("@type"),
            container=tuple(container),
            scoped="@context" in mapping,
        )
    return terms


def find_library_error(error: BaseException) -> VCGraphError | None:
    """Find a vc_graph error wrapped inside a pyld error chain."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        if isinstance(current, VCGraphError):
            return current
        seen.add(id(current))
        current = getattr(current, "cause", None) or current.__cause__
    return None


def concatenate_contexts(*contexts: Any) -> list[Any]:
    """Merge context references into one ordered list without duplicates.

    Each argument may be a single reference (IRI or inline mapping), a list
    of references, or None.
    """
    result: list[Any] = []
    for context in contexts:
        if context is None:
            continue
        for item in context if isinstance(context, list) else [context]:
            if item not in result:
                result.append(item)
    return result


def _cache_key(refs: list[Any], parent: Mapping[str, Any], base: str | None) -> str:
    return json.dumps(
        {"context": refs, "parent": parent, "base": base or ""},
        sort_keys=True,
        separators=(",", ":"),
    )


class ContextResolver:
    """Resolves context references to memoised NormalizedContext objects."""

    def __init__(
        self, cache: ContextCache | None = None, max_entries: int = DEFAULT_MAX_RESOLVED
    ) -> None:
        """Initialize the resolver.

        Args:
            cache: Context cache used to load referenced contexts. The
                process-wide cache is used if not provided.
            max_entries: Number of resolutions to memoise; the least recently
                used is forgotten first.
        """
        self.cache = cache or default_context_cache()
        self._processor = jsonld.JsonLdProcessor()
        self._resolved: LRUCache[tuple[str, int], NormalizedContext] = LRUCache(
            maxsize=max_entries
        )

    def resolve(
        self,
        contexts: Any,
        parent_context: Mapping[str, Any] | None = None,
        allow_remote_fetch: bool | None = None,
        base: str | None = None,
    ) -> NormalizedContext:
        """Resolve context references into a single normalized context.

        Resolving the same references twice returns the same object while it is
        still memoised. An empty parent context is the same as no parent
        context.

        Args:
            contexts: A context reference or a list of them.
            parent_context: Settings applied before the references, e.g.
                ``{"@base": "https://example.org/"}``.
            allow_remote_fetch: Overrides the cache-wide remote fetch setting.
            base: Base IRI for relative references.

        Returns:
            The normalized context.

        Raises:
            UnknownContext: If a referenced context is not allow-listed.
            ContextParseFailure: If a context cannot be processed.
        """
        refs = concatenate_contexts(contexts)
        parent = dict(parent_context or {})
        key = (_cache_key(refs, parent, base), self.cache.generation)

        cached = self._resolved.get(key)
        if cached is not None:
            logger.debug("Using memoised context resolution")
            return cached

        options = self.cache.pyld_options(allow_remote_fetch, base=base)
        local = ([parent] if parent else []) + refs
        try:
            active = self._processor.process_context(None, None, options)
            if local:
                active = self._processor.process_context(active, local, options)
            terms = _term_definitions(active)
            scoped_terms = self._scoped_terms(active, terms, options)
        except jsonld.JsonLdError as e:
            inner = find_library_error(e)
            if inner is not None:
                raise inner from e
            raise ContextParseFailure(f"Could not process JSON-LD context: {e}") from e

        resolved = NormalizedContext(
            terms=terms,
            scoped_terms=scoped_terms,
            base=active.get("@base") or base or None,
            vocab=active.get("@vocab"),
        )
        self._resolved[key] = resolved
        return resolved

    def _scoped_terms(
        self,
        active: Mapping[str, Any],
        terms: Mapping[str, TermDefinition],
        options: dict[str, Any],
    ) -> dict[str, TermDefinition]:
        """Collect terms defined only inside scoped contexts."""
        scoped: dict[str, TermDefinition] = {}
        pending = [active]
        seen: set[str] = set()
        while pending:
            ctx = pending.pop()
            for term, mapping in ctx.get("mappings", {}).items():
                if not mapping or "@context" not in mapping:
                    continue
                marker = json.dumps(mapping["@context"], sort_keys=True)
                if marker in seen:
                    continue
                seen.add(marker)
                try:
                    inner = self._processor.process_context(ctx, mapping["@context"], options)
                except jsonld.JsonLdError as e:
                    logger.debug("Skipping scoped context of term %s: %s", term, e)
                    continue
                for name, definition in _term_definitions(inner).items():
                    if name not in terms:
                        scoped.setdefault(name, definition)
                pending.append(inner)
        return scoped

    def clear(self) -> None:
        """Forget memoised resolutions."""
        self._resolved.clear()


_default_resolver = ContextResolver()


def default_context_resolver() -> ContextResolver:
    """Return the process-wide context resolver."""
    return _default_resolver


def get_vc_context(*contexts: Any) -> NormalizedContext:
    """Resolve the credentials context, followed by any extra contexts."""
    return _default_resolver.resolve(concatenate_contexts(CREDENTIALS_V1_URL, *contexts))
