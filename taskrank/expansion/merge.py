"""
Merging expander output into a parsed query.

Rules:
- The expander is awaited under a timeout; any failure or timeout leaves the
  intent unexpanded (expansion_error records why)
- Core keywords are always kept unless the expander consumed them as a
  property term
- Expander filters only fill categories the deterministic extractor left
  empty; values are validated like query qualifiers
- Consumed terms and trigger phrases never end up as keywords
- Expansions per core keyword are capped at max_expansions × len(languages)
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional, Set

from ..config import RankingConfig
from ..models import PropertyFilters, QueryIntent
from ..query.properties import PropertyExtractor, normalize_due_spec
from ..query.tokenizer import deduplicate_overlapping, segment
from .base import BaseExpander, ExpansionRequest, ExpansionResult

logger = logging.getLogger(__name__)


def _consumed_tokens(terms: List[str]) -> Set[str]:
    tokens: Set[str] = set()
    for term in terms:
        term = term.strip().lower()
        if term:
            tokens.add(term)
            tokens.update(segment(term))
    return tokens


def validate_filters(raw: PropertyFilters, extractor: PropertyExtractor) -> PropertyFilters:
    """Keep only filter values that resolve the same way query qualifiers do."""
    validated = PropertyFilters()
    if raw.priority_mode in ("all", "none"):
        validated.priority_mode = raw.priority_mode
    elif raw.priority_mode is not None:
        logger.warning(f"Expander returned unknown priority mode {raw.priority_mode!r}, ignored")
    for level in raw.priorities:
        if level in (1, 2, 3, 4) and level not in validated.priorities:
            validated.priorities.append(level)
    for status in raw.statuses:
        resolved = extractor.resolve_status(status)
        if resolved is None:
            logger.warning(f"Expander returned unknown status {status!r}, ignored")
        elif resolved not in validated.statuses:
            validated.statuses.append(resolved)
    for value in raw.due_dates:
        spec = normalize_due_spec(value)
        if spec is None:
            logger.warning(f"Expander returned unknown due date {value!r}, ignored")
        elif spec not in validated.due_dates:
            validated.due_dates.append(spec)
    return validated


def merge_expansion(
    intent: QueryIntent,
    result: ExpansionResult,
    config: RankingConfig,
    extractor: PropertyExtractor,
) -> QueryIntent:
    """
    Combine a successful expansion with the deterministic intent.

    Returns:
        New QueryIntent with expanded keywords and filled-in filters
    """
    consumed = _consumed_tokens(result.consumed_terms)
    limit = config.max_expansions * max(len(config.languages), 1)

    def usable(keyword: str) -> bool:
        return bool(keyword) and keyword not in consumed and not extractor.is_trigger(keyword)

    core = [kw for kw in intent.core_keywords if kw not in consumed]
    if len(core) != len(intent.core_keywords):
        logger.info(f"Expander read {sorted(set(intent.core_keywords) - set(core))} as properties")

    expansions: List[str] = []
    for keyword in core:
        added = 0
        for candidate in result.expansions.get(keyword, []):
            candidate = candidate.strip().lower()
            if added >= limit:
                break
            if candidate == keyword or candidate in core or candidate in expansions or not usable(candidate):
                continue
            expansions.append(candidate)
            added += 1

    expansions = deduplicate_overlapping(expansions)
    keywords = list(core) + [kw for kw in expansions if kw not in core]

    filters = intent.filters.fill_missing(validate_filters(result.filters, extractor))

    return replace(
        intent,
        core_keywords=core,
        keywords=keywords,
        filters=filters,
        consumed_terms=intent.consumed_terms + [t for t in result.consumed_terms if t not in intent.consumed_terms],
        expanded=True,
        expansion_error=None,
    )


async def expand_intent(
    intent: QueryIntent,
    expander: Optional[BaseExpander],
    config: RankingConfig,
    extractor: PropertyExtractor,
) -> QueryIntent:
    """
    Run the expander on a parsed query and merge the result.

    Never raises for expander problems: a failure or timeout returns the
    intent unchanged apart from expansion_error. Cancellation of the calling
    task still propagates.
    """
    if expander is None or not intent.core_keywords:
        return intent

    request = ExpansionRequest(
        core_keywords=list(intent.core_keywords),
        languages=list(config.languages),
        max_expansions_per_language=config.max_expansions,
        original_query=intent.corrected_query or intent.original_query,
        status_keys=list(config.status_categories),
    )
    timeout = config.expansion_timeout if config.expansion_timeout > 0 else None

    try:
        result = await asyncio.wait_for(expander.expand(request), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Keyword expansion timed out after {timeout}s, using unexpanded keywords")
        return replace(intent, expansion_error=f"timed out after {timeout}s")
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning(f"Keyword expansion failed, using unexpanded keywords: {e}")
        return replace(intent, expansion_error=str(e) or type(e).__name__)

    merged = merge_expansion(intent, result, config, extractor)
    logger.debug(f"Expanded keywords: {len(intent.keywords)} -> {len(merged.keywords)}")
    return merged
