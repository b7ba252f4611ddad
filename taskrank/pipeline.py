"""
End-to-end ranking: query + tasks -> RankingResult.

Flow:
    parse query -> expand (optional) -> drop stop words -> columns
    -> structural filter -> batch scoring -> quality threshold
    -> minimum relevance -> sort -> display / for-AI slices

Every per-task stage runs through the ChunkedExecutor, so the event loop
gets control back after each chunk and cancellation is honored there.
rank_tasks_naive() is the straightforward per-task version of the same
pipeline; both must return identical results for any chunk size.
"""

import logging
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from .config import RankingConfig
from .executor import CancellationToken, ChunkedExecutor, ScoreCache, Scheduler, extract_columns
from .expansion.base import BaseExpander
from .expansion.merge import expand_intent
from .filtering import (
    finalize_diagnostics,
    matches_structural,
    quality_threshold,
    relevance_threshold,
    suppress_stop_words,
)
from .models import FilterDiagnostics, QueryIntent, RankedTask, RankingResult, ScoreBreakdown, TaskRecord
from .query.parser import QueryParser
from .query.properties import PropertyExtractor
from .scoring.scorer import composite_score, due_date_score, priority_score, relevance_score, status_score
from .scoring.vectorized import composite_batch, due_date_batch, priority_batch, relevance_batch, status_batch
from .sorting import sort_ranked

logger = logging.getLogger(__name__)

TaskInput = Union[TaskRecord, Mapping[str, Any]]


def to_records(tasks: Iterable[TaskInput]) -> List[TaskRecord]:
    """Accept TaskRecord objects or raw mappings from the indexer."""
    return [t if isinstance(t, TaskRecord) else TaskRecord.from_dict(t) for t in tasks]


def parse_intent(query: str, config: RankingConfig, extractor: Optional[PropertyExtractor] = None) -> QueryIntent:
    """Deterministic parse plus stop-word suppression (no expansion)."""
    parser = QueryParser(config, extractor)
    return suppress_stop_words(parser.parse(query), config)


def _build_result(
    ranked: List[RankedTask],
    intent: QueryIntent,
    diagnostics: FilterDiagnostics,
    config: RankingConfig,
    sort_order: Optional[Sequence[str]],
) -> RankingResult:
    ordered = sort_ranked(ranked, config, sort_order)
    return RankingResult(
        display=ordered[:config.display_max],
        for_ai=ordered[:config.ai_max],
        intent=intent,
        diagnostics=finalize_diagnostics(diagnostics),
    )


def _log_summary(query: str, diagnostics: FilterDiagnostics) -> None:
    logger.info(
        f"Query {query!r}: {diagnostics.input_count} tasks -> {diagnostics.structural_count} matched "
        f"-> {diagnostics.quality_count} above {diagnostics.quality_mode} threshold "
        f"{diagnostics.quality_threshold:.2f} -> {diagnostics.relevance_count} ranked"
    )


async def rank_tasks(
    tasks: Iterable[TaskInput],
    query: str,
    config: Optional[RankingConfig] = None,
    expander: Optional[BaseExpander] = None,
    scheduler: Optional[Scheduler] = None,
    cancel_token: Optional[CancellationToken] = None,
    today: Optional[date] = None,
    sort_order: Optional[Sequence[str]] = None,
) -> RankingResult:
    """
    Rank and filter tasks for a query.

    Args:
        tasks: TaskRecord objects or raw task mappings
        query: User query (qualifiers, trigger phrases and keywords)
        config: Ranking config (defaults when omitted)
        expander: Optional semantic expander; failures fall back silently
        scheduler: Where to yield between chunks (asyncio.sleep(0) by default)
        cancel_token: Checked at every chunk boundary
        today: Evaluation date for all due-date logic (date.today() by default)
        sort_order: Tie-break criteria overriding config.sort_order

    Returns:
        RankingResult with display and for-AI lists plus filter diagnostics

    Raises:
        QueryCancelledError: If the token was cancelled during the query
    """
    config = config or RankingConfig()
    today = today or date.today()
    executor = ChunkedExecutor(config.chunk_size, scheduler, cancel_token)

    extractor = PropertyExtractor(config)
    intent = QueryParser(config, extractor).parse(query)
    intent = await expand_intent(intent, expander, config, extractor)
    intent = suppress_stop_words(intent, config)
    executor.check_cancelled()

    columns = extract_columns(to_records(tasks))
    await executor.checkpoint()
    n = len(columns)
    diagnostics = FilterDiagnostics(input_count=n)

    # 1. structural match
    mask = np.zeros(n, dtype=bool)

    def structural_chunk(start: int, end: int) -> None:
        for i in range(start, end):
            mask[i] = matches_structural(columns.tasks[i], intent, today, columns.texts[i])

    await executor.for_each_chunk(n, structural_chunk)
    candidates = np.flatnonzero(mask)
    m = len(candidates)
    diagnostics.structural_count = m

    # 2. batch scoring of the candidates
    relevance = np.zeros(m, dtype=np.float64)
    composite = np.zeros(m, dtype=np.float64)
    cache = ScoreCache()
    today_ordinal = today.toordinal()

    def score_chunk(start: int, end: int) -> None:
        idx = candidates[start:end]
        r = relevance_batch([columns.texts[i] for i in idx], intent.core_keywords, intent.keywords, config.core_bonus)
        d = due_date_batch(columns.due[idx], today_ordinal, config.due_date_weights)
        p = priority_batch(columns.priority[idx], config.priority_weights)
        s = status_batch([columns.statuses[i] for i in idx], config)
        c = composite_batch(r, d, p, s, config)
        relevance[start:end] = r
        composite[start:end] = c
        for j, i in enumerate(idx):
            cache.put(columns.ids[i], ScoreBreakdown(
                relevance=float(r[j]),
                due_date=float(d[j]),
                priority=float(p[j]),
                status=float(s[j]),
                composite=float(c[j]),
            ))

    await executor.for_each_chunk(m, score_chunk)

    # 3. quality threshold
    threshold, mode = quality_threshold(composite, intent, config)
    keep = np.zeros(m, dtype=bool)

    def quality_chunk(start: int, end: int) -> None:
        keep[start:end] = composite[start:end] >= threshold

    await executor.for_each_chunk(m, quality_chunk)
    diagnostics.quality_mode = mode
    diagnostics.quality_threshold = threshold
    diagnostics.quality_count = int(keep.sum())
    diagnostics.top_composite = float(composite.max()) if m else None
    if keep.any():
        diagnostics.top_relevance = float(relevance[keep].max())

    # 4. minimum relevance
    min_relevance = relevance_threshold(intent, config)
    diagnostics.relevance_threshold = min_relevance
    if min_relevance is not None:
        def relevance_chunk(start: int, end: int) -> None:
            keep[start:end] &= relevance[start:end] >= min_relevance

        await executor.for_each_chunk(m, relevance_chunk)
    diagnostics.relevance_count = int(keep.sum())

    ranked = []
    for i in candidates[keep]:
        breakdown = cache.get(columns.ids[i])
        ranked.append(RankedTask(task=columns.tasks[i], score=breakdown.composite, breakdown=breakdown))

    await executor.checkpoint()
    result = _build_result(ranked, intent, diagnostics, config, sort_order)
    _log_summary(query, diagnostics)
    return result


def rank_tasks_naive(
    tasks: Iterable[TaskInput],
    query: str,
    config: Optional[RankingConfig] = None,
    today: Optional[date] = None,
    intent: Optional[QueryIntent] = None,
    sort_order: Optional[Sequence[str]] = None,
) -> RankingResult:
    """
    Reference implementation: one task at a time, no chunking, no expansion.

    Pass ``intent`` to rank with an already expanded query, e.g. the
    ``result.intent`` of a rank_tasks() call.
    """
    config = config or RankingConfig()
    today = today or date.today()
    if intent is None:
        intent = parse_intent(query, config)
    else:
        intent = suppress_stop_words(intent, config)

    records = to_records(tasks)
    diagnostics = FilterDiagnostics(input_count=len(records))

    candidates = [t for t in records if matches_structural(t, intent, today)]
    diagnostics.structural_count = len(candidates)

    scored = []
    for task in candidates:
        r = relevance_score(task.text, intent.core_keywords, intent.keywords, config.core_bonus)
        d = due_date_score(task.due_date, config.due_date_weights, today)
        p = priority_score(task.priority, config.priority_weights)
        s = status_score(task.status, config)
        c = composite_score(r, d, p, s, config)
        scored.append(RankedTask(task=task, score=c, breakdown=ScoreBreakdown(r, d, p, s, c)))

    composites = np.array([r.score for r in scored], dtype=np.float64)
    threshold, mode = quality_threshold(composites, intent, config)
    survivors = [r for r in scored if r.score >= threshold]
    diagnostics.quality_mode = mode
    diagnostics.quality_threshold = threshold
    diagnostics.quality_count = len(survivors)
    diagnostics.top_composite = max((r.score for r in scored), default=None)
    diagnostics.top_relevance = max((r.breakdown.relevance for r in survivors), default=None)

    min_relevance = relevance_threshold(intent, config)
    diagnostics.relevance_threshold = min_relevance
    if min_relevance is not None:
        survivors = [r for r in survivors if r.breakdown.relevance >= min_relevance]
    diagnostics.relevance_count = len(survivors)

    return _build_result(survivors, intent, diagnostics, config, sort_order)
