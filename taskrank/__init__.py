"""
taskrank - query-driven ranking and filtering of checklist tasks.

Pipeline:
- query: property extraction and keyword segmentation (query/)
- expansion: optional semantic keyword expansion (expansion/)
- scoring: relevance, due date, priority and status sub-scores (scoring/)
- filtering, sorting: thresholds and deterministic ordering
- executor: chunked, cancellable execution on the asyncio event loop

Usage:
    from taskrank import RankingConfig, rank_tasks

    result = await rank_tasks(tasks, "urgent payment bug due:week", RankingConfig())
    for ranked in result.display:
        print(ranked.score, ranked.task.text)
"""

from .config import RankingConfig, StatusCategory
from .errors import ConfigError, ExpansionError, QueryCancelledError, TaskRankError
from .executor import AsyncioScheduler, CancellationToken, NullScheduler, Scheduler
from .models import (
    FilterDiagnostics,
    PropertyFilters,
    QueryIntent,
    RankedTask,
    RankingResult,
    ScoreBreakdown,
    TaskRecord,
)
from .pipeline import rank_tasks, rank_tasks_naive

__version__ = "0.1.0"

__all__ = [
    "RankingConfig",
    "StatusCategory",
    "ConfigError",
    "ExpansionError",
    "QueryCancelledError",
    "TaskRankError",
    "AsyncioScheduler",
    "CancellationToken",
    "NullScheduler",
    "Scheduler",
    "FilterDiagnostics",
    "PropertyFilters",
    "QueryIntent",
    "RankedTask",
    "RankingResult",
    "ScoreBreakdown",
    "TaskRecord",
    "rank_tasks",
    "rank_tasks_naive",
]
