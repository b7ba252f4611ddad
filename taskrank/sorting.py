"""
Result ordering.

Primary key is the composite score (descending). The configured sort order
only breaks ties, criteria applied in list order:

    relevance      descending
    dueDate        ascending, tasks without a due date last
    priority       ascending (1 first), no priority last
    status         ascending by the category's configured order
    created        descending (newest first), missing last
    alphabetical   ascending, case-folded

Python's sort is stable, so tasks equal on every key keep their input order.
"""

from typing import Callable, List, Optional, Sequence

from .config import RankingConfig, normalize_sort_order
from .models import RankedTask

# Rounding keeps float noise from deciding between otherwise equal scores
SCORE_PRECISION = 9

NO_PRIORITY_RANK = 5


def _criterion_key(criterion: str, config: RankingConfig) -> Callable[[RankedTask], object]:
    if criterion == "relevance":
        return lambda r: -round(r.breakdown.relevance, SCORE_PRECISION)
    if criterion == "dueDate":
        return lambda r: (0, r.task.due_date.toordinal()) if r.task.due_date else (1, 0)
    if criterion == "priority":
        return lambda r: r.task.priority if r.task.priority is not None else NO_PRIORITY_RANK
    if criterion == "status":
        return lambda r: config.status_order(r.task.status)
    if criterion == "created":
        return lambda r: (0, -r.task.created_date.toordinal()) if r.task.created_date else (1, 0)
    if criterion == "alphabetical":
        return lambda r: r.task.text.casefold()
    raise ValueError(f"Unknown sort criterion: {criterion}")


def build_sort_key(config: RankingConfig, sort_order: Optional[Sequence[str]] = None) -> Callable[[RankedTask], tuple]:
    """
    Build the full sort key: composite first, then the tie-breakers.

    Args:
        config: Ranking config (status display order, default sort order)
        sort_order: Overrides config.sort_order; normalized the same way
    """
    criteria = normalize_sort_order(sort_order) if sort_order is not None else config.sort_order
    keys = [_criterion_key(c, config) for c in criteria]

    def key(ranked: RankedTask) -> tuple:
        return (-round(ranked.score, SCORE_PRECISION),) + tuple(k(ranked) for k in keys)

    return key


def sort_ranked(
    ranked: Sequence[RankedTask],
    config: RankingConfig,
    sort_order: Optional[Sequence[str]] = None,
) -> List[RankedTask]:
    """Return a new list in ranking order; the input is not modified."""
    return sorted(ranked, key=build_sort_key(config, sort_order))
