"""
Multi-factor task scoring.

Formula:
    composite = relevance × Rc + due_date × Dc + priority × Pc + status × Sc

Where:
    relevance = core_ratio × core_bonus + all_ratio × 1.0
        core_ratio = share of core keywords contained in the task text
        all_ratio  = share of all keywords (core + expansions) contained
    due_date  = weight of the task's urgency bucket
    priority  = weight of the task's priority level
    status    = score of the task's status category

Every function here is pure and total: absent or malformed inputs fall into
the "none" bucket/weight instead of raising, and all-zero configs are fine
(nothing divides by a coefficient).
"""

from datetime import date
from typing import List, Optional

from ..config import FALLBACK_STATUS_SCORE, DueDateWeights, PriorityWeights, RankingConfig

DUE_BUCKETS = ("overdue", "today", "this_week", "this_month", "future", "none")


def _containment_ratio(text: str, keywords: List[str]) -> float:
    if not keywords:
        return 0.0
    matched = sum(1 for kw in keywords if kw in text)
    return matched / len(keywords)


def relevance_score(text: str, core_keywords: List[str], all_keywords: List[str], core_bonus: float) -> float:
    """
    Keyword relevance of one task text.

    Args:
        text: Task text (compared case-insensitively)
        core_keywords: Keywords from the user's own query
        all_keywords: Core keywords plus expansions
        core_bonus: Extra weight for matching the user's own words

    Returns:
        Score in [0, core_bonus + 1]; 0 for empty keyword lists

    Example:
        >>> round(relevance_score("Fix login bug", ["fix", "bug"], ["fix", "bug", "repair"], 0.2), 4)
        0.8667
    """
    lowered = text.lower()
    core_ratio = _containment_ratio(lowered, core_keywords)
    all_ratio = _containment_ratio(lowered, all_keywords)
    return core_ratio * core_bonus + all_ratio * 1.0


def due_date_bucket(due: Optional[date], today: date) -> str:
    """
    Urgency bucket of a due date relative to the query's evaluation date.

    Examples:
        >>> due_date_bucket(date(2025, 3, 3), date(2025, 3, 1))
        'this_week'
        >>> due_date_bucket(None, date(2025, 3, 1))
        'none'
    """
    if due is None:
        return "none"
    days = (due - today).days
    if days < 0:
        return "overdue"
    if days == 0:
        return "today"
    if days <= 7:
        return "this_week"
    if days <= 30:
        return "this_month"
    return "future"


def due_date_score(due: Optional[date], weights: DueDateWeights, today: date) -> float:
    return getattr(weights, due_date_bucket(due, today))


def priority_score(level: Optional[int], weights: PriorityWeights) -> float:
    return weights.weight_for(level)


def status_score(category: Optional[str], config: RankingConfig) -> float:
    """
    Relevance weight of a status category (never its display order).

    None means an unset checkbox and scores as "open". Anything not configured
    scores as "other", or FALLBACK_STATUS_SCORE when "other" is missing too;
    RankingConfig.max_status_score accounts for that fallback.
    """
    found = config.status_category("open" if category is None else category)
    if found is None:
        found = config.status_category("other")
    return found.score if found is not None else FALLBACK_STATUS_SCORE


def composite_score(relevance: float, due: float, priority: float, status: float, config: RankingConfig) -> float:
    return (
        relevance * config.relevance_coefficient
        + due * config.due_date_coefficient
        + priority * config.priority_coefficient
        + status * config.status_coefficient
    )


def max_composite(config: RankingConfig, include_relevance: bool = True) -> float:
    """
    Theoretical maximum composite under the current config.

    The relevance term is left out for queries without active keywords,
    where every task has relevance 0 and the term can never be earned.
    """
    total = (
        config.due_date_weights.max_weight() * config.due_date_coefficient
        + config.priority_weights.max_weight() * config.priority_coefficient
        + config.max_status_score() * config.status_coefficient
    )
    if include_relevance:
        total += (config.core_bonus + 1.0) * config.relevance_coefficient
    return total


def max_relevance(config: RankingConfig) -> float:
    return config.core_bonus + 1.0

