"""
Batch scoring over flat column arrays.

Same formulas as scorer.py, applied to one chunk of columns at a time with
numpy. Results are bit-identical to the per-task functions: every float
expression is evaluated in the same order on float64 values.

Column conventions (see executor.extract_columns):
    texts      list of lowercased task texts
    due        int64 date ordinals, 0 = no due date
    priority   int8 levels 1..4, 0 = no priority
    status     list of status category keys
"""

from typing import Dict, List, Sequence

import numpy as np

from ..config import DueDateWeights, PriorityWeights, RankingConfig
from .scorer import status_score


def relevance_batch(texts: Sequence[str], core_keywords: List[str], all_keywords: List[str], core_bonus: float) -> np.ndarray:
    """
    Relevance for a chunk of lowercased texts.

    Containment is counted once per distinct keyword and accumulated into the
    core and all-keyword hit counters.
    """
    n = len(texts)
    if n == 0 or (not all_keywords and not core_keywords):
        return np.zeros(n, dtype=np.float64)

    core_set = set(core_keywords)
    all_set = set(all_keywords)
    core_hits = np.zeros(n, dtype=np.float64)
    all_hits = np.zeros(n, dtype=np.float64)

    for keyword in dict.fromkeys(list(core_keywords) + list(all_keywords)):
        hits = np.fromiter((keyword in text for text in texts), dtype=bool, count=n)
        if keyword in core_set:
            core_hits += core_keywords.count(keyword) * hits
        if keyword in all_set:
            all_hits += all_keywords.count(keyword) * hits

    core_ratio = core_hits / len(core_keywords) if core_keywords else np.zeros(n, dtype=np.float64)
    all_ratio = all_hits / len(all_keywords) if all_keywords else np.zeros(n, dtype=np.float64)
    return core_ratio * core_bonus + all_ratio * 1.0


def due_date_batch(due: np.ndarray, today_ordinal: int, weights: DueDateWeights) -> np.ndarray:
    days = due - today_ordinal
    return np.select(
        [due == 0, days < 0, days == 0, days <= 7, days <= 30],
        [weights.none, weights.overdue, weights.today, weights.this_week, weights.this_month],
        default=weights.future,
    ).astype(np.float64)


def priority_batch(priority: np.ndarray, weights: PriorityWeights) -> np.ndarray:
    # index 0 is "no priority"
    table = np.array([weights.none, weights.p1, weights.p2, weights.p3, weights.p4], dtype=np.float64)
    return table[priority]


def status_batch(statuses: Sequence[str], config: RankingConfig) -> np.ndarray:
    lookup: Dict[str, float] = {}
    scores = np.empty(len(statuses), dtype=np.float64)
    for i, status in enumerate(statuses):
        score = lookup.get(status)
        if score is None:
            score = lookup[status] = status_score(status, config)
        scores[i] = score
    return scores


def composite_batch(relevance: np.ndarray, due: np.ndarray, priority: np.ndarray, status: np.ndarray, config: RankingConfig) -> np.ndarray:
    return (
        relevance * config.relevance_coefficient
        + due * config.due_date_coefficient
        + priority * config.priority_coefficient
        + status * config.status_coefficient
    )
