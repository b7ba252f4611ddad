"""
Task scoring.

Components:
- scorer: Pure per-task component scores, composite and its maximum
- vectorized: The same formulas over column arrays (numpy), chunk at a time
"""

from .scorer import (
    DUE_BUCKETS,
    composite_score,
    due_date_bucket,
    due_date_score,
    max_composite,
    max_relevance,
    priority_score,
    relevance_score,
    status_score,
)
from .vectorized import composite_batch, due_date_batch, priority_batch, relevance_batch, status_batch

__all__ = [
    "DUE_BUCKETS",
    "composite_score",
    "due_date_bucket",
    "due_date_score",
    "max_composite",
    "max_relevance",
    "priority_score",
    "relevance_score",
    "status_score",
    "composite_batch",
    "due_date_batch",
    "priority_batch",
    "relevance_batch",
    "status_batch",
]
