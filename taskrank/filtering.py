"""
Filtering stages.

Stage order:
1. Structural match: property filters (AND across categories, OR within
   one) plus keyword presence when the query has active keywords
2. Stop-word suppression on the keyword sets, before relevance scoring
3. Quality threshold on the composite score (adaptive or explicit)
4. Minimum relevance, for keyword queries only

Stage 1 is a per-task predicate; stages 3 and 4 are threshold computations
applied by the pipeline to score arrays.
"""

import calendar
import logging
import re
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional, Tuple

import numpy as np

from .config import RankingConfig, normalize_status_key
from .models import FilterDiagnostics, QueryIntent, TaskRecord
from .query.stopwords import filter_stop_words
from .scoring.scorer import max_composite, max_relevance
from .utils import parse_date

logger = logging.getLogger(__name__)

# Adaptive mode keeps candidates scoring at least this share of the best
# candidate. Below 1, so a positive top candidate always survives.
ADAPTIVE_RATIO = 0.25

_RELATIVE_SPEC = re.compile(r"^\+(\d+)([dwm])$")


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _week_bounds(today: date, offset: int) -> Tuple[date, date]:
    # weeks start on Monday
    start = today - timedelta(days=today.weekday()) + timedelta(weeks=offset)
    return start, start + timedelta(days=6)


def _month_bounds(today: date, offset: int) -> Tuple[date, date]:
    first = add_months(today.replace(day=1), offset)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    return first, last


def matches_due_spec(due: Optional[date], spec: str, today: date) -> bool:
    """
    Whether a due date satisfies one due-date spec.

    Specs: any, none, overdue, today, tomorrow, yesterday, future, calendar
    periods (week, next-week, last-week, month, ..., year, ...), an ISO date
    (exact day), or +Nd / +Nw / +Nm (exactly N days/weeks/months from today).
    """
    if spec == "none":
        return due is None
    if due is None:
        return False
    if spec == "any":
        return True
    if spec == "overdue":
        return due < today
    if spec == "future":
        return due > today
    if spec == "today":
        return due == today
    if spec == "tomorrow":
        return due == today + timedelta(days=1)
    if spec == "yesterday":
        return due == today - timedelta(days=1)

    for period, bounds in (("week", _week_bounds), ("month", _month_bounds)):
        for prefix, offset in (("", 0), ("next-", 1), ("last-", -1)):
            if spec == f"{prefix}{period}":
                start, end = bounds(today, offset)
                return start <= due <= end
    for prefix, offset in (("", 0), ("next-", 1), ("last-", -1)):
        if spec == f"{prefix}year":
            return due.year == today.year + offset

    relative = _RELATIVE_SPEC.match(spec)
    if relative:
        amount, unit = int(relative.group(1)), relative.group(2)
        if unit == "d":
            target = today + timedelta(days=amount)
        elif unit == "w":
            target = today + timedelta(weeks=amount)
        else:
            target = add_months(today, amount)
        return due == target

    target = parse_date(spec)
    return target is not None and due == target


def _in_folder(task: TaskRecord, folder: str) -> bool:
    wanted = folder.strip().strip("/").lower()
    if not wanted:
        return True
    for path in (task.folder, task.source_path):
        path = path.strip("/").lower()
        if path == wanted or path.startswith(wanted + "/"):
            return True
    return False


def _has_tag(task: TaskRecord, tag: str) -> bool:
    # "work" also matches nested tags like "work/urgent"
    wanted = tag.lstrip("#").lower()
    for candidate in task.tags + task.note_tags:
        candidate = candidate.lower()
        if candidate == wanted or candidate.startswith(wanted + "/"):
            return True
    return False


def _in_note(task: TaskRecord, note: str) -> bool:
    name = task.source_path.rsplit("/", 1)[-1].lower()
    if name.endswith(".md"):
        name = name[:-3]
    return note.lower() in name


def matches_structural(task: TaskRecord, intent: QueryIntent, today: date, text_lower: Optional[str] = None) -> bool:
    """
    Structural match of one task: every active filter category must match.

    Within a category any value may match. The keyword check (any expanded
    keyword contained in the text) applies only when the query's keywords
    are active, see QueryIntent.keywords_active.
    """
    filters = intent.filters

    if filters.priority_mode == "all":
        if task.priority is None:
            return False
    elif filters.priority_mode == "none":
        if task.priority is not None:
            return False
    elif filters.priorities and task.priority not in filters.priorities:
        return False

    if filters.statuses:
        status = normalize_status_key(task.status or "open")
        if not any(normalize_status_key(s) == status for s in filters.statuses):
            return False

    if filters.due_dates and not any(matches_due_spec(task.due_date, spec, today) for spec in filters.due_dates):
        return False
    if filters.due_range is not None:
        if task.due_date is None:
            return False
        if filters.due_range.start and task.due_date < filters.due_range.start:
            return False
        if filters.due_range.end and task.due_date > filters.due_range.end:
            return False

    if filters.folders and not any(_in_folder(task, f) for f in filters.folders):
        return False
    if filters.tags and not any(_has_tag(task, t) for t in filters.tags):
        return False
    if filters.notes and not any(_in_note(task, n) for n in filters.notes):
        return False

    if intent.keywords_active:
        text = text_lower if text_lower is not None else task.text.lower()
        if not any(kw in text for kw in intent.keywords):
            return False

    return True


def suppress_stop_words(intent: QueryIntent, config: RankingConfig) -> QueryIntent:
    """Return a copy of the intent with stop words removed from both keyword sets."""
    core = filter_stop_words(intent.core_keywords, config.stop_words)
    keywords = filter_stop_words(intent.keywords, config.stop_words)
    if len(keywords) != len(intent.keywords):
        logger.debug(f"Stop words removed: {len(intent.keywords) - len(keywords)} keyword(s)")
    return replace(intent, core_keywords=core, keywords=keywords)


def quality_threshold(candidate_composites: np.ndarray, intent: QueryIntent, config: RankingConfig) -> Tuple[float, str]:
    """
    Composite cutoff for the quality stage.

    Returns:
        (threshold, mode) where mode is "explicit" or "adaptive"

    Explicit (quality_filter > 0): fraction of the theoretical maximum, so a
    higher fraction never keeps more tasks. Adaptive (quality_filter == 0):
    ADAPTIVE_RATIO of the best observed candidate, which adjusts to how well
    the current task set matches at all.
    """
    if config.quality_filter > 0:
        maximum = max_composite(config, include_relevance=intent.keywords_active)
        return config.quality_filter * maximum, "explicit"
    if candidate_composites.size == 0:
        return 0.0, "adaptive"
    top = float(candidate_composites.max())
    return max(top, 0.0) * ADAPTIVE_RATIO, "adaptive"


def relevance_threshold(intent: QueryIntent, config: RankingConfig) -> Optional[float]:
    """Minimum relevance, or None when the stage is skipped."""
    if not intent.keywords_active or config.min_relevance <= 0:
        return None
    return config.min_relevance * max_relevance(config)


def finalize_diagnostics(diagnostics: FilterDiagnostics) -> FilterDiagnostics:
    """Record the first stage that left no survivors."""
    if diagnostics.input_count == 0:
        diagnostics.eliminated_by = "input"
    elif diagnostics.structural_count == 0:
        diagnostics.eliminated_by = "structural"
    elif diagnostics.quality_count == 0:
        diagnostics.eliminated_by = "quality"
    elif diagnostics.relevance_count == 0:
        diagnostics.eliminated_by = "relevance"
    else:
        diagnostics.eliminated_by = None
    return diagnostics
