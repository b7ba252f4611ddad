"""
Data model for the ranking pipeline.

TaskRecord is a read-only snapshot built fresh per query from the indexing
collaborator's raw mapping. Everything else here is produced by the
pipeline and discarded once the caller has rendered the result.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .utils import calculate_task_id, parse_date

PRIORITY_LEVELS = (1, 2, 3, 4)
DEFAULT_STATUS = "open"


def _coerce_priority(value: Any) -> Optional[int]:
    """Map a raw priority to 1..4, anything else means "none"."""
    if value is None or isinstance(value, bool):
        return None
    try:
        level = int(str(value).strip())
    except ValueError:
        return None
    return level if level in PRIORITY_LEVELS else None


def _coerce_tags(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split()
    tags = []
    for tag in value:
        if isinstance(tag, str) and tag.strip():
            tags.append(tag.strip().lstrip("#"))
    return tuple(tags)


@dataclass(frozen=True)
class TaskRecord:
    """Single checklist item as delivered by the indexing collaborator"""
    text: str
    status: str = DEFAULT_STATUS
    priority: Optional[int] = None       # 1 = highest, None = no priority
    due_date: Optional[date] = None
    created_date: Optional[date] = None
    completed_date: Optional[date] = None
    source_path: str = ""
    line_number: int = 0
    folder: str = ""
    tags: Tuple[str, ...] = ()
    note_tags: Tuple[str, ...] = ()

    @property
    def task_id(self) -> str:
        return calculate_task_id(self.source_path, self.line_number, self.text)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TaskRecord":
        """
        Build a record from a raw mapping, tolerating missing or malformed fields.

        Both snake_case and camelCase keys are accepted since exports from the
        indexer use the latter. Bad values degrade to "absent" instead of raising.

        Example:
            >>> TaskRecord.from_dict({"text": "Pay rent", "dueDate": "2025-13-01"}).due_date is None
            True
        """
        def pick(*keys, default=None):
            for key in keys:
                if key in raw and raw[key] is not None:
                    return raw[key]
            return default

        text = pick("text", default="")
        if not isinstance(text, str):
            text = str(text)

        status = pick("status", "statusCategory", default=DEFAULT_STATUS)
        if not isinstance(status, str) or not status.strip():
            status = DEFAULT_STATUS

        try:
            line_number = int(pick("line_number", "lineNumber", "line", default=0))
        except (TypeError, ValueError):
            line_number = 0

        return cls(
            text=text,
            status=status.strip(),
            priority=_coerce_priority(pick("priority")),
            due_date=parse_date(pick("due_date", "dueDate", "due")),
            created_date=parse_date(pick("created_date", "createdDate", "created")),
            completed_date=parse_date(pick("completed_date", "completedDate", "completed")),
            source_path=str(pick("source_path", "sourcePath", "path", default="")),
            line_number=line_number,
            folder=str(pick("folder", default="")),
            tags=_coerce_tags(pick("tags")),
            note_tags=_coerce_tags(pick("note_tags", "noteTags")),
        )


@dataclass(frozen=True)
class DateRange:
    """Inclusive due-date range; an open side is None"""
    start: Optional[date] = None
    end: Optional[date] = None


@dataclass
class PropertyFilters:
    """
    Structured filters recognized in a query.

    AND across categories, OR within one category. ``priority_mode`` carries
    the special values: "all" (task has any priority) or "none" (task has no
    priority); when set it overrides ``priorities``.
    """
    priorities: List[int] = field(default_factory=list)
    priority_mode: Optional[str] = None
    statuses: List[str] = field(default_factory=list)
    due_dates: List[str] = field(default_factory=list)
    due_range: Optional[DateRange] = None
    folders: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def has_priority(self) -> bool:
        return bool(self.priorities or self.priority_mode)

    @property
    def has_due_date(self) -> bool:
        return bool(self.due_dates or self.due_range)

    @property
    def has_status(self) -> bool:
        return bool(self.statuses)

    def active_categories(self) -> List[str]:
        active = []
        if self.has_priority:
            active.append("priority")
        if self.has_status:
            active.append("status")
        if self.has_due_date:
            active.append("dueDate")
        if self.folders:
            active.append("folder")
        if self.tags:
            active.append("tags")
        if self.notes:
            active.append("notes")
        return active

    def is_empty(self) -> bool:
        return not self.active_categories()

    def fill_missing(self, other: "PropertyFilters") -> "PropertyFilters":
        """Return a copy where each empty category is taken from ``other``."""
        merged = replace(self)
        if not self.has_priority:
            merged.priorities = list(other.priorities)
            merged.priority_mode = other.priority_mode
        if not self.has_status:
            merged.statuses = list(other.statuses)
        if not self.has_due_date:
            merged.due_dates = list(other.due_dates)
            merged.due_range = other.due_range
        if not self.folders:
            merged.folders = list(other.folders)
        if not self.tags:
            merged.tags = list(other.tags)
        if not self.notes:
            merged.notes = list(other.notes)
        return merged

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priorities": self.priority_mode or list(self.priorities),
            "statuses": list(self.statuses),
            "due_dates": list(self.due_dates),
            "due_range": (
                {
                    "start": self.due_range.start.isoformat() if self.due_range.start else None,
                    "end": self.due_range.end.isoformat() if self.due_range.end else None,
                }
                if self.due_range else None
            ),
            "folders": list(self.folders),
            "tags": list(self.tags),
            "notes": list(self.notes),
        }


@dataclass
class QueryIntent:
    """Parsed query: keywords on one side, property filters on the other"""
    original_query: str
    core_keywords: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)   # core + expansions
    filters: PropertyFilters = field(default_factory=PropertyFilters)
    consumed_terms: List[str] = field(default_factory=list)  # query text read as properties
    vague: bool = False
    expanded: bool = False
    expansion_error: Optional[str] = None
    corrected_query: Optional[str] = None  # set when typo correction changed the query

    @property
    def has_keywords(self) -> bool:
        return bool(self.keywords)

    @property
    def keywords_active(self) -> bool:
        """
        Whether keywords take part in filtering.

        Vague queries that carry property filters are driven by the properties;
        their keywords must not eliminate tasks with zero keyword overlap.
        """
        if not self.keywords:
            return False
        return not (self.vague and not self.filters.is_empty())


@dataclass(frozen=True)
class ScoreBreakdown:
    """Component scores of one task plus the weighted composite"""
    relevance: float
    due_date: float
    priority: float
    status: float
    composite: float


@dataclass(frozen=True)
class RankedTask:
    task: TaskRecord
    score: float
    breakdown: ScoreBreakdown


@dataclass
class FilterDiagnostics:
    """Per-stage counts and thresholds so callers can explain an empty result"""
    input_count: int = 0
    structural_count: int = 0
    quality_count: int = 0
    relevance_count: int = 0
    quality_mode: str = "adaptive"
    quality_threshold: float = 0.0
    relevance_threshold: Optional[float] = None
    top_composite: Optional[float] = None
    top_relevance: Optional[float] = None
    eliminated_by: Optional[str] = None

    def describe(self) -> str:
        if self.eliminated_by is None:
            return f"{self.relevance_count} of {self.input_count} tasks matched"
        if self.eliminated_by == "input":
            return "No tasks were provided by the index"
        if self.eliminated_by == "structural":
            return (
                f"None of {self.input_count} tasks matched the query filters; "
                "try removing a filter or broadening keywords"
            )
        if self.eliminated_by == "quality":
            return (
                f"All {self.structural_count} candidates scored below the quality "
                f"threshold {self.quality_threshold:.2f} ({self.quality_mode}); "
                f"best candidate scored {self.top_composite or 0.0:.2f}"
            )
        return (
            f"All {self.quality_count} candidates fell below the minimum relevance "
            f"{self.relevance_threshold or 0.0:.2f}; best relevance was "
            f"{self.top_relevance or 0.0:.2f}"
        )


@dataclass
class RankingResult:
    """Ranked output for direct display and the larger AI-analysis subset"""
    display: List[RankedTask]
    for_ai: List[RankedTask]
    intent: QueryIntent
    diagnostics: FilterDiagnostics

    @property
    def is_empty(self) -> bool:
        return not self.for_ai and not self.display
