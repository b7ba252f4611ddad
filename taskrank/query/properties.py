"""
Property extraction from query text.

Recognizes priority, status, due-date, folder, tag and note filters anywhere
in a query and removes every matched substring, so whatever is left over can
be segmented into keywords. A word only counts as a property when it is a
configured trigger phrase or sits in a ``key:value`` qualifier:

    "urgent payment bug"        -> priority 1, keywords from "payment bug"
    "payment priority system"   -> no filter, all three words stay keywords
    "p1 overdue s:open report"  -> priority 1, due overdue, status open
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from ..config import RankingConfig, normalize_phrase, normalize_status_key
from ..models import DateRange, PropertyFilters
from ..utils import parse_date
from .stopwords import is_cjk
from .tokenizer import extract_tags, remove_tags

logger = logging.getLogger(__name__)

# Canonical due keywords understood by the structural filter
DUE_KEYWORDS = frozenset([
    "any", "none", "overdue", "today", "tomorrow", "yesterday", "future",
    "week", "last-week", "next-week", "month", "last-month", "next-month",
    "year", "last-year", "next-year",
])

_DUE_ALIASES = {
    "all": "any",
    "od": "overdue",
    "this-week": "week",
    "thisweek": "week",
    "this-month": "month",
    "thismonth": "month",
    "this-year": "year",
}

_PRIORITY_WORDS = {"high": 1, "medium": 2, "normal": 2, "low": 3, "lowest": 4}

_DATE = r"(\d{4}-\d{2}-\d{2}|\d{4}/\d{2}/\d{2}|\d{2}/\d{2}/\d{4})"
_VALUE = r"(\"[^\"]+\"|'[^']+'|[^\s\"']+)"

_RANGE_BETWEEN = re.compile(rf"\bfrom\s+{_DATE}\s+to\s+{_DATE}", re.IGNORECASE)
_RANGE_BEFORE = re.compile(rf"\b(?:due|date)\s+before:?\s*{_DATE}", re.IGNORECASE)
_RANGE_AFTER = re.compile(rf"\b(?:due|date)\s+after:?\s*{_DATE}", re.IGNORECASE)
_PRIORITY_QUALIFIER = re.compile(r"\b(?:p|priority):([^\s&|]+)", re.IGNORECASE)
_PRIORITY_SHORTHAND = re.compile(r"\bp([1-4])\b", re.IGNORECASE)
_STATUS_QUALIFIER = re.compile(r"\b(?:s|status):([^\s&|]+)", re.IGNORECASE)
_DUE_QUALIFIER = re.compile(r"\b(?:d|due):([^\s&|]+)", re.IGNORECASE)
_FOLDER_QUALIFIER = re.compile(rf"\b(?:in\s+)?folder:\s*{_VALUE}", re.IGNORECASE)
_FOLDER_PHRASE = re.compile(rf"\bin\s+folder\s+{_VALUE}", re.IGNORECASE)
_TAG_QUALIFIER = re.compile(r"\btag:([^\s&|]+)", re.IGNORECASE)
_NOTE_QUALIFIER = re.compile(rf"\bnote:\s*{_VALUE}", re.IGNORECASE)
_RELATIVE_PHRASE = re.compile(r"\bin\s+(\d+)\s+(day|days|week|weeks|month|months)\b", re.IGNORECASE)
_RELATIVE_SPEC = re.compile(r"^\+(\d+)([dwm])$")


@dataclass
class ExtractionResult:
    """Filters found in a query, the text left for keywords, and what was consumed"""
    filters: PropertyFilters
    residual: str
    consumed_terms: List[str] = field(default_factory=list)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _append_unique(items: list, value) -> None:
    if value not in items:
        items.append(value)


def normalize_due_spec(value: str) -> Optional[str]:
    """
    Canonicalize one due-date spec, or None when it is not understood.

    Examples:
        >>> normalize_due_spec("This-Week")
        'week'
        >>> normalize_due_spec("+3d")
        '+3d'
        >>> normalize_due_spec("2025/03/01")
        '2025-03-01'
    """
    spec = value.strip().lower()
    spec = _DUE_ALIASES.get(spec, spec)
    if spec in DUE_KEYWORDS or _RELATIVE_SPEC.match(spec):
        return spec
    parsed = parse_date(spec)
    return parsed.isoformat() if parsed else None


class PropertyExtractor:
    """
    Deterministic extraction of property filters from a query.

    Trigger phrases come from the config's per-language lists; they are
    matched longest first so "high priority" wins over a shorter phrase it
    contains. Latin phrases need word boundaries, CJK phrases do not.
    """

    def __init__(self, config: RankingConfig):
        self.config = config
        self._triggers: List[Tuple[str, str, str]] = []
        for prop, values in config.active_trigger_words().items():
            for value, phrases in values.items():
                for phrase in phrases:
                    self._triggers.append((phrase, prop, value))
        self._triggers.sort(key=lambda t: len(t[0]), reverse=True)
        self._trigger_lookup: Dict[str, Tuple[str, str]] = {
            phrase: (prop, value) for phrase, prop, value in reversed(self._triggers)
        }
        self._trigger_pattern = self._build_trigger_pattern()

    def _build_trigger_pattern(self) -> Optional[re.Pattern]:
        if not self._triggers:
            return None
        alternatives = []
        for phrase, _, _ in self._triggers:
            escaped = re.escape(phrase).replace(r"\ ", r"\s+")
            if is_cjk(phrase):
                alternatives.append(escaped)
            else:
                alternatives.append(rf"(?<!\w){escaped}(?!\w)")
        return re.compile("|".join(alternatives), re.IGNORECASE)

    def is_trigger(self, term: str) -> bool:
        """True if the term is itself a configured trigger phrase."""
        return normalize_phrase(term) in self._trigger_lookup

    def resolve_status(self, value: str) -> Optional[str]:
        """
        Resolve a status value by category key, alias, or checkbox symbol.

        Symbols are matched case-sensitively since "x" and "X" can be
        configured separately; keys and aliases are not.
        """
        if not value:
            return None
        for key, category in self.config.status_categories.items():
            if value in category.symbols:
                return key
        wanted = normalize_status_key(value)
        for key, category in self.config.status_categories.items():
            if normalize_status_key(key) == wanted:
                return key
            if any(normalize_status_key(alias) == wanted for alias in category.aliases):
                return key
        return None

    def extract(self, query: str) -> ExtractionResult:
        """
        Extract property filters from a query.

        Args:
            query: Raw user query

        Returns:
            ExtractionResult with filters, residual keyword text and the
            consumed substrings (lowercased)
        """
        filters = PropertyFilters()
        consumed: List[str] = []
        text = query or ""

        def consume(pattern: re.Pattern, handler) -> None:
            nonlocal text

            def replace(match: re.Match) -> str:
                if handler(match) is False:
                    return match.group(0)
                consumed.append(match.group(0).strip().lower())
                return " "

            text = pattern.sub(replace, text)

        consume(_RANGE_BETWEEN, lambda m: self._set_range(filters, parse_date(m.group(1)), parse_date(m.group(2))))
        consume(_RANGE_BEFORE, lambda m: self._set_range(filters, None, self._shift(m.group(1), -1)))
        consume(_RANGE_AFTER, lambda m: self._set_range(filters, self._shift(m.group(1), 1), None))
        consume(_PRIORITY_QUALIFIER, lambda m: self._add_priorities(filters, m.group(1)))
        consume(_PRIORITY_SHORTHAND, lambda m: _append_unique(filters.priorities, int(m.group(1))))
        consume(_STATUS_QUALIFIER, lambda m: self._add_statuses(filters, m.group(1)))
        consume(_DUE_QUALIFIER, lambda m: self._add_due_specs(filters, m.group(1)))
        consume(_FOLDER_QUALIFIER, lambda m: _append_unique(filters.folders, _unquote(m.group(1))))
        consume(_FOLDER_PHRASE, lambda m: _append_unique(filters.folders, _unquote(m.group(1))))
        consume(_TAG_QUALIFIER, lambda m: _append_unique(filters.tags, m.group(1).lstrip("#").lower()))
        consume(_NOTE_QUALIFIER, lambda m: _append_unique(filters.notes, _unquote(m.group(1))))
        consume(_RELATIVE_PHRASE, lambda m: _append_unique(filters.due_dates, f"+{m.group(1)}{m.group(2)[0].lower()}"))

        for tag in extract_tags(text):
            _append_unique(filters.tags, tag)
            consumed.append(f"#{tag}")
        text = remove_tags(text)

        if self._trigger_pattern is not None:
            consume(self._trigger_pattern, lambda m: self._apply_trigger(filters, m.group(0)))

        residual = " ".join(text.split())
        if not filters.is_empty():
            logger.debug(f"Extracted filters {filters.to_dict()} from query {query!r}, residual {residual!r}")
        return ExtractionResult(filters=filters, residual=residual, consumed_terms=consumed)

    def _apply_trigger(self, filters: PropertyFilters, matched: str):
        found = self._trigger_lookup.get(normalize_phrase(matched))
        if found is None:
            return False
        prop, value = found
        if prop == "priority":
            if value == "none":
                filters.priority_mode = "none"
            elif value.isdigit() and int(value) in (1, 2, 3, 4):
                _append_unique(filters.priorities, int(value))
            elif value in _PRIORITY_WORDS:
                _append_unique(filters.priorities, _PRIORITY_WORDS[value])
            else:
                logger.warning(f"Priority trigger {matched!r} maps to unknown level {value!r}, ignored")
                return False
        elif prop == "status":
            resolved = self.resolve_status(value)
            if resolved is None:
                logger.warning(f"Status trigger {matched!r} maps to unknown category {value!r}, ignored")
                return False
            _append_unique(filters.statuses, resolved)
        elif prop == "due_date":
            spec = normalize_due_spec(value)
            if spec is None:
                logger.warning(f"Due trigger {matched!r} maps to unknown spec {value!r}, ignored")
                return False
            _append_unique(filters.due_dates, spec)
        else:
            logger.warning(f"Trigger {matched!r} names unknown property {prop!r}, ignored")
            return False
        return None

    @staticmethod
    def _shift(value: str, days: int):
        parsed = parse_date(value)
        return parsed + timedelta(days=days) if parsed else None

    @staticmethod
    def _set_range(filters: PropertyFilters, start, end):
        if start is None and end is None:
            return False
        current = filters.due_range or DateRange()
        filters.due_range = DateRange(
            start=start if start is not None else current.start,
            end=end if end is not None else current.end,
        )
        return None

    @staticmethod
    def _add_priorities(filters: PropertyFilters, raw: str):
        for value in raw.lower().split(","):
            value = value.strip()
            if not value:
                continue
            if value in ("all", "any"):
                filters.priority_mode = "all"
            elif value == "none":
                filters.priority_mode = "none"
            elif value in _PRIORITY_WORDS:
                _append_unique(filters.priorities, _PRIORITY_WORDS[value])
            elif value.isdigit() and int(value) in (1, 2, 3, 4):
                _append_unique(filters.priorities, int(value))
            else:
                logger.warning(f"Unknown priority value {value!r} in query, ignored")

    def _add_statuses(self, filters: PropertyFilters, raw: str):
        for value in raw.split(","):
            value = value.strip()
            if not value or value.lower() in ("all", "any"):
                continue
            resolved = self.resolve_status(value)
            if resolved is None:
                logger.warning(f"Unknown status value {value!r} in query, ignored")
                continue
            _append_unique(filters.statuses, resolved)

    @staticmethod
    def _add_due_specs(filters: PropertyFilters, raw: str):
        for value in raw.split(","):
            if not value.strip():
                continue
            spec = normalize_due_spec(value)
            if spec is None:
                logger.warning(f"Unknown due date value {value!r} in query, ignored")
                continue
            _append_unique(filters.due_dates, spec)
