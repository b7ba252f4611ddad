"""
Ranking configuration.

The configuration is user-editable (settings UI, env vars, JSON file), so it
is validated defensively: negative or non-numeric weights clamp to 0,
fractions clamp to [0, 1], unknown sort criteria are dropped. A bad value is
logged and replaced, it never stops a query.

Env overrides (all optional, prefix TASKRANK_):
    RELEVANCE_COEFFICIENT, DUE_DATE_COEFFICIENT, PRIORITY_COEFFICIENT,
    STATUS_COEFFICIENT, CORE_BONUS, QUALITY_FILTER, MIN_RELEVANCE,
    SORT_ORDER (comma list), STOP_WORDS (comma list), LANGUAGES (comma list),
    MAX_EXPANSIONS, VAGUE_THRESHOLD, CHUNK_SIZE, DISPLAY_MAX, AI_MAX,
    EXPANSION_TIMEOUT, TYPO_CORRECTION,
    CONFIG_FILE (JSON file applied before the env vars)
"""

import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "TASKRANK_"

SORT_CRITERIA = ("relevance", "dueDate", "priority", "status", "created", "alphabetical")

# language -> property -> canonical value -> trigger phrases
TriggerWords = Dict[str, Dict[str, Dict[str, List[str]]]]

DEFAULT_TRIGGER_WORDS: TriggerWords = {
    "en": {
        "priority": {
            "1": ["urgent", "highest priority", "high priority", "top priority"],
            "2": ["medium priority", "normal priority"],
            "3": ["low priority", "minor priority"],
            "none": ["no priority"],
        },
        "status": {
            "inProgress": ["in progress", "in-progress", "wip", "ongoing"],
            "open": ["not started", "unstarted"],
        },
        "due_date": {
            "overdue": ["overdue", "past due"],
            "today": ["due today", "today"],
            "tomorrow": ["due tomorrow", "tomorrow"],
            "week": ["this week"],
            "next-week": ["next week"],
            "month": ["this month"],
            "next-month": ["next month"],
            "future": ["upcoming"],
            "none": ["no due date"],
        },
    },
    "zh": {
        "priority": {
            "1": ["紧急", "最高优先级", "高优先级"],
            "2": ["中优先级"],
            "3": ["低优先级"],
        },
        "status": {
            "inProgress": ["进行中", "正在做"],
            "open": ["未完成", "待办"],
            "completed": ["已完成"],
            "cancelled": ["已取消"],
        },
        "due_date": {
            "overdue": ["过期", "逾期"],
            "today": ["今天"],
            "tomorrow": ["明天"],
            "week": ["本周", "这周"],
            "next-week": ["下周"],
            "month": ["本月"],
            "none": ["没有截止日期"],
        },
    },
    "sv": {
        "priority": {
            "1": ["brådskande", "hög prioritet"],
            "2": ["medel prioritet"],
            "3": ["låg prioritet"],
        },
        "status": {
            "inProgress": ["pågående"],
        },
        "due_date": {
            "overdue": ["försenad"],
            "today": ["idag"],
            "tomorrow": ["imorgon"],
            "week": ["denna vecka"],
            "next-week": ["nästa vecka"],
        },
    },
}


# Score of a status outside every configured category when "other" is not configured
FALLBACK_STATUS_SCORE = 0.5


def _clamp_non_negative(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Config value {name}={value!r} is not a number, using 0")
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        logger.warning(f"Config value {name}={value!r} is out of range, using 0")
        return 0.0
    return number


def _clamp_fraction(value: Any, name: str) -> float:
    number = _clamp_non_negative(value, name)
    if number > 1.0:
        logger.warning(f"Config fraction {name}={number} is above 1, using 1")
        return 1.0
    return number


def normalize_sort_order(criteria: Any) -> List[str]:
    """
    Normalize a user-supplied sort specification.

    Duplicates are removed (first occurrence wins), unknown criteria are
    dropped, and relevance is prepended when missing so that it is always
    the first tie-breaker eligible after the composite score.

    Examples:
        >>> normalize_sort_order(["priority", "dueDate", "priority", "bogus"])
        ['relevance', 'priority', 'dueDate']
    """
    if isinstance(criteria, str):
        criteria = [c.strip() for c in criteria.split(",")]
    if not isinstance(criteria, (list, tuple)):
        logger.warning(f"Sort order {criteria!r} is not a list, using default")
        criteria = ["relevance", "dueDate", "priority"]

    lookup = {c.lower(): c for c in SORT_CRITERIA}
    normalized: List[str] = []
    for raw in criteria:
        if not isinstance(raw, str) or not raw.strip():
            continue
        criterion = lookup.get(raw.strip().lower())
        if criterion is None:
            logger.warning(f"Unknown sort criterion {raw!r} ignored")
            continue
        if criterion not in normalized:
            normalized.append(criterion)

    if "relevance" not in normalized:
        normalized.insert(0, "relevance")
    return normalized


def normalize_status_key(value: str) -> str:
    """Case/separator-insensitive form: "In-Progress" and "inProgress" compare equal."""
    return value.lower().replace("-", "").replace("_", "").replace(" ", "")


def normalize_phrase(value: str) -> str:
    """Lowercase with runs of whitespace collapsed: " Top  Priority " -> "top priority"."""
    return " ".join(value.lower().split())


def _string_items(value: Any, name: str) -> List[str]:
    """Accept a list of strings or a "a, b, c" string; anything else is dropped."""
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if not isinstance(value, (list, tuple)):
        logger.warning(f"Config value {name}={value!r} is not a list, ignored")
        return []
    items = []
    for item in value:
        if isinstance(item, str):
            items.append(item)
        else:
            logger.warning(f"Config value {name} entry {item!r} is not a string, ignored")
    return items


def _sanitize_trigger_words(value: Any) -> Optional[TriggerWords]:
    """
    Drop malformed branches of a trigger-word tree; None when it is not an object at all.

    Canonical values may be given as numbers ({"1": ...} or {1: ...}); phrase
    lists may be comma-separated strings.
    """
    if not isinstance(value, dict):
        logger.warning(f"trigger_words must be an object, got {type(value).__name__}; using defaults")
        return None
    cleaned: TriggerWords = {}
    for language, properties in value.items():
        if not isinstance(properties, dict):
            logger.warning(f"trigger_words[{language!r}] is not an object, ignored")
            continue
        for prop, values in properties.items():
            if not isinstance(values, dict):
                logger.warning(f"trigger_words[{language!r}][{prop!r}] is not an object, ignored")
                continue
            for canonical, phrases in values.items():
                items = _string_items(phrases, f"trigger_words.{language}.{prop}.{canonical}")
                if items:
                    cleaned.setdefault(str(language), {}).setdefault(str(prop), {})[str(canonical)] = items
    return cleaned


class _WeightModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _non_negative(cls, value, info):
        return _clamp_non_negative(value, info.field_name)


class PriorityWeights(_WeightModel):
    """Priority curve: weight per priority level"""
    p1: float = 1.0
    p2: float = 0.75
    p3: float = 0.5
    p4: float = 0.2
    none: float = 0.1

    def weight_for(self, level: Optional[int]) -> float:
        return {1: self.p1, 2: self.p2, 3: self.p3, 4: self.p4}.get(level, self.none)

    def max_weight(self) -> float:
        return max(self.p1, self.p2, self.p3, self.p4, self.none)


class DueDateWeights(_WeightModel):
    """Due-date curve: weight per urgency bucket"""
    overdue: float = 1.5
    today: float = 1.0
    this_week: float = 1.0
    this_month: float = 0.5
    future: float = 0.2
    none: float = 0.1

    def max_weight(self) -> float:
        return max(self.overdue, self.today, self.this_week, self.this_month, self.future, self.none)


class StatusCategory(BaseModel):
    """
    One status category.

    ``score`` is the relevance weight used in the composite score, ``order``
    is the display position used when sorting by status. They are configured
    together but never substitute for each other.
    """
    model_config = ConfigDict(extra="ignore")

    symbols: List[str] = Field(default_factory=list)
    aliases: List[str] = Field(default_factory=list)
    score: float = 0.5
    order: int = 999
    display_name: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _score_non_negative(cls, value):
        return _clamp_non_negative(value, "status.score")

    @field_validator("order", mode="before")
    @classmethod
    def _order_int(cls, value):
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Status order {value!r} is not an integer, using 999")
            return 999

    @field_validator("aliases", mode="before")
    @classmethod
    def _split_list(cls, value, info):
        # aliases are edited as "a, b, c" in the settings UI
        return _string_items(value, f"status.{info.field_name}")

    @field_validator("symbols", mode="before")
    @classmethod
    def _symbol_list(cls, value):
        # " " and "" are real symbols, so a lone symbol is never stripped
        if isinstance(value, str):
            return [s.strip() for s in value.split(",")] if "," in value else [value]
        if not isinstance(value, (list, tuple)):
            if value is not None:
                logger.warning(f"Status symbols {value!r} is not a list, ignored")
            return []
        return [v for v in value if isinstance(v, str)]

    @field_validator("display_name", mode="before")
    @classmethod
    def _display_name(cls, value):
        return value if isinstance(value, str) else ""


def _default_status_categories() -> Dict[str, StatusCategory]:
    return {
        "open": StatusCategory(symbols=[" ", ""], aliases=["o", "todo", "incomplete"], score=1.0, order=1, display_name="Open"),
        "inProgress": StatusCategory(symbols=["/", "~"], aliases=["wip", "doing", "in-progress"], score=0.75, order=2, display_name="In progress"),
        "other": StatusCategory(symbols=[], aliases=[], score=0.5, order=5, display_name="Other"),
        "completed": StatusCategory(symbols=["x", "X"], aliases=["done", "finished"], score=0.2, order=6, display_name="Completed"),
        "cancelled": StatusCategory(symbols=["-"], aliases=["canceled", "dropped"], score=0.1, order=7, display_name="Cancelled"),
    }


class RankingConfig(BaseModel):
    """All tunables of the ranking pipeline. Read-only to the core."""
    model_config = ConfigDict(extra="ignore")

    relevance_coefficient: float = 20.0
    due_date_coefficient: float = 4.0
    priority_coefficient: float = 1.0
    status_coefficient: float = 1.0
    core_bonus: float = 0.2

    priority_weights: PriorityWeights = Field(default_factory=PriorityWeights)
    due_date_weights: DueDateWeights = Field(default_factory=DueDateWeights)
    status_categories: Dict[str, StatusCategory] = Field(default_factory=_default_status_categories)

    stop_words: List[str] = Field(default_factory=list)
    quality_filter: float = 0.0        # 0 = adaptive
    min_relevance: float = 0.0         # 0 = disabled
    sort_order: List[str] = Field(default_factory=lambda: ["relevance", "dueDate", "priority"])

    trigger_words: TriggerWords = Field(default_factory=lambda: json.loads(json.dumps(DEFAULT_TRIGGER_WORDS)))
    languages: List[str] = Field(default_factory=lambda: ["en", "zh"])
    max_expansions: int = 5
    vague_threshold: float = 0.7
    expansion_timeout: float = 10.0

    typo_correction: bool = True
    typo_corrections: Dict[str, str] = Field(default_factory=dict)  # extra entries, override built-ins

    chunk_size: int = 500
    display_max: int = 50
    ai_max: int = 100

    @field_validator("priority_weights", "due_date_weights", mode="before")
    @classmethod
    def _weight_mapping(cls, value, info):
        if isinstance(value, (dict, _WeightModel)):
            return value
        logger.warning(f"{info.field_name}={value!r} is not an object, using defaults")
        return {}

    @field_validator("status_categories", mode="before")
    @classmethod
    def _status_mapping(cls, value):
        if not isinstance(value, dict):
            logger.warning(f"status_categories={value!r} is not an object, using defaults")
            return _default_status_categories()
        categories = {}
        for key, category in value.items():
            if not isinstance(key, str) or not key.strip():
                logger.warning(f"Status category key {key!r} is not a name, ignored")
            elif isinstance(category, (dict, StatusCategory)):
                categories[key] = category
            else:
                logger.warning(f"Status category {key!r}={category!r} is not an object, ignored")
        if not categories:
            logger.warning("No usable status categories configured, using defaults")
            return _default_status_categories()
        return categories

    @field_validator("trigger_words", mode="before")
    @classmethod
    def _trigger_tree(cls, value):
        cleaned = _sanitize_trigger_words(value)
        if cleaned is None:
            return json.loads(json.dumps(DEFAULT_TRIGGER_WORDS))
        return cleaned

    @field_validator("typo_correction", mode="before")
    @classmethod
    def _flag(cls, value, info):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "false", "0", "no"):
            return value.strip().lower() in ("true", "1", "yes")
        logger.warning(f"{info.field_name}={value!r} is not a boolean, using True")
        return True

    @field_validator("typo_corrections", mode="before")
    @classmethod
    def _typo_map(cls, value):
        if not isinstance(value, dict):
            if value is not None:
                logger.warning(f"typo_corrections={value!r} is not an object, ignored")
            return {}
        corrections = {}
        for typo, fixed in value.items():
            if isinstance(typo, str) and isinstance(fixed, str) and typo.strip() and fixed.strip():
                corrections[typo.strip().lower()] = fixed.strip().lower()
            else:
                logger.warning(f"Typo correction {typo!r} -> {fixed!r} ignored")
        return corrections

    @field_validator(
        "relevance_coefficient", "due_date_coefficient", "priority_coefficient",
        "status_coefficient", "core_bonus", "expansion_timeout", mode="before",
    )
    @classmethod
    def _coefficient_non_negative(cls, value, info):
        return _clamp_non_negative(value, info.field_name)

    @field_validator("quality_filter", "min_relevance", "vague_threshold", mode="before")
    @classmethod
    def _fraction(cls, value, info):
        return _clamp_fraction(value, info.field_name)

    @field_validator("sort_order", mode="before")
    @classmethod
    def _sort_order(cls, value):
        return normalize_sort_order(value)

    @field_validator("stop_words", "languages", mode="before")
    @classmethod
    def _word_list(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            return []
        return [str(v).strip().lower() for v in value if str(v).strip()]

    @field_validator("chunk_size", mode="before")
    @classmethod
    def _chunk_size(cls, value):
        try:
            size = int(value)
        except (TypeError, ValueError):
            logger.warning(f"chunk_size={value!r} is not an integer, using 500")
            return 500
        return max(size, 1)

    @field_validator("max_expansions", "display_max", "ai_max", mode="before")
    @classmethod
    def _count(cls, value, info):
        try:
            count = int(value)
        except (TypeError, ValueError):
            logger.warning(f"{info.field_name}={value!r} is not an integer, using 0")
            return 0
        return max(count, 0)

    def status_category(self, category: Optional[str]) -> Optional[StatusCategory]:
        """Look up a category by key, falling back to a separator-insensitive match."""
        if not category:
            return None
        direct = self.status_categories.get(category)
        if direct is not None:
            return direct
        wanted = normalize_status_key(category)
        for key, config in self.status_categories.items():
            if normalize_status_key(key) == wanted:
                return config
        return None

    def status_order(self, category: Optional[str]) -> int:
        config = self.status_category(category)
        return config.order if config is not None else 999

    def max_status_score(self) -> float:
        """Highest status score a task can get, including the unknown-status fallback."""
        scores = [c.score for c in self.status_categories.values()]
        if self.status_category("other") is None:
            scores.append(FALLBACK_STATUS_SCORE)
        return max(scores)

    def active_trigger_words(self) -> Dict[str, Dict[str, List[str]]]:
        """
        Merge the trigger lists of all configured languages (property -> value -> phrases).

        Phrases come back normalized (lowercase, single spaces); blank ones are dropped.
        """
        merged: Dict[str, Dict[str, List[str]]] = {}
        for language in self.languages:
            for prop, values in self.trigger_words.get(language, {}).items():
                bucket = merged.setdefault(prop, {})
                for value, phrases in values.items():
                    existing = bucket.setdefault(value, [])
                    for phrase in phrases:
                        phrase = normalize_phrase(phrase)
                        if phrase and phrase not in existing:
                            existing.append(phrase)
        return merged

    @classmethod
    def from_env(cls, base: Optional[Dict[str, Any]] = None) -> "RankingConfig":
        """
        Build a config from defaults, an optional JSON file and TASKRANK_* env vars.

        Args:
            base: Extra settings applied before the env vars (e.g. from the host UI)

        Returns:
            Validated RankingConfig (invalid values logged and replaced)
        """
        load_env_files()
        data: Dict[str, Any] = dict(base or {})

        config_file = os.getenv(f"{ENV_PREFIX}CONFIG_FILE")
        if config_file:
            try:
                with open(config_file, "r", encoding="utf-8") as f:
                    file_data = json.load(f)
                if isinstance(file_data, dict):
                    data.update(file_data)
                else:
                    logger.warning(f"Config file {config_file} does not hold an object, ignored")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not read config file {config_file}: {e}")

        for field_name, kind in _ENV_FIELDS.items():
            raw = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            if kind is list:
                data[field_name] = [v.strip() for v in raw.split(",") if v.strip()]
                continue
            try:
                data[field_name] = kind(raw)
            except ValueError:
                logger.warning(f"Ignoring {ENV_PREFIX}{field_name.upper()}={raw!r}: not a valid {kind.__name__}")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            rejected = sorted({str(error["loc"][0]) for error in e.errors() if error.get("loc")})
            logger.warning(f"Invalid config fields {rejected}, using defaults for them: {e}")
            return cls.model_validate({k: v for k, v in data.items() if k not in rejected})


_ENV_FIELDS = {
    "relevance_coefficient": float,
    "due_date_coefficient": float,
    "priority_coefficient": float,
    "status_coefficient": float,
    "core_bonus": float,
    "quality_filter": float,
    "min_relevance": float,
    "vague_threshold": float,
    "expansion_timeout": float,
    "max_expansions": int,
    "chunk_size": int,
    "display_max": int,
    "ai_max": int,
    "typo_correction": str,
    "sort_order": list,
    "stop_words": list,
    "languages": list,
}


def load_env_files(root: Optional[Path] = None) -> Optional[Path]:
    """
    Load .env.local (highest priority) or .env from the project root.

    Returns:
        Path of the loaded file, or None when only the process env is used
    """
    root = root or Path.cwd()
    env_local = root / ".env.local"
    env_file = root / ".env"

    if env_local.exists():
        load_dotenv(env_local, override=True)
        return env_local
    if env_file.exists():
        load_dotenv(env_file, override=True)
        return env_file
    return None
