"""
Unit tests for RankingConfig validation and env loading
"""

import json
import logging

import pytest

pytestmark = pytest.mark.unit
from taskrank.config import (
    FALLBACK_STATUS_SCORE,
    DueDateWeights,
    PriorityWeights,
    RankingConfig,
    StatusCategory,
    load_env_files,
    normalize_sort_order,
)


class TestValidation:
    """Test defensive clamping of user-edited settings"""

    def test_defaults(self):
        config = RankingConfig()
        assert config.relevance_coefficient == 20.0
        assert config.due_date_coefficient == 4.0
        assert config.core_bonus == 0.2
        assert config.sort_order == ["relevance", "dueDate", "priority"]
        assert config.languages == ["en", "zh"]

    @pytest.mark.parametrize("value", [-5, "abc", float("nan"), float("inf"), None])
    def test_bad_coefficient_clamps_to_zero(self, value):
        assert RankingConfig(relevance_coefficient=value).relevance_coefficient == 0.0

    def test_bad_value_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="taskrank.config"):
            RankingConfig(core_bonus=-1)
        assert "core_bonus" in caplog.text

    @pytest.mark.parametrize("value,expected", [(1.5, 1.0), (-0.2, 0.0), (0.4, 0.4), ("0.3", 0.3)])
    def test_fractions_clamped(self, value, expected):
        config = RankingConfig(quality_filter=value, min_relevance=value)
        assert config.quality_filter == expected
        assert config.min_relevance == expected

    def test_weights_clamped(self):
        weights = PriorityWeights(p1=-1, p2="x")
        assert weights.p1 == 0.0
        assert weights.p2 == 0.0
        assert DueDateWeights(overdue=3).max_weight() == 3.0

    def test_counts(self):
        config = RankingConfig(chunk_size=0, display_max=-3, ai_max="many", max_expansions="2")
        assert config.chunk_size == 1
        assert config.display_max == 0
        assert config.ai_max == 0
        assert config.max_expansions == 2

    def test_word_lists(self):
        config = RankingConfig(stop_words="Please, kindly ,", languages=["EN", " sv "])
        assert config.stop_words == ["please", "kindly"]
        assert config.languages == ["en", "sv"]


class TestSortOrder:
    """Test sort criteria normalization"""

    def test_duplicates_and_unknown_dropped(self):
        assert normalize_sort_order(["priority", "dueDate", "priority", "bogus"]) == ["relevance", "priority", "dueDate"]

    def test_relevance_kept_in_place(self):
        assert normalize_sort_order(["dueDate", "relevance"]) == ["dueDate", "relevance"]

    def test_comma_string_case_insensitive(self):
        assert normalize_sort_order("DUEDATE, alphabetical") == ["relevance", "dueDate", "alphabetical"]

    def test_not_a_list(self):
        assert normalize_sort_order(42) == ["relevance", "dueDate", "priority"]


class TestStatusCategories:
    """Test status lookup helpers"""

    def test_aliases_from_string(self):
        assert StatusCategory(aliases="a, b ,c").aliases == ["a", "b", "c"]

    def test_order_and_score(self):
        config = RankingConfig()
        assert config.status_order("open") == 1
        assert config.status_order("in_progress") == 2
        assert config.status_order("unknown") == 999
        assert config.max_status_score() == 1.0

    def test_bad_order(self):
        assert StatusCategory(order="first").order == 999

    def test_active_trigger_words(self):
        """Test only configured languages contribute trigger phrases"""
        english = RankingConfig(languages=["en"]).active_trigger_words()
        assert "urgent" in english["priority"]["1"]
        assert "紧急" not in english["priority"]["1"]
        both = RankingConfig().active_trigger_words()
        assert "紧急" in both["priority"]["1"]

    def test_max_status_score_includes_fallback(self):
        """Test unknown statuses cannot outscore the maximum when 'other' is missing"""
        config = RankingConfig(status_categories={"open": {"score": 0.1}})
        assert config.max_status_score() == FALLBACK_STATUS_SCORE


class TestMalformedNestedSettings:
    """Test wrongly shaped nested settings are dropped, never raised"""

    def test_status_category_not_an_object(self, caplog):
        with caplog.at_level(logging.WARNING, logger="taskrank.config"):
            config = RankingConfig(status_categories={"open": 5, "waiting": {"score": 0.4}})
        assert list(config.status_categories) == ["waiting"]
        assert "open" in caplog.text

    def test_no_usable_status_category_uses_defaults(self):
        config = RankingConfig(status_categories={"open": 5})
        assert config.status_categories["open"].score == 1.0
        assert "completed" in config.status_categories

    @pytest.mark.parametrize("value", ["open,done", 3, None])
    def test_status_categories_not_a_mapping(self, value):
        assert RankingConfig(status_categories=value).max_status_score() == 1.0

    def test_bad_category_fields(self):
        category = StatusCategory(aliases=7, symbols=None, display_name=["Open"], score="high")
        assert category.aliases == []
        assert category.symbols == []
        assert category.display_name == ""
        assert category.score == 0.0

    @pytest.mark.parametrize("field", ["priority_weights", "due_date_weights"])
    @pytest.mark.parametrize("value", [[1, 2], "heavy", 3])
    def test_weights_not_a_mapping(self, field, value):
        config = RankingConfig(**{field: value})
        assert getattr(config, field) == type(getattr(RankingConfig(), field))()

    def test_trigger_words_branches_dropped(self):
        config = RankingConfig(trigger_words={
            "en": {"priority": {"1": ["asap", 3], 2: "meh, later"}, "status": ["wip"]},
            "zh": "紧急",
        })
        assert config.trigger_words == {"en": {"priority": {"1": ["asap"], "2": ["meh", "later"]}}}

    def test_trigger_words_not_a_mapping(self):
        assert RankingConfig(trigger_words=["urgent"]).trigger_words["en"]["priority"]["1"][0] == "urgent"

    def test_config_file_with_bad_nested_values(self, monkeypatch, tmp_path):
        """Test a hand-edited file keeps its valid settings and drops the bad ones"""
        path = tmp_path / "ranking.json"
        path.write_text(json.dumps({
            "status_categories": {"open": 5},
            "trigger_words": {"en": "urgent"},
            "priority_weights": [1, 2, 3],
            "relevance_coefficient": 10,
        }), encoding="utf-8")
        monkeypatch.setenv("TASKRANK_CONFIG_FILE", str(path))
        config = RankingConfig.from_env()
        assert config.relevance_coefficient == 10.0
        assert config.status_categories["open"].score == 1.0
        assert config.trigger_words == {}
        assert config.priority_weights == PriorityWeights()

    def test_typo_settings(self):
        config = RankingConfig(typo_correction="no", typo_corrections={"Bugg": "Bug", "x": 3})
        assert config.typo_correction is False
        assert config.typo_corrections == {"bugg": "bug"}
        assert RankingConfig(typo_correction="maybe").typo_correction is True


class TestFromEnv:
    """Test env var, .env and config file loading"""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("TASKRANK_QUALITY_FILTER", "0.3")
        monkeypatch.setenv("TASKRANK_SORT_ORDER", "priority,dueDate")
        monkeypatch.setenv("TASKRANK_LANGUAGES", "en,sv")
        config = RankingConfig.from_env()
        assert config.quality_filter == 0.3
        assert config.sort_order == ["relevance", "priority", "dueDate"]
        assert config.languages == ["en", "sv"]

    def test_invalid_env_value_ignored(self, monkeypatch):
        monkeypatch.setenv("TASKRANK_CHUNK_SIZE", "lots")
        assert RankingConfig.from_env().chunk_size == 500

    def test_config_file_then_env(self, monkeypatch, tmp_path):
        """Test env vars win over the JSON file"""
        path = tmp_path / "ranking.json"
        path.write_text(json.dumps({"core_bonus": 0.5, "display_max": 10}), encoding="utf-8")
        monkeypatch.setenv("TASKRANK_CONFIG_FILE", str(path))
        monkeypatch.setenv("TASKRANK_DISPLAY_MAX", "20")
        config = RankingConfig.from_env()
        assert config.core_bonus == 0.5
        assert config.display_max == 20

    def test_unreadable_config_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TASKRANK_CONFIG_FILE", str(tmp_path / "missing.json"))
        assert RankingConfig.from_env().core_bonus == 0.2

    def test_base_settings(self):
        assert RankingConfig.from_env({"ai_max": 7}).ai_max == 7

    def test_env_local_preferred(self, monkeypatch, tmp_path):
        """Test .env.local wins over .env"""
        # registered with monkeypatch so the values dotenv writes are undone
        monkeypatch.setenv("TASKRANK_AI_MAX", "1")
        (tmp_path / ".env").write_text("TASKRANK_AI_MAX=5\n", encoding="utf-8")
        (tmp_path / ".env.local").write_text("TASKRANK_AI_MAX=9\n", encoding="utf-8")
        assert load_env_files(tmp_path) == tmp_path / ".env.local"
        assert RankingConfig.from_env().ai_max == 9

    def test_no_env_files(self, tmp_path):
        assert load_env_files(tmp_path) is None
