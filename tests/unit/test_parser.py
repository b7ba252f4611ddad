"""
Unit tests for QueryParser
"""

import pytest

pytestmark = pytest.mark.unit
from taskrank.config import RankingConfig
from taskrank.query.parser import QueryParser


@pytest.fixture
def parser():
    return QueryParser(RankingConfig())


class TestParse:
    """Test query parsing into keywords and filters"""

    def test_keywords_and_filters(self, parser):
        """Test stop words are dropped and p1 becomes a filter"""
        intent = parser.parse("fix the login bug p1")
        assert intent.core_keywords == ["fix", "login", "bug"]
        assert intent.keywords == ["fix", "login", "bug"]
        assert intent.filters.priorities == [1]
        assert intent.consumed_terms == ["p1"]
        assert not intent.vague

    def test_keywords_are_a_copy(self, parser):
        """Test keywords and core_keywords are independent lists"""
        intent = parser.parse("fix bug")
        intent.keywords.append("repair")
        assert intent.core_keywords == ["fix", "bug"]

    def test_user_stop_words(self):
        """Test configured stop words are removed from keywords"""
        parser = QueryParser(RankingConfig(stop_words=["please"]))
        assert parser.parse("please fix bug").core_keywords == ["fix", "bug"]

    def test_filter_only_query(self, parser):
        """Test a query made of filters has no keywords"""
        intent = parser.parse("p1 overdue s:open")
        assert intent.core_keywords == []
        assert not intent.keywords_active

    def test_empty_query(self, parser):
        intent = parser.parse("")
        assert intent.original_query == ""
        assert intent.keywords == []
        assert intent.filters.is_empty()

    def test_chinese_query(self, parser):
        """Test CJK keywords are segmented and triggers removed"""
        intent = parser.parse("紧急 修复登录")
        assert intent.filters.priorities == [1]
        assert "修复" in intent.core_keywords
        assert "登录" in intent.core_keywords
        assert "紧急" not in intent.core_keywords


class TestVagueness:
    """Test vague query detection"""

    def test_question_is_vague(self, parser):
        """Test generic question words make a query vague"""
        intent = parser.parse("what should I do today")
        assert intent.vague
        assert intent.filters.due_dates == ["today"]
        assert intent.keywords == []

    def test_vague_with_filters_disables_keywords(self, parser):
        """Test leftover words of a vague filtered query do not filter tasks"""
        intent = parser.parse("what tasks should I work on today")
        assert intent.vague
        assert intent.keywords == ["tasks", "work", "on"]
        assert not intent.keywords_active

    def test_vague_without_filters_keeps_keywords(self, parser):
        """Test a vague query without filters still filters by its keywords"""
        intent = parser.parse("what tasks should I work on")
        assert intent.vague
        assert intent.keywords_active

    def test_specific_query(self, parser):
        assert not parser.parse("fix login bug").vague

    def test_chinese_question(self, parser):
        """Test CJK vagueness is computed on word units"""
        assert parser.is_vague("我应该做什么")
        assert not parser.is_vague("修复登录错误")

    def test_threshold_from_config(self):
        """Test vague_threshold 1.0 requires every word to be generic"""
        parser = QueryParser(RankingConfig(vague_threshold=1.0))
        assert not parser.is_vague("what tasks should I work on")
        assert parser.is_vague("what should I do")


class TestTypoCorrection:
    """Test misspelled trigger words are corrected before extraction"""

    def test_misspelled_trigger(self, parser):
        """Test 'urgant bug' filters on priority 1"""
        intent = parser.parse("urgant bug")
        assert intent.filters.priorities == [1]
        assert intent.core_keywords == ["bug"]
        assert intent.original_query == "urgant bug"
        assert intent.corrected_query == "urgent bug"

    def test_misspelled_due_phrase(self, parser):
        intent = parser.parse("Call bank tommorow")
        assert intent.filters.due_dates == ["tomorrow"]
        assert intent.core_keywords == ["call", "bank"]

    def test_misspelled_keyword(self, parser):
        assert parser.parse("paymant sytem").core_keywords == ["payment", "system"]

    def test_clean_query_has_no_correction(self, parser):
        assert parser.parse("fix bug").corrected_query is None

    def test_custom_corrections(self):
        parser = QueryParser(RankingConfig(typo_corrections={"bugg": "bug"}))
        assert parser.parse("bugg report").core_keywords == ["bug", "report"]

    def test_disabled(self):
        intent = QueryParser(RankingConfig(typo_correction=False)).parse("urgant bug")
        assert intent.filters.is_empty()
        assert intent.core_keywords == ["urgant", "bug"]
