"""
Query parsing: raw query text -> QueryIntent.

Deterministic part of the hybrid parser. Known typos are corrected first,
then property filters are pulled out, the rest is segmented into keywords, and
stop words are removed from the keyword set. Semantic expansion
(expansion.merge) runs on top of the intent produced here.
"""

import logging
from typing import Optional

from ..config import RankingConfig
from ..models import QueryIntent
from .properties import PropertyExtractor
from .typos import TypoCorrector
from .stopwords import GENERIC_QUERY_WORDS, INTERNAL_STOP_WORDS, filter_stop_words, vagueness_ratio
from .tokenizer import segment, word_units

logger = logging.getLogger(__name__)

_VAGUENESS_VOCABULARY = GENERIC_QUERY_WORDS | INTERNAL_STOP_WORDS


class QueryParser:
    """Turns a query string into a QueryIntent without any network calls"""

    def __init__(
        self,
        config: RankingConfig,
        extractor: Optional[PropertyExtractor] = None,
        corrector: Optional[TypoCorrector] = None,
    ):
        self.config = config
        self.extractor = extractor or PropertyExtractor(config)
        self.corrector = corrector or TypoCorrector(config.typo_corrections, enabled=config.typo_correction)

    def is_vague(self, residual: str) -> bool:
        """
        Whether the keyword part of a query is mostly generic words.

        Computed on word units before stop-word removal: "what should I do"
        is vague precisely because of the words stop-word removal drops.
        """
        units = word_units(residual, _VAGUENESS_VOCABULARY)
        if not units:
            return False
        return vagueness_ratio(units) >= self.config.vague_threshold

    def parse(self, query: str) -> QueryIntent:
        """
        Parse a query into filters and keywords.

        Args:
            query: Raw user query

        Returns:
            QueryIntent with core keywords (stop words removed), keywords equal
            to the core keywords, and the extracted property filters

        Examples:
            >>> parser = QueryParser(RankingConfig())
            >>> intent = parser.parse("fix the login bug p1")
            >>> intent.core_keywords, intent.filters.priorities
            (['fix', 'login', 'bug'], [1])
        """
        corrected = self.corrector.correct(query or "")
        extraction = self.extractor.extract(corrected)
        vague = self.is_vague(extraction.residual)

        tokens = segment(extraction.residual)
        keywords = [
            kw for kw in filter_stop_words(tokens, self.config.stop_words)
            if not self.extractor.is_trigger(kw)
        ]

        intent = QueryIntent(
            original_query=query or "",
            core_keywords=keywords,
            keywords=list(keywords),
            filters=extraction.filters,
            consumed_terms=extraction.consumed_terms,
            vague=vague,
            corrected_query=corrected if corrected != (query or "") else None,
        )
        logger.debug(
            f"Parsed query {query!r}: keywords={keywords}, "
            f"filters={intent.filters.active_categories()}, vague={vague}"
        )
        return intent
