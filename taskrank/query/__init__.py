"""
Query understanding for task ranking.

Components:
- tokenizer: Text segmentation (whitespace words, CJK bigrams, #tags)
- stopwords: Stop words, generic query words, CJK detection
- typos: Correction of common misspellings before extraction
- properties: Deterministic property filter extraction
- parser: Query -> QueryIntent orchestration

Mutual exclusivity: a query fragment is either a property filter or a
keyword, never both.
"""

from .tokenizer import segment, extract_tags, remove_tags, deduplicate_overlapping
from .stopwords import filter_stop_words, is_cjk, vagueness_ratio
from .typos import TypoCorrector
from .properties import PropertyExtractor, ExtractionResult
from .parser import QueryParser

__all__ = [
    "segment",
    "extract_tags",
    "remove_tags",
    "deduplicate_overlapping",
    "filter_stop_words",
    "is_cjk",
    "vagueness_ratio",
    "TypoCorrector",
    "PropertyExtractor",
    "ExtractionResult",
    "QueryParser",
]
