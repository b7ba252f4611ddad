"""
Stop words, generic query words and CJK helpers.

Stop words carry no search meaning and are removed from keyword sets before
relevance scoring (task text itself is never filtered). Generic words are a
separate, larger list used only to decide whether a query is vague
("what should I do today?") rather than specific ("fix login bug").
"""

import re
from typing import Iterable, List, Optional

# Always active; user stop words are added on top
INTERNAL_STOP_WORDS = frozenset([
    # English articles, prepositions, auxiliaries
    "the", "a", "an", "but", "for", "of", "with", "by", "from", "as",
    "is", "was", "are", "were",
    # English question words
    "me", "my", "all", "how", "what", "when", "where", "why", "which",
    "who", "whom", "whose", "do", "does", "did", "can", "could", "should",
    "would", "will", "have", "has", "had",
    # Chinese particles and question words
    "我", "的", "了", "吗", "呢", "啊", "如何", "怎么", "怎样", "什么",
    "哪些", "哪个", "哪里", "为什么",
])

GENERIC_QUERY_WORDS = frozenset([
    # English question words
    "what", "when", "where", "which", "how", "why", "who", "whom", "whose",
    # English generic verbs
    "do", "does", "did", "doing", "done", "make", "makes", "made", "making",
    "work", "works", "worked", "working", "get", "gets", "got", "getting",
    "go", "goes", "went", "going", "come", "comes", "came", "coming",
    "take", "takes", "took", "taking", "give", "gives", "gave", "giving",
    # English modals and auxiliaries
    "should", "could", "would", "might", "must", "can", "may", "shall", "will",
    "need", "needs", "needed", "needing", "have", "has", "had", "having",
    "want", "wants", "wanted", "wanting",
    # English pronouns that only occur in open-ended questions
    "i", "me", "my", "we", "our", "next", "now", "first",
    # English generic nouns
    "task", "tasks", "item", "items", "thing", "things", "job", "jobs",
    "stuff", "matter", "matters", "issue", "issues", "problem", "problems",
    # Chinese
    "什么", "怎么", "哪里", "哪个", "为什么", "怎样", "谁", "哪", "何",
    "做", "可以", "能", "应该", "需要", "有", "要", "干", "搞", "弄", "办", "处理",
    "任务", "事情", "东西", "工作", "活", "问题", "事", "事儿", "我",
    # Swedish
    "vad", "när", "var", "vilken", "vilka", "vilket", "hur", "varför", "vem",
    "göra", "gör", "gjorde", "gjort", "arbeta", "arbetar", "ta", "tar",
    "kan", "kunde", "ska", "skulle", "behöver", "har", "hade", "vill",
    "uppgift", "uppgifter", "sak", "saker", "jag",
])

_CJK = re.compile(
    r"[\u4e00-\u9fff\u3400-\u4dbf\uf900-\ufaff\u3040-\u309f\u30a0-\u30ff\U00020000-\U0002a6df]"
)


def is_cjk(text: str) -> bool:
    """True if the text contains any CJK ideograph or kana."""
    return bool(_CJK.search(text))


def stop_word_set(user_stop_words: Optional[Iterable[str]] = None) -> frozenset:
    if not user_stop_words:
        return INTERNAL_STOP_WORDS
    return INTERNAL_STOP_WORDS | {w.lower() for w in user_stop_words if w}


def filter_stop_words(words: Iterable[str], user_stop_words: Optional[Iterable[str]] = None) -> List[str]:
    """
    Remove stop words and single non-CJK characters from a keyword list.

    Order is preserved. Single CJK characters are kept since one ideograph
    is often a full word.

    Examples:
        >>> filter_stop_words(["fix", "the", "a", "bug", "x", "修"])
        ['fix', 'bug', '修']
    """
    stop_words = stop_word_set(user_stop_words)
    kept = []
    for word in words:
        if not word:
            continue
        if len(word) == 1 and not is_cjk(word):
            continue
        if word.lower() in stop_words:
            continue
        kept.append(word)
    return kept


def is_generic_word(word: str) -> bool:
    return word.lower() in GENERIC_QUERY_WORDS


def vagueness_ratio(keywords: List[str]) -> float:
    """
    Share of keywords that are generic query words (0.0 - 1.0).

    Exact word match: "task" is generic, "taskbar" is not. Must be computed on
    the keywords before stop-word removal, otherwise the question words that
    make a query vague are already gone.
    """
    if not keywords:
        return 0.0
    generic = sum(1 for kw in keywords if is_generic_word(kw))
    return generic / len(keywords)
