"""
Query text segmentation.

Segmentation pipeline:
1. Extract #tags whole (marker stripped) before anything else
2. Lowercase the remaining text
3. Alphabetic-script runs: split on whitespace and punctuation, hyphenated
   words kept whole
4. CJK runs (ideographs, kana): emit adjacent character bigrams, then the
   individual characters

CJK has no word delimiters, so step 4 deliberately over-segments: matching
downstream is substring containment, and every real word of two or more
characters contains at least one of the emitted bigrams.
"""

import re
from typing import Iterable, List

from .stopwords import is_cjk

_CJK_CLASS = r"\u4e00-\u9fff\u3400-\u4dbf\uf900-\ufaff\u3040-\u309f\u30a0-\u30ff\U00020000-\U0002a6df"

_TAG = re.compile(r"(?<![\w#])#([^\s#]+)")
_TOKEN = re.compile(
    rf"(?P<cjk>[{_CJK_CLASS}]+)"
    rf"|(?P<word>(?:(?![{_CJK_CLASS}])[^\W_])+(?:-(?:(?![{_CJK_CLASS}])[^\W_])+)*)"
)
_TRAILING_PUNCT = ".,;:!?)]}'\"，。；：！？）】"


def extract_tags(text: str) -> List[str]:
    """
    Return the #tags of a text, lowercased, without the marker.

    Examples:
        >>> extract_tags("Review #work/urgent notes, then #home.")
        ['work/urgent', 'home']
    """
    if not text:
        return []
    tags = []
    for match in _TAG.finditer(text):
        tag = match.group(1).rstrip(_TRAILING_PUNCT).lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def remove_tags(text: str) -> str:
    return _TAG.sub(" ", text) if text else ""


def _cjk_pieces(run: str) -> List[str]:
    if len(run) == 1:
        return [run]
    bigrams = [run[i:i + 2] for i in range(len(run) - 1)]
    return bigrams + list(run)


def segment(text: str) -> List[str]:
    """
    Split query text into ordered, unique, lowercase tokens.

    Args:
        text: Raw query text (property qualifiers should already be removed)

    Returns:
        List of tokens; empty for empty input

    Examples:
        >>> segment("Fix the login-page bug #backend")
        ['backend', 'fix', 'the', 'login-page', 'bug']

        >>> segment("修复登录bug")
        ['修复', '复登', '登录', '修', '复', '登', '录', 'bug']

        >>> segment("   ")
        []
    """
    if not text:
        return []

    tokens: List[str] = []
    seen = set()

    def add(token: str) -> None:
        if token and token not in seen:
            seen.add(token)
            tokens.append(token)

    for tag in extract_tags(text):
        add(tag)

    for match in _TOKEN.finditer(remove_tags(text).lower()):
        if match.group("cjk"):
            for piece in _cjk_pieces(match.group("cjk")):
                add(piece)
        else:
            add(match.group("word"))

    return tokens


def word_units(text: str, vocabulary: Iterable[str]) -> List[str]:
    """
    Split text into word-level units, with CJK runs split greedily on a vocabulary.

    Unlike segment() this does not over-segment: each character belongs to
    exactly one unit, so ratios over the units are meaningful. Unknown CJK
    stretches stay together as one unit.

    Examples:
        >>> word_units("我应该做什么", {"我", "应该", "做", "什么"})
        ['我', '应该', '做', '什么']
        >>> word_units("修复登录问题", {"问题"})
        ['修复登录', '问题']
    """
    if not text:
        return []
    vocabulary = set(vocabulary)
    longest = max((len(w) for w in vocabulary), default=1)

    units: List[str] = []
    for match in _TOKEN.finditer(remove_tags(text).lower()):
        run = match.group("cjk")
        if not run:
            units.append(match.group("word"))
            continue
        pending = ""
        i = 0
        while i < len(run):
            for size in range(min(longest, len(run) - i), 0, -1):
                if run[i:i + size] in vocabulary:
                    if pending:
                        units.append(pending)
                        pending = ""
                    units.append(run[i:i + size])
                    i += size
                    break
            else:
                pending += run[i]
                i += 1
        if pending:
            units.append(pending)
    return units


def deduplicate_overlapping(keywords: List[str]) -> List[str]:
    """
    Drop CJK keywords that are contained in a longer kept CJK keyword.

    Only applies to CJK: "登录" inside "登录页面" is redundant for containment
    matching, whereas Latin words like "chat" and "chatt" are distinct
    vocabulary and are both kept. Order of the input is preserved.

    Examples:
        >>> deduplicate_overlapping(["登录页面", "登录", "chat", "chatt"])
        ['登录页面', 'chat', 'chatt']
    """
    longest_first = sorted(set(keywords), key=len, reverse=True)
    kept = set()
    for keyword in longest_first:
        if is_cjk(keyword) and any(keyword != other and keyword in other and is_cjk(other) for other in kept):
            continue
        kept.add(keyword)

    result = []
    for keyword in keywords:
        if keyword in kept and keyword not in result:
            result.append(keyword)
    return result
