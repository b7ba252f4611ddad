"""
Local typo correction for query text (no AI required).

Runs before property extraction so misspelled trigger words still work:

    "urgant bug"         -> "urgent bug"        (priority 1)
    "due tommorow"       -> "due tomorrow"
    "s:open complated"   -> "s:open completed"

Only whole words found in the correction map are replaced. Values of
``key:value`` qualifiers and #tags are left alone, since those name
folders and tags the user typed on purpose.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# typo -> correction, all lowercase
COMMON_TYPOS: Dict[str, str] = {
    # tasks
    "taks": "task",
    "tasl": "task",
    "taskk": "task",
    "tsak": "task",
    "takss": "tasks",
    "tassks": "tasks",
    # priority
    "priorty": "priority",
    "priortiy": "priority",
    "priorit": "priority",
    "piority": "priority",
    "priorites": "priorities",
    "prioritys": "priorities",
    # status
    "opne": "open",
    "openn": "open",
    "complated": "completed",
    "compelted": "completed",
    "copleted": "completed",
    "compleated": "completed",
    "complet": "complete",
    "progres": "progress",
    "proggress": "progress",
    # urgency
    "urgant": "urgent",
    "urgnet": "urgent",
    "urgemt": "urgent",
    "urget": "urgent",
    "importent": "important",
    "imporant": "important",
    "imprtant": "important",
    "critcal": "critical",
    "criticla": "critical",
    # dates
    "overdu": "overdue",
    "overdeu": "overdue",
    "tommorow": "tomorrow",
    "tommorrow": "tomorrow",
    "tomorow": "tomorrow",
    "todya": "today",
    "toady": "today",
    # common words
    "paymant": "payment",
    "payemnt": "payment",
    "systme": "system",
    "sytem": "system",
    "sysem": "system",
    "desing": "design",
    "desgin": "design",
    "developement": "development",
    "devlopment": "development",
    "recieve": "receive",
    "reciept": "receipt",
    "seperete": "separate",
    "seperately": "separately",
    "definately": "definitely",
    "occured": "occurred",
    "occurence": "occurrence",
}

# A Latin word not glued to a qualifier colon, a #tag or a path
_WORD = re.compile(r"(?<![\w:#/])[A-Za-z]+(?![\w:])")


def _match_case(original: str, correction: str) -> str:
    """URGANT -> URGENT, Urgant -> Urgent, urgant -> urgent"""
    if original.isupper() and len(original) > 1:
        return correction.upper()
    if original[0].isupper():
        return correction[:1].upper() + correction[1:]
    return correction


class TypoCorrector:
    """
    Replaces known misspellings word by word.

    Args:
        extra: Additional typo -> correction entries; they override built-ins
        enabled: When False, correct() returns the query unchanged
    """

    def __init__(self, extra: Optional[Dict[str, str]] = None, enabled: bool = True):
        self.enabled = enabled
        self.corrections: Dict[str, str] = dict(COMMON_TYPOS)
        for typo, correction in (extra or {}).items():
            self.add(typo, correction)

    def add(self, typo: str, correction: str) -> None:
        typo = typo.strip().lower()
        correction = correction.strip().lower()
        if typo and correction:
            self.corrections[typo] = correction

    def has_correction(self, word: str) -> bool:
        return word.lower() in self.corrections

    def correct_with_changes(self, query: str) -> Tuple[str, List[Tuple[str, str]]]:
        """Corrected query plus the (typo, correction) pairs applied, in order."""
        if not self.enabled or not query:
            return query, []
        changes: List[Tuple[str, str]] = []

        def replace(match: re.Match) -> str:
            word = match.group(0)
            correction = self.corrections.get(word.lower())
            if correction is None:
                return word
            fixed = _match_case(word, correction)
            changes.append((word, fixed))
            return fixed

        corrected = _WORD.sub(replace, query)
        if changes:
            logger.info(f"Corrected query typos: {', '.join(f'{a}->{b}' for a, b in changes)}")
        return corrected, changes

    def correct(self, query: str) -> str:
        """
        Correct known typos in a query.

        Examples:
            >>> TypoCorrector().correct("Urgant paymant for #taks")
            'Urgent payment for #taks'
        """
        return self.correct_with_changes(query)[0]
