"""
Abstract base class for semantic keyword expanders.

All expanders implement this interface so the pipeline can swap the LLM
expander for the offline lexicon (or none at all) without other changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from ..models import PropertyFilters


@dataclass
class ExpansionRequest:
    """What the expander gets: the residual keywords, never property terms"""
    core_keywords: List[str]
    languages: List[str]
    max_expansions_per_language: int
    original_query: str = ""
    status_keys: List[str] = field(default_factory=list)  # configured status categories


@dataclass
class ExpansionResult:
    """
    Expander output.

    ``expansions`` maps each core keyword to its equivalents across the
    requested languages. ``filters`` holds property filters the expander read
    from natural language, and ``consumed_terms`` the query words it read
    them from (those must not stay keywords).
    """
    expansions: Dict[str, List[str]] = field(default_factory=dict)
    filters: PropertyFilters = field(default_factory=PropertyFilters)
    consumed_terms: List[str] = field(default_factory=list)

    @property
    def keywords(self) -> List[str]:
        """Core keywords followed by all their expansions, de-duplicated"""
        flat: List[str] = []
        for core, expanded in self.expansions.items():
            for keyword in [core] + list(expanded):
                if keyword not in flat:
                    flat.append(keyword)
        return flat


class BaseExpander(ABC):
    """
    Abstract base class for keyword expansion implementations.

    Implementations raise (ExpansionError or anything else) on failure; the
    merge step turns every failure into a fallback to the unexpanded query.
    """

    @abstractmethod
    async def expand(self, request: ExpansionRequest) -> ExpansionResult:
        """
        Expand core keywords into semantic equivalents.

        Args:
            request: Core keywords, target languages, per-language budget

        Returns:
            ExpansionResult with per-keyword expansions and recognized filters
        """
        pass

    @abstractmethod
    def get_model_info(self) -> dict:
        """
        Get information about the expander.

        Returns:
            Dict with keys: name, type, and implementation-specific details
        """
        pass

    def close(self):
        """Optional cleanup (close API clients etc.)"""
        pass
