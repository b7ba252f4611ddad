"""
Semantic keyword expansion.

Usage:
    # Get expander (auto-configured from env, None when disabled):
    from taskrank.expansion import get_expander

    expander = get_expander()
    intent = await expand_intent(intent, expander, config, extractor)

    # Or create a specific implementation:
    from taskrank.expansion import LexiconExpander

    expander = LexiconExpander()
"""

from typing import Optional

from .base import BaseExpander, ExpansionRequest, ExpansionResult
from .factory import ExpanderFactory
from .gemini import GeminiExpander
from .lexicon import LexiconExpander, load_lexicon
from .merge import expand_intent, merge_expansion


def get_expander(force_reload: bool = False) -> Optional[BaseExpander]:
    """
    Get configured expander instance (factory convenience function).

    Returns None if expansion is disabled via TASKRANK_EXPANDER_ENABLED
    """
    return ExpanderFactory.create(force_reload=force_reload)


__all__ = [
    "BaseExpander",
    "ExpansionRequest",
    "ExpansionResult",
    "ExpanderFactory",
    "GeminiExpander",
    "LexiconExpander",
    "load_lexicon",
    "expand_intent",
    "merge_expansion",
    "get_expander",
]
