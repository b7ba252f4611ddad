"""
Factory to create expander instances based on configuration.
"""

import logging
import os
from typing import Optional

from .base import BaseExpander
from .gemini import GeminiExpander
from .lexicon import LexiconExpander, load_lexicon

logger = logging.getLogger(__name__)


class ExpanderFactory:
    """Factory to create expander instances based on configuration."""

    _instance: Optional[BaseExpander] = None  # Singleton cache

    @classmethod
    def create(cls, force_reload: bool = False) -> Optional[BaseExpander]:
        """
        Create expander based on environment configuration.

        Config (env vars):
            TASKRANK_EXPANDER_ENABLED: "true" to enable expansion (default: false)
            TASKRANK_EXPANDER_TYPE: "gemini" | "lexicon" (default: gemini)
            TASKRANK_EXPANDER_MODEL: Gemini model identifier (required for gemini)
            TASKRANK_LEXICON_PATH: Optional JSON lexicon for the lexicon expander

        Unlike a hard dependency, expansion is optional: a missing or broken
        configuration is logged and the pipeline runs without expansion.

        Args:
            force_reload: If True, recreate instance even if cached

        Returns:
            Expander instance, or None if disabled or misconfigured
        """
        if cls._instance is not None and not force_reload:
            return cls._instance

        enabled_value = os.getenv("TASKRANK_EXPANDER_ENABLED", "false")
        enabled = enabled_value.strip().lower() in ("true", "1", "yes")
        logger.debug(f"Expander config check: TASKRANK_EXPANDER_ENABLED={enabled_value} (enabled={enabled})")
        if not enabled:
            return None

        expander_type = os.getenv("TASKRANK_EXPANDER_TYPE", "gemini").strip().lower()

        try:
            if expander_type == "gemini":
                model = os.getenv("TASKRANK_EXPANDER_MODEL")
                if not model:
                    raise ValueError("TASKRANK_EXPANDER_MODEL environment variable is required for gemini expansion")
                logger.info(f"Creating Gemini expander: {model}")
                cls._instance = GeminiExpander(model_name=model)

            elif expander_type == "lexicon":
                path = os.getenv("TASKRANK_LEXICON_PATH")
                if path:
                    logger.info(f"Creating lexicon expander from {path}")
                    cls._instance = LexiconExpander(load_lexicon(path), name=os.path.basename(path))
                else:
                    logger.info("Creating lexicon expander with built-in lexicon")
                    cls._instance = LexiconExpander()

            else:
                raise ValueError(
                    f"Unknown expander type: {expander_type}. "
                    f"Valid options: gemini, lexicon"
                )

        except Exception as e:
            logger.error(f"Failed to create expander ({expander_type}), continuing without expansion: {e}")
            cls._instance = None

        return cls._instance

    @classmethod
    def cleanup(cls):
        """Cleanup cached expander instance."""
        if cls._instance is not None:
            logger.info("Cleaning up expander instance")
            cls._instance.close()
            cls._instance = None
