"""
Offline keyword expansion from a synonym lexicon.

No network, no model: each keyword is looked up in a mapping of
language -> keyword -> equivalents. Useful when no AI provider is
configured, and deterministic enough for tests.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import ExpansionError
from .base import BaseExpander, ExpansionRequest, ExpansionResult

logger = logging.getLogger(__name__)

# language -> keyword -> equivalents
Lexicon = Dict[str, Dict[str, List[str]]]

DEFAULT_LEXICON: Lexicon = {
    "en": {
        "fix": ["repair", "resolve", "patch", "correct"],
        "bug": ["issue", "defect", "error", "fault"],
        "meeting": ["call", "sync", "standup", "discussion"],
        "write": ["draft", "compose", "document"],
        "review": ["check", "inspect", "audit"],
        "payment": ["billing", "invoice", "transaction"],
        "email": ["mail", "message", "reply"],
        "plan": ["schedule", "roadmap", "outline"],
        "deploy": ["release", "ship", "rollout"],
        "test": ["verify", "validate", "qa"],
    },
    "zh": {
        "fix": ["修复", "修正", "解决"],
        "bug": ["错误", "缺陷", "故障"],
        "meeting": ["会议", "开会", "讨论"],
        "write": ["撰写", "编写", "写作"],
        "review": ["审查", "检查", "复查"],
        "payment": ["付款", "支付", "账单"],
        "email": ["邮件", "回复"],
        "plan": ["计划", "安排", "规划"],
        "deploy": ["部署", "发布", "上线"],
        "test": ["测试", "验证"],
        "修复": ["fix", "repair", "解决"],
        "错误": ["bug", "error", "缺陷"],
        "会议": ["meeting", "开会"],
    },
    "sv": {
        "fix": ["fixa", "laga", "åtgärda"],
        "bug": ["bugg", "fel"],
        "meeting": ["möte", "avstämning"],
        "payment": ["betalning", "faktura"],
    },
}


def load_lexicon(path: str) -> Lexicon:
    """
    Load a lexicon JSON file ({"en": {"fix": ["repair", ...]}, ...}).

    Raises:
        ExpansionError: If the file cannot be read or has the wrong shape
    """
    try:
        with open(Path(path), "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ExpansionError(f"Cannot load lexicon {path}: {e}") from e

    if not isinstance(data, dict):
        raise ExpansionError(f"Lexicon {path} must be a JSON object")
    lexicon: Lexicon = {}
    for language, entries in data.items():
        if not isinstance(entries, dict):
            logger.warning(f"Lexicon {path}: language {language!r} is not a mapping, skipped")
            continue
        lexicon[str(language).lower()] = {
            str(k).lower(): [str(v).lower() for v in values if isinstance(v, str)]
            for k, values in entries.items()
            if isinstance(values, list)
        }
    return lexicon


class LexiconExpander(BaseExpander):
    """Synonym lookup per configured language; never recognizes properties"""

    def __init__(self, lexicon: Optional[Lexicon] = None, name: str = "builtin"):
        self.lexicon = lexicon if lexicon is not None else DEFAULT_LEXICON
        self.name = name

    async def expand(self, request: ExpansionRequest) -> ExpansionResult:
        per_language = max(request.max_expansions_per_language, 0)
        expansions: Dict[str, List[str]] = {}
        for keyword in request.core_keywords:
            found: List[str] = []
            for language in request.languages:
                entries = self.lexicon.get(language, {}).get(keyword.lower(), [])
                for equivalent in entries[:per_language]:
                    if equivalent != keyword and equivalent not in found:
                        found.append(equivalent)
            expansions[keyword] = found
        logger.debug(f"Lexicon expansion: {expansions}")
        return ExpansionResult(expansions=expansions)

    def get_model_info(self) -> dict:
        return {
            "name": self.name,
            "type": "lexicon",
            "languages": sorted(self.lexicon),
            "entries": sum(len(entries) for entries in self.lexicon.values()),
        }
