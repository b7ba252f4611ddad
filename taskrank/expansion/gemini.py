"""
Gemini-based keyword expander using the Google GenAI SDK.

One request per query: the model receives the residual core keywords (never
the property terms already extracted) and returns, in JSON mode, semantic
equivalents for each keyword in every configured language, plus any property
filters it reads from natural language ("asap" -> priority 1).
"""

import asyncio
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from ..errors import ExpansionError
from ..models import PropertyFilters
from .base import BaseExpander, ExpansionRequest, ExpansionResult

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRY_ATTEMPTS = 3
RETRY_INITIAL_DELAY = 0.5  # seconds
RETRY_EXP_BASE = 2.0
RETRY_STATUS_CODES = {429, 500, 503, 504}  # Rate limit, server errors

LANGUAGE_NAMES = {
    "en": "English",
    "zh": "Chinese (简体中文)",
    "sv": "Swedish",
    "de": "German",
    "es": "Spanish",
    "fr": "French",
    "ja": "Japanese",
}

_REASONING_BLOCK = re.compile(r"<(think|thinking|reasoning|thought)>.*?</\1>", re.DOTALL | re.IGNORECASE)
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pull the JSON object out of a model response.

    Tolerates reasoning blocks and markdown code fences around the object.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    cleaned = _REASONING_BLOCK.sub("", text or "").strip()
    cleaned = _CODE_FENCE.sub("", cleaned).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start < 0 or end <= start:
            raise ValueError("response contains no JSON object")
        parsed = json.loads(cleaned[start:end + 1])
    if not isinstance(parsed, dict):
        raise ValueError(f"expected JSON object, got {type(parsed).__name__}")
    return parsed


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (str, int)):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if isinstance(v, (str, int)) and str(v).strip()]


class GeminiExpander(BaseExpander):
    """
    LLM-based keyword expansion with Gemini.

    The client is created from GOOGLE_CLOUD_PROJECT/GOOGLE_CLOUD_LOCATION
    (Vertex AI) when a project is known, otherwise from GOOGLE_API_KEY /
    GEMINI_API_KEY. Tests pass a ready client instead.
    """

    PROMPT_TEMPLATE = """You expand search keywords for a personal task list.

Query: {query}
Core keywords: {keywords}
Languages: {languages}
Expansions per keyword per language: {per_language}

Rules:
1. For EACH core keyword, give up to {per_language} equivalents in EACH language
   (synonyms and the way native speakers would write it, not literal translation).
2. If a core keyword actually describes a task property, do not expand it. Report it instead:
   - priority: urgency/importance -> 1 (highest) .. 4 (lowest), "all" for any priority, "none" for no priority
   - status: one of {statuses}
   - due_date: one of today, tomorrow, overdue, week, next-week, month, future, +Nd, +Nw, +Nm
   and list the query words you read as properties in "consumed_terms".
3. Use lowercase. Do not include generic words like "task" or "thing".

Respond with ONLY a JSON object in this exact format:
{{
  "expansions": {{"<core keyword>": ["<equivalent>", ...], ...}},
  "priority": [<int> or "all" or "none"] or null,
  "status": ["<status key>"] or null,
  "due_date": ["<due spec>"] or null,
  "consumed_terms": ["<query word>", ...]
}}"""

    def __init__(
        self,
        model_name: str = "gemini-2.5-flash",
        api_key: Optional[str] = None,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        temperature: float = 0.1,
        status_keys: Optional[List[str]] = None,
        client=None,
    ):
        """
        Initialize Gemini expander.

        Args:
            model_name: Gemini model to use
            api_key: Gemini API key (reads GOOGLE_API_KEY / GEMINI_API_KEY if not provided)
            project_id: GCP project for Vertex AI (reads GOOGLE_CLOUD_PROJECT if not provided)
            location: GCP region for Vertex AI
            temperature: Model temperature (low = consistent expansions)
            status_keys: Status category keys the model may return
            client: Pre-built genai client (skips client construction)
        """
        self.model_name = model_name
        self.temperature = temperature
        self.status_keys = status_keys or ["open", "inProgress", "completed", "cancelled"]
        self.project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT")
        self.location = location or os.getenv("GOOGLE_CLOUD_LOCATION") or "us-central1"

        if client is not None:
            self.client = client
            return

        api_key = api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
        try:
            if self.project_id:
                self.client = genai.Client(vertexai=True, project=self.project_id, location=self.location)
            elif api_key:
                self.client = genai.Client(api_key=api_key)
            else:
                raise ValueError(
                    "Gemini credentials required. Set GOOGLE_CLOUD_PROJECT or GOOGLE_API_KEY."
                )
            logger.info(f"Gemini expander initialized: {model_name}")
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {e}")
            raise

    def build_prompt(self, request: ExpansionRequest) -> str:
        languages = ", ".join(LANGUAGE_NAMES.get(lang, lang) for lang in request.languages) or "English"
        return self.PROMPT_TEMPLATE.format(
            query=request.original_query or " ".join(request.core_keywords),
            keywords=json.dumps(request.core_keywords, ensure_ascii=False),
            languages=languages,
            per_language=request.max_expansions_per_language,
            statuses=", ".join(request.status_keys or self.status_keys),
        )

    def _generate(self, prompt: str) -> str:
        response = self.client.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                max_output_tokens=2048,
                response_mime_type="application/json",
            ),
        )
        return response.text or ""

    def parse_response(self, text: str, request: ExpansionRequest) -> ExpansionResult:
        """
        Validate the model's JSON into an ExpansionResult.

        Unknown keys are ignored and expansions for words that are not core
        keywords are dropped. Filter values are passed through as strings;
        the merge step resolves and validates them.
        """
        payload = extract_json_object(text)

        expansions: Dict[str, List[str]] = {}
        raw_expansions = payload.get("expansions") or {}
        if not isinstance(raw_expansions, dict):
            logger.warning(f"Invalid expansions type: {type(raw_expansions).__name__}, ignoring")
            raw_expansions = {}
        core_lookup = {kw.lower(): kw for kw in request.core_keywords}
        for key, values in raw_expansions.items():
            core = core_lookup.get(str(key).strip().lower())
            if core is None:
                logger.debug(f"Dropping expansions for non-core keyword {key!r}")
                continue
            expansions[core] = [v.lower() for v in _string_list(values)]

        filters = PropertyFilters()
        for value in _string_list(payload.get("priority")):
            if value.isdigit():
                filters.priorities.append(int(value))
            elif value.lower() in ("all", "none"):
                filters.priority_mode = value.lower()
        filters.statuses = _string_list(payload.get("status"))
        filters.due_dates = [v.lower() for v in _string_list(payload.get("due_date"))]

        return ExpansionResult(
            expansions=expansions,
            filters=filters,
            consumed_terms=[t.lower() for t in _string_list(payload.get("consumed_terms"))],
        )

    async def expand(self, request: ExpansionRequest) -> ExpansionResult:
        """
        Expand keywords with Gemini, retrying transient failures with backoff.

        Raises:
            ExpansionError: When the call fails permanently or retries run out
        """
        if not request.core_keywords:
            return ExpansionResult()

        prompt = self.build_prompt(request)
        last_error: Optional[Exception] = None

        for attempt in range(MAX_RETRY_ATTEMPTS):
            try:
                # the SDK call is blocking; keep the event loop free
                text = await asyncio.to_thread(self._generate, prompt)
                logger.debug(f"Gemini raw response (first 500 chars): {text[:500]}")
                result = self.parse_response(text, request)
                logger.info(
                    f"Expanded {len(request.core_keywords)} keywords into {len(result.keywords)} "
                    f"({', '.join(result.filters.active_categories()) or 'no filters'})"
                )
                return result

            except ValueError as e:
                # covers json.JSONDecodeError; model output can be unstable, so retry
                last_error = e
                logger.warning(f"Attempt {attempt + 1}/{MAX_RETRY_ATTEMPTS}: invalid expansion response: {e}")

            except Exception as e:
                last_error = e
                error_code = getattr(e, "code", None) or getattr(e, "status_code", None)
                logger.warning(f"Attempt {attempt + 1}/{MAX_RETRY_ATTEMPTS}: expansion failed: {e}")
                if error_code not in RETRY_STATUS_CODES:
                    logger.error(f"Non-retriable error (code {error_code}), stopping retries")
                    raise ExpansionError(f"Gemini expansion failed: {e}", retriable=False) from e

            if attempt < MAX_RETRY_ATTEMPTS - 1:
                delay = RETRY_INITIAL_DELAY * (RETRY_EXP_BASE ** attempt)
                logger.info(f"Retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)

        raise ExpansionError(
            f"Gemini expansion failed after {MAX_RETRY_ATTEMPTS} attempts: {last_error}",
            retriable=True,
        )

    def get_model_info(self) -> dict:
        return {
            "name": self.model_name,
            "type": "gemini-llm",
            "project": self.project_id,
            "location": self.location,
            "temperature": self.temperature,
        }

    def close(self):
        logger.info("Gemini expander closed")
