"""Text classification oracle (OpenAI-compatible chat completions over HTTP)."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol

import requests
from pydantic import ValidationError

from ..config import Settings
from ..domain_errors import UpstreamFailure
from ..schemas import SuggestedLabel

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You classify compliance documents against ISO management-system clauses. "
    "Answer with JSON only: {\"labels\": [{\"label\": <clause number>, "
    "\"confidence\": <0..1>, \"rationale\": <short reason>}]}. "
    "Only use clause numbers from the supplied list."
)


class SuggestionOracle(Protocol):
    def classify(self, text: str, context: dict[str, Any]) -> list[SuggestedLabel]: ...


def extract_json(text: Any) -> Optional[dict[str, Any]]:
    """Parse a JSON object, tolerating prose around it. Anything else is None."""
    if not text or not isinstance(text, str):
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            parsed = json.loads(text[start:end + 1])
        except ValueError:
            return None
    return parsed if isinstance(parsed, dict) else None


def completion_content(data: Any) -> Optional[str]:
    """Message content of the first chat-completion choice, if the shape allows."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def rank_labels(raw_labels: Any) -> list[SuggestedLabel]:
    """Validated labels, highest confidence first; malformed entries are skipped."""
    labels: list[SuggestedLabel] = []
    if not isinstance(raw_labels, list):
        return labels
    for item in raw_labels:
        if not isinstance(item, dict):
            continue
        try:
            labels.append(SuggestedLabel.model_validate(item))
        except ValidationError:
            logger.warning("Discarding malformed oracle label: %r", item)
    labels.sort(key=lambda label: label.confidence, reverse=True)
    return labels


class HttpSuggestionOracle:
    """Oracle backed by an OpenAI-compatible endpoint (AI_HTTP_BASE)."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.http_base = settings.AI_HTTP_BASE
        self.http_api_key = settings.AI_HTTP_API_KEY
        self.http_model = settings.AI_HTTP_MODEL
        self.timeout = settings.AI_HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _user_prompt(self, text: str, context: dict[str, Any]) -> str:
        clauses = "\n".join(
            f"- {clause['clause_number']}: {clause['title']}" for clause in context.get("clauses", [])
        )
        standard = context.get("standard") or "any"
        return f"Standard: {standard}\nClauses:\n{clauses}\n\nDocument:\n{text}"

    def classify(self, text: str, context: dict[str, Any]) -> list[SuggestedLabel]:
        if not self.http_base:
            raise UpstreamFailure("AI suggestion oracle is not configured", code="ORACLE_NOT_CONFIGURED")

        url = f"{self.http_base.rstrip('/')}/v1/chat/completions"
        headers = {"Content-Type": "application/json"}
        if self.http_api_key:
            headers["Authorization"] = f"Bearer {self.http_api_key}"
        body = {
            "model": self.http_model,
            "temperature": 0.0,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._user_prompt(text, context)},
            ],
        }
        try:
            response = self.session.post(url, headers=headers, data=json.dumps(body), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError):
            logger.exception("AI oracle request failed")
            raise UpstreamFailure("AI suggestion oracle is unavailable", code="ORACLE_UNAVAILABLE")

        parsed = extract_json(completion_content(data))
        if parsed is None or not isinstance(parsed.get("labels", []), list):
            logger.error("AI oracle returned an unexpected response shape")
            raise UpstreamFailure("AI suggestion oracle returned an unreadable answer", code="ORACLE_BAD_RESPONSE")
        return rank_labels(parsed.get("labels"))
