"""
AI assist gateway: one call surface to an OpenAI-compatible
``/chat/completions`` endpoint.

Transient failures (connection errors, timeouts, HTTP 429 and 5xx) are
retried with a linearly growing sleep; anything else fails on the first
attempt. In json-mode the reply is fence-stripped and parsed, and a reply
that is not a JSON object raises ``MalformedAIOutputError``.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable, Iterable, Optional, Union

import requests

from fieldops.config import LLMConfig, get_llm_config
from fieldops.errors import AIServiceError, ConfigurationError, MalformedAIOutputError
from fieldops.models.ai import AIOptions, ChatMessage

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

MessageLike = Union[ChatMessage, dict[str, str]]


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_json_output(text: str) -> dict[str, Any]:
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedAIOutputError(f"AI reply is not valid JSON: {exc}", raw=text) from exc
    if not isinstance(parsed, dict):
        raise MalformedAIOutputError("AI reply is not a JSON object", raw=text)
    return parsed


class _Transient(Exception):
    pass


class AIGateway:
    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or get_llm_config()
        self._sleep = sleep

    def resolve_model(self, selector: Optional[str]) -> str:
        """``"fast"``/``"smart"`` map to the configured models; other values pass through."""
        if selector in (None, "", "fast"):
            return self.config.model_fast
        if selector == "smart":
            return self.config.model_smart
        return selector  # type: ignore[return-value]

    def call(
        self,
        messages: Iterable[MessageLike],
        options: Optional[AIOptions] = None,
    ) -> Union[str, dict[str, Any]]:
        """
        Send role-tagged turns and return the reply.

        Returns the reply text, or the parsed object when
        ``options.json_mode`` is set.

        Raises:
            ConfigurationError: no API key is configured.
            AIServiceError: the provider failed after all retries.
            MalformedAIOutputError: json-mode reply could not be parsed.
        """
        opts = options or AIOptions()
        if not self.config.api_key:
            raise ConfigurationError("LLM_API_KEY is not set; AI features are unavailable")

        turns = [m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m) for m in messages]
        payload: dict[str, Any] = {
            "model": self.resolve_model(opts.model),
            "messages": [t.model_dump() for t in turns],
            "temperature": opts.temperature,
        }
        if opts.json_mode:
            payload["response_format"] = {"type": "json_object"}

        text = self._post_with_retry(payload, self._max_retries(opts))
        if opts.json_mode:
            return parse_json_output(text)
        return text

    def _max_retries(self, opts: AIOptions) -> int:
        if opts.max_retries is None:
            return self.config.max_retries
        return max(0, opts.max_retries)

    def _post_with_retry(self, payload: dict[str, Any], max_retries: int) -> str:
        url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        last_error = ""
        attempts = max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._post_once(url, headers, payload)
            except _Transient as exc:
                last_error = str(exc)

            logger.warning("AI call attempt %d/%d failed: %s", attempt, attempts, last_error)
            if attempt < attempts:
                self._sleep(self.config.backoff_seconds * attempt)

        raise AIServiceError(
            f"AI call failed after {attempts} attempts: {last_error}",
            details={"model": payload["model"]},
        )

    def _post_once(self, url: str, headers: dict[str, str], payload: dict[str, Any]) -> str:
        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=self.config.timeout)
        except requests.Timeout as exc:
            raise _Transient(f"Timeout after {self.config.timeout}s") from exc
        except requests.ConnectionError as exc:
            raise _Transient(f"Connection error: {exc}") from exc

        if resp.status_code in RETRYABLE_STATUS:
            raise _Transient(f"HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise AIServiceError(
                f"AI provider rejected the request (HTTP {resp.status_code})",
                details={"status": resp.status_code, "body": resp.text[:300]},
            )

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AIServiceError(f"Unexpected AI provider response: {exc}") from exc
        return content or ""
