from __future__ import annotations

import logging
from dataclasses import dataclass
from time import sleep
from typing import Any

import httpx

from app.config import Settings, settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 409, 425, 429})


class AIClientError(RuntimeError):
    """Raised when a completion request fails."""


@dataclass(frozen=True)
class AIResponse:
    content: str
    tokens_in: int | None
    tokens_out: int | None
    model: str


class ChatCompletionClient:
    """Client for any OpenAI-compatible ``/v1/chat/completions`` endpoint."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        max_retries: int = 1,
        temperature: float = 0.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = (api_key or "").strip() or None
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.temperature = temperature
        self.transport = transport

    def _endpoint(self) -> str:
        # base_url may be either ".../v1" or the root URL.
        if self.base_url.endswith("/v1"):
            return f"{self.base_url}/chat/completions"
        return f"{self.base_url}/v1/chat/completions"

    def _request_json(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"content-type": "application/json"}
        if self.api_key:
            headers["authorization"] = f"Bearer {self.api_key}"
        attempts = max(self.max_retries, 0) + 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
                    response = client.post(self._endpoint(), headers=headers, json=payload)
                retryable = response.status_code in RETRYABLE_STATUS_CODES or response.status_code >= 500
                if retryable and attempt < attempts:
                    sleep(min(2**attempt, 5))
                    continue
                response.raise_for_status()
                data = response.json()
                if isinstance(data, dict):
                    return data
                raise AIClientError("Invalid completion response payload")
            except (httpx.TimeoutException, httpx.RequestError, httpx.HTTPStatusError, ValueError) as exc:
                last_error = exc
                if attempt < attempts:
                    sleep(min(2**attempt, 5))
                    continue
                break
        raise AIClientError(f"Completion request failed model={self.model}") from last_error

    def generate(self, system: str, prompt: str, max_tokens: int = 256) -> AIResponse:
        data = self._request_json(
            {
                "model": self.model,
                "max_tokens": max_tokens,
                "temperature": self.temperature,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            }
        )
        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}

        content = ""
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                content = message["content"]

        return AIResponse(
            content=content.strip(),
            tokens_in=usage.get("prompt_tokens") if isinstance(usage.get("prompt_tokens"), int) else None,
            tokens_out=usage.get("completion_tokens") if isinstance(usage.get("completion_tokens"), int) else None,
            model=str(data.get("model") or self.model),
        )


def build_ai_client(config: Settings = settings) -> ChatCompletionClient | None:
    """Client from settings, or None when no endpoint is configured."""
    base_url = (config.search_ai_base_url or "").strip()
    if not base_url:
        return None
    return ChatCompletionClient(
        base_url=base_url,
        model=config.search_ai_model,
        api_key=config.search_ai_api_key,
        timeout_seconds=max(config.search_ai_timeout_seconds, 1.0),
    )
