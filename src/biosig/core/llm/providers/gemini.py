"""Google Gemini provider over the generateContent REST endpoint."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from biosig.core.llm.errors import CompletionTransportError
from biosig.core.llm.provider import ProviderResponse

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider:
    """Gemini provider using plain HTTPS calls through httpx.

    Sampling parameters other than temperature and the output budget are fixed
    per provider instance (``top_k``/``top_p``).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = GEMINI_BASE_URL,
        top_k: int = 20,
        top_p: float = 0.85,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.top_k = top_k
        self.top_p = top_p
        self._client = http_client

    def _endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_request_body(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        text = f"{system_message}\n\n{user_message}" if system_message else user_message
        return {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": self.top_k,
                "topP": self.top_p,
                "maxOutputTokens": max_tokens,
            },
        }

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 16384,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        body = self.build_request_body(system_message, user_message, max_tokens, temperature)
        start = time.monotonic()
        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                # Call timeouts are enforced by the caller's retry policy.
                async with httpx.AsyncClient(timeout=None) as client:
                    response = await self._post(client, body)
        except httpx.HTTPError as exc:
            raise CompletionTransportError(
                f"Gemini request failed: {type(exc).__name__}: {exc}"
            ) from exc
        elapsed_ms = (time.monotonic() - start) * 1000

        if response.status_code < 200 or response.status_code >= 300:
            raise CompletionTransportError(
                f"Gemini API error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise CompletionTransportError(f"Gemini returned non-JSON body: {exc}") from exc

        return ProviderResponse(
            content=_first_candidate_text(data),
            input_tokens=_usage(data, "promptTokenCount"),
            output_tokens=_usage(data, "candidatesTokenCount"),
            model=self.model,
            latency_ms=elapsed_ms,
        )

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self._endpoint(),
            params={"key": self.api_key},
            json=body,
            headers={"Content-Type": "application/json"},
        )


def _first_candidate_text(data: Any) -> str:
    """Return the text of the first candidate; only that candidate is used."""
    if not isinstance(data, dict):
        raise CompletionTransportError("Gemini returned a malformed envelope")
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise CompletionTransportError("Gemini returned a malformed envelope")
    if not candidates:
        raise CompletionTransportError("Gemini returned no candidates")
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise CompletionTransportError("Gemini returned a malformed envelope")
    content = candidate.get("content") or {}
    if not isinstance(content, dict):
        raise CompletionTransportError("Gemini returned a malformed envelope")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise CompletionTransportError("Gemini returned a malformed envelope")
    if not parts or not isinstance(parts[0], dict) or not isinstance(parts[0].get("text"), str):
        raise CompletionTransportError("Gemini candidate has no text content")
    return parts[0]["text"]


def _usage(data: dict[str, Any], key: str) -> int:
    usage = data.get("usageMetadata") or {}
    if not isinstance(usage, dict):
        return 0
    try:
        return int(usage.get(key, 0))
    except (TypeError, ValueError):
        return 0
