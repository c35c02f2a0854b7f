"""
Google Gemini adapter using the generateContent REST endpoint.
"""

import logging
from typing import Any, Optional

import httpx

from core.plans import default_model
from infrastructure.config.settings import settings

from .anthropic_adapter import _retry_with_backoff
from .base import AIProviderError, AIResponse

logger = logging.getLogger(__name__)


class GeminiAdapter:
    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise AIProviderError("Gemini API key is not configured.", self.provider)
        self._api_key = api_key
        self._model = model or default_model(self.provider)
        self._timeout = timeout or settings.gemini_timeout
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    def _build_payload(
        self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return payload

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> AIResponse:
        url = f"{settings.gemini_api_base.rstrip('/')}/models/{self._model}:generateContent"
        payload = self._build_payload(system_prompt, user_prompt, max_tokens, temperature)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:

            async def _post() -> httpx.Response:
                response = await client.post(url, params={"key": self._api_key}, json=payload)
                if response.status_code >= 500 or response.status_code == 429:
                    raise AIProviderError(
                        f"Gemini API error {response.status_code}", self.provider
                    )
                return response

            try:
                response = await _retry_with_backoff(_post)
            except httpx.HTTPError as e:
                logger.error("Gemini request failed: %s", e)
                raise AIProviderError(f"Gemini request failed: {e}", self.provider) from e

        if response.status_code >= 400:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            logger.error("Gemini API error [%s]: %s", response.status_code, message)
            raise AIProviderError(f"Gemini API error: {message}", self.provider)

        data = response.json()
        candidates = data.get("candidates") or []
        if not candidates:
            raise AIProviderError("Gemini returned no candidates.", self.provider)

        parts = candidates[0].get("content", {}).get("parts", [])
        usage = data.get("usageMetadata", {})
        return AIResponse(
            content="".join(part.get("text", "") for part in parts),
            model=self._model,
            input_tokens=usage.get("promptTokenCount", 0),
            output_tokens=usage.get("candidatesTokenCount", 0),
        )
