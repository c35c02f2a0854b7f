"""
Anthropic Claude adapter for prompt execution.
"""

import asyncio
import logging
import random
from typing import Optional

import anthropic

from core.plans import default_model
from infrastructure.config.settings import settings

from .base import AIProviderError, AIResponse

logger = logging.getLogger(__name__)


async def _retry_with_backoff(coro_factory, max_retries=3, base_delay=1.0):
    """Retry an async operation with exponential backoff + jitter."""
    for attempt in range(max_retries + 1):
        try:
            return await coro_factory()
        except Exception as e:
            error_str = str(e).lower()
            is_transient = any(
                k in error_str
                for k in ["rate_limit", "429", "500", "502", "503", "504", "overloaded", "connection", "timeout"]
            )
            if not is_transient or attempt == max_retries:
                raise
            delay = base_delay * (2 ** attempt) + random.uniform(0, 1)
            logger.warning(
                "Transient API error (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1,
                max_retries,
                delay,
                str(e),
            )
            await asyncio.sleep(delay)


class ClaudeAdapter:
    """Runs system + user prompts against the Anthropic Messages API."""

    provider = "claude"

    def __init__(self, api_key: str, model: Optional[str] = None, timeout: Optional[int] = None):
        if not api_key:
            raise AIProviderError("Claude API key is not configured.", self.provider)
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=float(timeout or settings.anthropic_timeout),
        )
        self._model = model or default_model(self.provider)

    @property
    def model(self) -> str:
        return self._model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> AIResponse:
        try:
            message = await _retry_with_backoff(
                lambda: self._client.messages.create(
                    model=self._model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_prompt}],
                )
            )
        except anthropic.APIError as e:
            logger.error("Claude request failed: %s", e)
            raise AIProviderError(str(e), self.provider) from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )
        logger.debug("Claude response (%d chars) from %s", len(text), message.model)
        return AIResponse(
            content=text,
            model=message.model,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )
