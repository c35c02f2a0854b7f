"""
Shared result type and errors for AI provider adapters.
"""

from dataclasses import dataclass


class AIProviderError(Exception):
    """Raised when a provider request fails or the provider is not configured."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


@dataclass
class AIResponse:
    """Text completion returned by a provider."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
