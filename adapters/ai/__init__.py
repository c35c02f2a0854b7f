# AI Adapters
# Anthropic Claude and Google Gemini integrations

from .anthropic_adapter import ClaudeAdapter
from .base import AIProviderError, AIResponse
from .gemini_adapter import GeminiAdapter

__all__ = [
    "AIProviderError",
    "AIResponse",
    "ClaudeAdapter",
    "GeminiAdapter",
]
