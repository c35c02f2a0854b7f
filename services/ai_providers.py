"""
AI provider credentials and prompt execution.

Users store their own provider keys (Fernet-encrypted at rest). Prompts are
run against the provider the prompt is bound to, using that user's key.
"""

import logging
import re
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.ai import AIProviderError, AIResponse, ClaudeAdapter, GeminiAdapter
from core.plans import AI_MODEL_PRICING, AI_PROVIDERS, default_model
from core.presentation import mask_secret
from core.security.encryption import CredentialEncryption, get_credential_encryption
from infrastructure.database.models import AIServiceCredential, User

logger = logging.getLogger(__name__)

__all__ = [
    "AIProviderError",
    "AIProviderService",
    "AIResponse",
    "estimate_cost",
    "interpolate_variables",
]

_IF_BLOCK = re.compile(r"\{\{#if\s+(\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_EACH_BLOCK = re.compile(r"\{\{#each\s+(\w+)\}\}(.*?)\{\{/each\}\}", re.DOTALL)


def interpolate_variables(template: str, variables: dict[str, Any]) -> str:
    """
    Fill a prompt template.

    Supports ``{{name}}`` substitution (lists are joined with ", "),
    ``{{#if name}}...{{/if}}`` and ``{{#each name}}...{{this}}...{{/each}}``.
    """
    for key, value in variables.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value)
        template = template.replace("{{" + key + "}}", "" if value is None else str(value))

    template = _IF_BLOCK.sub(
        lambda m: m.group(2) if variables.get(m.group(1)) else "",
        template,
    )

    def each(match: re.Match) -> str:
        items = variables.get(match.group(1))
        if not items or not isinstance(items, (list, tuple)):
            return ""
        return "".join(match.group(2).replace("{{this}}", str(item)) for item in items)

    return _EACH_BLOCK.sub(each, template)


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimated USD cost of a call; 0.0 for models without published pricing."""
    pricing = AI_MODEL_PRICING.get(model)
    if pricing is None:
        return 0.0
    input_price, output_price = pricing
    return round((input_tokens * input_price + output_tokens * output_price) / 1_000_000, 6)


class AIProviderService:
    """Per-user provider settings and prompt execution."""

    def __init__(
        self,
        db: AsyncSession,
        user: User,
        cipher: Optional[CredentialEncryption] = None,
    ):
        self.db = db
        self.user = user
        self.cipher = cipher or get_credential_encryption()

    async def _credential(self, provider: str) -> Optional[AIServiceCredential]:
        result = await self.db.execute(
            select(AIServiceCredential).where(
                AIServiceCredential.user_id == self.user.id,
                AIServiceCredential.provider == provider,
            )
        )
        return result.scalar_one_or_none()

    def _decrypt(self, credential: Optional[AIServiceCredential]) -> str:
        if credential is None or not credential.encrypted_secret:
            return ""
        try:
            return self.cipher.decrypt(credential.encrypted_secret)
        except ValueError:
            logger.error("Stored %s key for user %s could not be decrypted", credential.provider, self.user.id)
            return ""

    async def get_settings(self) -> dict[str, dict]:
        """Provider settings with keys masked, one entry per known provider."""
        settings = {}
        for provider in AI_PROVIDERS:
            credential = await self._credential(provider)
            secret = self._decrypt(credential)
            settings[provider] = {
                "name": AI_PROVIDERS[provider]["name"],
                "api_key": mask_secret(secret),
                "has_key": bool(secret),
                "model": (credential.model if credential else None) or default_model(provider),
                "models": AI_PROVIDERS[provider]["models"],
                "active": bool(credential and credential.is_active),
            }
        return settings

    async def save_settings(
        self,
        provider: str,
        api_key: Optional[str],
        model: Optional[str],
        active: bool,
    ) -> dict[str, str]:
        """
        Validate and store one provider's settings.

        An api_key of None keeps the stored key. Returns a field -> message
        dict of validation errors; nothing is saved when it is non-empty.
        """
        if provider not in AI_PROVIDERS:
            raise AIProviderError(f"Unknown AI provider '{provider}'.", provider)

        credential = await self._credential(provider)
        secret = self._decrypt(credential) if api_key is None else api_key.strip()

        errors = {}
        if active and not secret:
            errors["api_key"] = "API key is required when the service is active."
        models = AI_PROVIDERS[provider]["models"]
        if models and model not in models:
            errors["model"] = "The selected model is invalid."
        if errors:
            return errors

        if credential is None:
            credential = AIServiceCredential(user_id=self.user.id, provider=provider)
            self.db.add(credential)
        credential.encrypted_secret = self.cipher.encrypt(secret) if secret else None
        credential.model = model if models else None
        credential.is_active = active
        await self.db.commit()

        logger.info("AI provider %s settings saved for user %s (active=%s)", provider, self.user.id, active)
        return {}

    async def provider(self, name: str, model: Optional[str] = None):
        """Adapter for provider name, configured with the user's key and model."""
        credential = await self._credential(name)
        api_key = self._decrypt(credential)
        model = model or (credential.model if credential else None)
        if name == "claude":
            return ClaudeAdapter(api_key, model=model)
        if name == "gemini":
            return GeminiAdapter(api_key, model=model)
        raise AIProviderError(f"AI provider '{name}' is not supported for prompts.", name)

    async def generate(self, system_prompt: str, user_prompt: str, config: dict) -> AIResponse:
        """
        Run a prompt.

        config carries ``provider`` plus optional ``model``, ``temperature``
        and ``max_tokens``.
        """
        adapter = await self.provider(config.get("provider", "claude"), config.get("model"))
        return await adapter.generate(
            system_prompt,
            user_prompt,
            max_tokens=int(config.get("max_tokens") or 4096),
            temperature=float(config.get("temperature", 0.7)),
        )
