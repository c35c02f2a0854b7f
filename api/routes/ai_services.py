"""
AI services panel: per-provider API keys and default models.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.schemas.hub import ActionResponse, AIServiceSettingsRequest
from api.utils import action, raise_validation
from core.plans import AI_PROVIDERS, HUB_SECTIONS
from core.presentation import select_section
from infrastructure.database.connection import get_db
from infrastructure.database.models import User
from services.ai_providers import AIProviderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/ai-services", tags=["Hub - AI Services"])

TABS = HUB_SECTIONS["ai_services"]


@router.get("")
async def ai_services(
    current_user: Annotated[User, Depends(get_current_user)],
    tab: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return {
        "tab": select_section(tab, TABS, TABS[0]),
        "tabs": TABS,
        "providers": await AIProviderService(db, current_user).get_settings(),
    }


@router.put("/{provider}", response_model=ActionResponse)
async def save_provider(
    provider: str,
    body: AIServiceSettingsRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Save one provider's key, model and active flag.

    An active provider needs a key; the model must be one the provider offers.
    """
    if provider not in AI_PROVIDERS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI provider not found")

    errors = await AIProviderService(db, current_user).save_settings(
        provider, body.api_key, body.model, body.active
    )
    raise_validation(errors)
    return action(f"{AI_PROVIDERS[provider]['name']} settings saved.")
