"""
Prompt manager: the shared AI prompt library and its version history.

Any signed-in user may browse prompts; editing the library requires Hades.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.deps_admin import get_current_hades_user
from api.presenters import iso
from api.schemas.hub import ActionResponse, PromptRequest
from api.utils import action, escape_like, paginate, raise_validation
from core.plans import AI_PROVIDERS
from core.presentation import prompt_badges, with_empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import Prompt, PromptVersion, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/prompts", tags=["Hub - Prompts"])

PER_PAGE = 20
PROMPT_MODELS = ("claude", "gemini")
DEFAULT_MODEL_SETTINGS = {"temperature": 1.0, "max_tokens": 4096}


def prompt_row(prompt: Prompt) -> dict:
    description = prompt.description or ""
    return {
        "id": prompt.id,
        "name": prompt.name,
        "description": description[:57] + "..." if len(description) > 60 else description,
        "category": prompt.category,
        "model": prompt.model,
        "is_active": prompt.is_active,
        "badges": prompt_badges(prompt.model, prompt.is_active, prompt.category),
        "updated_at": iso(prompt.updated_at),
    }


def prompt_form(prompt: Prompt) -> dict:
    return {
        "id": prompt.id,
        "name": prompt.name,
        "description": prompt.description or "",
        "category": prompt.category,
        "model": prompt.model,
        "system_prompt": prompt.system_prompt,
        "user_template": prompt.user_template,
        "variables": prompt.variables or {},
        "model_settings": prompt.model_settings or dict(DEFAULT_MODEL_SETTINGS),
        "is_active": prompt.is_active,
    }


def validate_prompt(body: PromptRequest) -> dict[str, str]:
    errors = {}
    if not body.name.strip():
        errors["name"] = "The name field is required."
    elif len(body.name) > 255:
        errors["name"] = "The name may not be greater than 255 characters."
    if not body.category.strip():
        errors["category"] = "The category field is required."
    elif len(body.category) > 50:
        errors["category"] = "The category may not be greater than 50 characters."
    if not body.system_prompt.strip():
        errors["system_prompt"] = "The system prompt field is required."
    if not body.user_template.strip():
        errors["user_template"] = "The user template field is required."
    if body.model not in PROMPT_MODELS:
        errors["model"] = "The selected model is invalid."
    return errors


async def _get_prompt(db: AsyncSession, prompt_id: str) -> Prompt:
    prompt = (await db.execute(select(Prompt).where(Prompt.id == prompt_id))).scalar_one_or_none()
    if prompt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")
    return prompt


async def _snapshot(db: AsyncSession, prompt: Prompt, user: User) -> PromptVersion:
    """Store the prompt's current text as the next version."""
    latest = (
        await db.execute(
            select(func.max(PromptVersion.version)).where(PromptVersion.prompt_id == prompt.id)
        )
    ).scalar()
    version = PromptVersion(
        prompt_id=prompt.id,
        version=(latest or 0) + 1,
        system_prompt=prompt.system_prompt,
        user_template=prompt.user_template,
        variables=prompt.variables,
        created_by=user.id,
    )
    db.add(version)
    return version


def _apply(prompt: Prompt, body: PromptRequest) -> None:
    prompt.name = body.name.strip()
    prompt.category = body.category.strip()
    prompt.description = body.description or None
    prompt.system_prompt = body.system_prompt
    prompt.user_template = body.user_template
    prompt.variables = body.variables or None
    prompt.model = body.model
    prompt.model_settings = body.model_settings or None
    prompt.is_active = body.is_active


@router.get("")
async def list_prompts(
    current_user: Annotated[User, Depends(get_current_user)],
    search: str = Query(""),
    category: str = Query(""),
    model: str = Query(""),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
) -> dict:
    filters = []
    if search:
        pattern = f"%{escape_like(search)}%"
        filters.append(or_(Prompt.name.ilike(pattern), Prompt.description.ilike(pattern)))
    if category:
        filters.append(Prompt.category == category)
    if model:
        filters.append(Prompt.model == model)

    total = (await db.execute(select(func.count(Prompt.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Prompt)
        .where(*filters)
        .order_by(Prompt.category, Prompt.name)
        .offset((page - 1) * PER_PAGE)
        .limit(PER_PAGE)
    )
    rows = [prompt_row(p) for p in result.scalars().all()]
    categories = sorted((await db.execute(select(distinct(Prompt.category)))).scalars().all())

    state = {
        "prompts": rows,
        "pagination": paginate(total, page, PER_PAGE),
        "filters": {"search": search, "category": category, "model": model},
        "categories": {c: c.capitalize() for c in categories},
        "models": {m: AI_PROVIDERS[m]["name"] for m in PROMPT_MODELS},
        "can_edit": current_user.is_hades,
    }
    return with_empty_state(state, "prompts", rows)


@router.get("/{prompt_id}")
async def get_prompt(
    prompt_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Editor form plus the 20 newest versions."""
    prompt = await _get_prompt(db, prompt_id)
    result = await db.execute(
        select(PromptVersion)
        .where(PromptVersion.prompt_id == prompt.id)
        .order_by(PromptVersion.version.desc())
        .limit(20)
    )
    versions = [
        {"id": v.id, "version": v.version, "created_by": v.created_by, "created_at": iso(v.created_at)}
        for v in result.scalars().all()
    ]
    return {"prompt": prompt_form(prompt), "versions": versions}


@router.post("", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def create_prompt(
    body: PromptRequest,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    raise_validation(validate_prompt(body))
    prompt = Prompt()
    _apply(prompt, body)
    db.add(prompt)
    await db.commit()
    await db.refresh(prompt)
    logger.info("User %s created prompt %s", admin_user.id, prompt.id)
    return action("Prompt created successfully", prompt=prompt_form(prompt))


@router.put("/{prompt_id}", response_model=ActionResponse)
async def update_prompt(
    prompt_id: str,
    body: PromptRequest,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    prompt = await _get_prompt(db, prompt_id)
    raise_validation(validate_prompt(body))

    await _snapshot(db, prompt, admin_user)
    _apply(prompt, body)
    await db.commit()
    await db.refresh(prompt)
    logger.info("User %s updated prompt %s", admin_user.id, prompt.id)
    return action("Prompt updated successfully", prompt=prompt_form(prompt))


@router.delete("/{prompt_id}", response_model=ActionResponse)
async def delete_prompt(
    prompt_id: str,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    prompt = await _get_prompt(db, prompt_id)
    await db.delete(prompt)
    await db.commit()
    logger.info("User %s deleted prompt %s", admin_user.id, prompt_id)
    return action("Prompt deleted")


@router.post("/{prompt_id}/duplicate", response_model=ActionResponse)
async def duplicate_prompt(
    prompt_id: str,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    original = await _get_prompt(db, prompt_id)
    copy = Prompt(
        name=f"{original.name} (copy)",
        description=original.description,
        category=original.category,
        model=original.model,
        system_prompt=original.system_prompt,
        user_template=original.user_template,
        variables=original.variables,
        model_settings=original.model_settings,
        is_active=original.is_active,
    )
    db.add(copy)
    await db.commit()
    await db.refresh(copy)
    return action("Prompt duplicated", prompt=prompt_row(copy))


@router.post("/{prompt_id}/toggle-active", response_model=ActionResponse)
async def toggle_active(
    prompt_id: str,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    prompt = await _get_prompt(db, prompt_id)
    prompt.is_active = not prompt.is_active
    await db.commit()
    return action(
        "Prompt activated" if prompt.is_active else "Prompt deactivated",
        is_active=prompt.is_active,
    )


@router.post("/{prompt_id}/versions/{version_id}/restore", response_model=ActionResponse)
async def restore_version(
    prompt_id: str,
    version_id: str,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    prompt = await _get_prompt(db, prompt_id)
    version: Optional[PromptVersion] = (
        await db.execute(
            select(PromptVersion).where(
                PromptVersion.id == version_id,
                PromptVersion.prompt_id == prompt.id,
            )
        )
    ).scalar_one_or_none()
    if version is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found")

    prompt.system_prompt = version.system_prompt
    prompt.user_template = version.user_template
    prompt.variables = version.variables
    await db.commit()
    await db.refresh(prompt)
    logger.info("User %s restored prompt %s to version %d", admin_user.id, prompt.id, version.version)
    return action(f"Restored to version {version.version}", prompt=prompt_form(prompt))
