"""
Content editor: create and edit posts and pages, revisions, taxonomies,
featured media and the AI command palette.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_workspace_by_slug
from api.schemas.hub import (
    ActionResponse,
    AIResultRequest,
    ContentSaveRequest,
    ExecutePromptRequest,
    FeaturedMediaRequest,
    QuickActionRequest,
    SlugRequest,
    TagRequest,
)
from api.utils import action, raise_validation
from core.presentation import with_empty_state
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    ContentItem,
    ContentKind,
    ContentStatus,
    ContentType,
    RevisionChangeType,
    TaxonomyType,
    User,
    Workspace,
)
from services.content import (
    QUICK_ACTIONS,
    ContentAIError,
    ContentService,
    media_row,
    revision_row,
    slugify,
    taxonomy_row,
    validate_content_form,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hub/content-editor", tags=["Hub - Content Editor"])


async def _item_or_404(service: ContentService, item_id: Optional[str]) -> Optional[ContentItem]:
    if item_id is None:
        return None
    item = await service.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return item


async def _save(
    workspace: Workspace,
    user: User,
    db: AsyncSession,
    item_id: Optional[str],
    form: dict,
    change_type: str,
) -> dict:
    service = ContentService(db, workspace)
    item = await _item_or_404(service, item_id)
    raise_validation(validate_content_form(form))
    item = await service.save(item, form, user, change_type)
    return action("Content saved successfully", item=service.form_state(item))


@router.get("/{workspace}")
async def editor(
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    item: Optional[str] = Query(None, description="Content item id; omit for a new item"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Form state plus everything the sidebars need."""
    service = ContentService(db, workspace)
    content = await _item_or_404(service, item)

    revisions = [revision_row(r) for r in await service.revisions(content)] if content else []
    media = await service.media(per_page=20, images_only=True)

    state = {
        "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug},
        "form": service.form_state(content),
        "categories": [taxonomy_row(t) for t in await service.taxonomies(TaxonomyType.CATEGORY.value)],
        "tags": [taxonomy_row(t) for t in await service.taxonomies(TaxonomyType.TAG.value)],
        "media_library": [media_row(m) for m in media["items"]],
        "revisions": revisions,
        "prompts": await service.prompt_groups(),
        "quick_actions": QUICK_ACTIONS,
        "options": {
            "types": [k.value for k in ContentKind],
            "statuses": [s.value for s in ContentStatus],
            "content_types": [t.value for t in ContentType],
        },
    }
    return with_empty_state(state, "revisions", revisions)


@router.post("/{workspace}/slug")
async def generate_slug(
    body: SlugRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
) -> dict:
    return {"slug": slugify(body.title)}


@router.post("/{workspace}/save", response_model=ActionResponse)
async def save(
    body: ContentSaveRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    item_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await _save(
        workspace, current_user, db, item_id, body.model_dump(), RevisionChangeType.EDIT.value
    )


@router.post("/{workspace}/autosave", response_model=ActionResponse)
async def autosave(
    body: ContentSaveRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    item_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Periodic save; skipped until the form has a title and content."""
    if not body.title.strip() or not body.content.strip():
        return action("Autosave skipped.", level="warning", saved=False)
    return await _save(
        workspace, current_user, db, item_id, body.model_dump(), RevisionChangeType.AUTOSAVE.value
    )


@router.post("/{workspace}/publish", response_model=ActionResponse)
async def publish(
    body: ContentSaveRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    item_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    form = body.model_dump()
    form["status"] = ContentStatus.PUBLISH.value
    form["publish_at"] = None
    return await _save(workspace, current_user, db, item_id, form, RevisionChangeType.PUBLISH.value)


@router.post("/{workspace}/schedule", response_model=ActionResponse)
async def schedule(
    body: ContentSaveRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    item_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if body.publish_at is None:
        return action("Please set a publish date", level="error")

    form = body.model_dump()
    form["status"] = ContentStatus.FUTURE.value
    return await _save(workspace, current_user, db, item_id, form, RevisionChangeType.SCHEDULE.value)


# ----------------------------------------------------------------------
# Taxonomies and media
# ----------------------------------------------------------------------


@router.post("/{workspace}/tags")
async def add_tag(
    body: TagRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    item_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Find or create a tag by slug; attach it when item_id is given."""
    service = ContentService(db, workspace)
    item = await _item_or_404(service, item_id)
    tag = await service.find_or_create_tag(body.name)
    if item is not None:
        await service.add_tag(item, tag)
    return {"tag": taxonomy_row(tag)}


@router.delete("/{workspace}/items/{item_id}/tags/{tag_id}", response_model=ActionResponse)
async def remove_tag(
    item_id: str,
    tag_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = ContentService(db, workspace)
    item = await _item_or_404(service, item_id)
    if not await service.remove_tag(item, tag_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return action("Tag removed.")


@router.post("/{workspace}/items/{item_id}/categories/{category_id}", response_model=ActionResponse)
async def toggle_category(
    item_id: str,
    category_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = ContentService(db, workspace)
    item = await _item_or_404(service, item_id)
    attached = await service.toggle_category(item, category_id)
    if attached is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return action(
        "Category added." if attached else "Category removed.",
        category_ids=[t.id for t in item.categories],
    )


@router.put("/{workspace}/items/{item_id}/featured-media", response_model=ActionResponse)
async def set_featured_media(
    item_id: str,
    body: FeaturedMediaRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Set the featured image, or clear it with a null media_id."""
    service = ContentService(db, workspace)
    item = await _item_or_404(service, item_id)
    if not await service.set_featured_media(item, body.media_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    if body.media_id is None:
        return action("Featured image removed.", featured_media=None)
    return action("Featured image set.", featured_media=media_row(item.featured_media))


# ----------------------------------------------------------------------
# Revisions
# ----------------------------------------------------------------------


@router.get("/{workspace}/items/{item_id}/revisions")
async def list_revisions(
    item_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = ContentService(db, workspace)
    item = await _item_or_404(service, item_id)
    revisions = [revision_row(r) for r in await service.revisions(item)]
    return with_empty_state({"revisions": revisions}, "revisions", revisions)


@router.post(
    "/{workspace}/items/{item_id}/revisions/{revision_id}/restore",
    response_model=ActionResponse,
)
async def restore_revision(
    item_id: str,
    revision_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = ContentService(db, workspace)
    item = await _item_or_404(service, item_id)
    revision = await service.get_revision(revision_id)
    if revision is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Revision not found")

    if not await service.restore_revision(item, revision, current_user):
        return action("Invalid revision", level="error")
    return action(
        f"Restored revision #{revision.revision_number}", item=service.form_state(item)
    )


# ----------------------------------------------------------------------
# AI command palette
# ----------------------------------------------------------------------


@router.get("/{workspace}/prompts")
async def command_palette(
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    search: str = Query(""),
    db: AsyncSession = Depends(get_db),
) -> dict:
    groups = await ContentService(db, workspace).prompt_groups(search)
    state = {"search": search, "prompts": groups, "quick_actions": QUICK_ACTIONS}
    return with_empty_state(state, "prompts", groups)


@router.post("/{workspace}/ai/execute", response_model=ActionResponse)
async def execute_prompt(
    body: ExecutePromptRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = ContentService(db, workspace)
    prompt = await service.get_prompt(prompt_id=body.prompt_id)
    if prompt is None:
        return action("Prompt not found", level="error")

    variables = {
        **body.variables,
        "content": body.content,
        "title": body.title,
        "excerpt": body.excerpt,
    }
    try:
        result = await service.run_prompt(prompt, variables, current_user)
    except ContentAIError as e:
        return action(e.message, level="error")
    return action("AI response ready.", result=result)


@router.post("/{workspace}/ai/quick-action", response_model=ActionResponse)
async def execute_quick_action(
    body: QuickActionRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = ContentService(db, workspace)
    prompt = await service.get_prompt(name=body.prompt)
    if prompt is None:
        return action("Prompt not found", level="error")

    try:
        result = await service.run_prompt(
            prompt, {**body.variables, "content": body.content}, current_user
        )
    except ContentAIError as e:
        return action(e.message, level="error")
    return action("AI response ready.", result=result)


@router.post("/{workspace}/ai/result", response_model=ActionResponse)
async def use_ai_result(
    body: AIResultRequest,
    workspace: Annotated[Workspace, Depends(get_workspace_by_slug)],
) -> dict:
    """Replace the content with an AI result, or append it."""
    if not body.result:
        return action("No AI result to use.", level="warning", content=body.content)
    if body.mode == "insert":
        return action("AI content inserted", content=f"{body.content}\n\n{body.result}")
    return action("AI suggestions applied", content=body.result)
