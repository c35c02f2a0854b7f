"""
Single-user platform administration: tier, verification, GDPR tools,
packages and entitlements of the user's workspaces.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from api.dependencies import token_service
from api.deps_admin import get_current_hades_user
from api.presenters import boost_row, catalogue_package_row, iso, package_row, user_row, usage_groups
from api.schemas.admin import (
    ProvisionEntitlementRequest,
    ProvisionPackageRequest,
    RevokePackageRequest,
    ScheduleDeletionRequest,
    TierUpdateRequest,
    VerificationUpdateRequest,
)
from api.schemas.hub import ActionResponse
from api.utils import action, create_audit_log
from core.domain.entitlement import BoostDuration, EntitlementSource
from core.plans import HUB_SECTIONS
from core.presentation import deletion_status, workspace_status_color
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuditAction,
    AuditTargetType,
    Boost,
    Feature,
    Package,
    User,
    Workspace,
    utcnow,
)
from services.entitlements import EntitlementError, EntitlementService
from services.user_data import UserDataService
from services.workspaces import WorkspaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/platform/users", tags=["Admin - Platform User"])

TABS = HUB_SECTIONS["platform_user"]


async def get_target_user(user_id: str, db: AsyncSession = Depends(get_db)) -> User:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _owned_workspace(db: AsyncSession, user: User, workspace_id: str) -> Optional[Workspace]:
    """The workspace if the user is a member of it, else None."""
    for workspace, _ in await WorkspaceService(db).memberships(user):
        if workspace.id == workspace_id:
            return workspace
    return None


async def _workspace_rows(db: AsyncSession, user: User) -> list[dict]:
    entitlements = EntitlementService(db)
    rows = []
    for workspace, membership in await WorkspaceService(db, entitlements).memberships(user):
        rows.append(
            {
                "id": workspace.id,
                "name": workspace.name,
                "slug": workspace.slug,
                "role": membership.role,
                "is_default": membership.is_default,
                "status_color": workspace_status_color("active" if workspace.is_active else "inactive"),
                "packages": [package_row(wp) for wp in await entitlements.get_active_packages(workspace)],
            }
        )
    return rows


async def _workspace_entitlements(db: AsyncSession, user: User) -> list[dict]:
    entitlements = EntitlementService(db)
    rows = []
    for workspace, _ in await WorkspaceService(db, entitlements).memberships(user):
        summary = await entitlements.get_usage_summary(workspace)
        features = [feature for group in summary.values() for feature in group]
        boosts = []
        for boost in await entitlements.get_active_boosts(workspace):
            feature = await entitlements.get_feature(boost.feature_code)
            boosts.append(boost_row(boost, feature.name if feature else None))
        rows.append(
            {
                "workspace": {"id": workspace.id, "name": workspace.name, "slug": workspace.slug},
                "summary": usage_groups(summary),
                "boosts": boosts,
                "stats": {
                    "total": len(features),
                    "allowed": sum(1 for f in features if f["allowed"]),
                    "denied": sum(1 for f in features if not f["allowed"]),
                    "boosts": len(boosts),
                },
            }
        )
    return rows


@router.get("/{user_id}")
async def platform_user(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    tab: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Panel state for one user.

    Admin access required. An unknown tab falls back to overview.
    """
    tab = tab if tab in TABS else TABS[0]
    user_data = UserDataService(db)
    state: dict = {"tab": tab, "tabs": TABS, "user": user_row(user)}

    if tab == "overview":
        state["data_counts"] = await user_data.data_counts(user)
    elif tab == "workspaces":
        packages = (
            await db.execute(select(Package).where(Package.is_active.is_(True)).order_by(Package.sort_order))
        ).scalars().all()
        state["workspaces"] = await _workspace_rows(db, user)
        state["available_packages"] = [catalogue_package_row(p) for p in packages]
    elif tab == "entitlements":
        features = (
            await db.execute(
                select(Feature).where(Feature.is_active.is_(True)).order_by(Feature.category, Feature.sort_order)
            )
        ).scalars().all()
        state["workspace_entitlements"] = await _workspace_entitlements(db, user)
        state["features"] = [
            {"code": f.code, "name": f.name, "category": f.category, "type": f.type} for f in features
        ]
    elif tab == "data":
        state["user_data"] = await user_data.export_user_data(user)
        state["data_counts"] = await user_data.data_counts(user)
    elif tab == "danger":
        pending = await user_data.pending_deletion(user)
        state["pending_deletion"] = (
            {
                "id": pending.id,
                "reason": pending.reason,
                "expires_at": iso(pending.expires_at),
                "status": deletion_status(pending.expires_at, pending.completed_at, pending.cancelled_at),
            }
            if pending
            else None
        )
    return state


@router.put("/{user_id}/tier", response_model=ActionResponse)
async def save_tier(
    body: TierUpdateRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    old_tier = user.tier
    user.tier = body.tier
    await db.commit()

    await create_audit_log(
        db,
        admin_user,
        AuditAction.TIER_CHANGED,
        AuditTargetType.USER,
        user.id,
        f"Tier changed from {old_tier} to {body.tier}",
        metadata={"old_value": old_tier, "new_value": body.tier},
        request=request,
        target_user_id=user.id,
    )
    return action(f"Tier updated to {body.tier}.")


@router.put("/{user_id}/verification", response_model=ActionResponse)
async def save_verification(
    body: VerificationUpdateRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    if body.verified and user.email_verified_at is None:
        user.email_verified_at = utcnow()
    elif not body.verified:
        user.email_verified_at = None
    await db.commit()

    await create_audit_log(
        db,
        admin_user,
        AuditAction.VERIFICATION_CHANGED,
        AuditTargetType.USER,
        user.id,
        "Email verification set" if body.verified else "Email verification removed",
        metadata={"new_value": body.verified},
        request=request,
        target_user_id=user.id,
    )
    return action("Email marked as verified." if body.verified else "Email verification removed.")


@router.post("/{user_id}/resend-verification", response_model=ActionResponse)
async def resend_verification(
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    if user.email_verified_at is not None:
        return action("User email is already verified.", level="warning")

    token = token_service.create_email_verification_token(user.id, user.email)
    await email_service.send_verification_email(user.email, user.name, token)

    await create_audit_log(
        db,
        admin_user,
        AuditAction.VERIFICATION_RESENT,
        AuditTargetType.USER,
        user.id,
        f"Verification email resent to {user.email}",
        request=request,
        target_user_id=user.id,
    )
    return action(f"Verification email sent to {user.email}.")


@router.get("/{user_id}/export")
async def export_user_data(
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """GDPR data export as a JSON attachment."""
    service = UserDataService(db)
    data = await service.export_user_data(user)
    filename = service.export_filename(user)

    await create_audit_log(
        db,
        admin_user,
        AuditAction.DATA_EXPORT,
        AuditTargetType.USER,
        user.id,
        "GDPR data export",
        request=request,
        target_user_id=user.id,
    )
    logger.info("GDPR data export of user %s by admin %s", user.id, admin_user.id)
    return JSONResponse(
        content=data,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{user_id}/delete", response_model=ActionResponse)
async def schedule_delete(
    body: ScheduleDeletionRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    if user.is_hades and user.id == admin_user.id:
        return action("You cannot delete your own Hades account from here.", level="error")

    user_id, email = user.id, user.email
    deletion = await UserDataService(db).schedule_deletion(user, body.reason, immediate=body.immediate)

    if body.immediate:
        await create_audit_log(
            db,
            admin_user,
            AuditAction.USER_DELETED,
            AuditTargetType.USER,
            user_id,
            f"User {email} permanently deleted",
            metadata={"reason": deletion.reason},
            request=request,
        )
        return action("User account deleted.")

    await create_audit_log(
        db,
        admin_user,
        AuditAction.DELETION_SCHEDULED,
        AuditTargetType.USER,
        user_id,
        "Account deletion scheduled",
        metadata={"reason": deletion.reason, "expires_at": iso(deletion.expires_at)},
        request=request,
        target_user_id=user_id,
    )
    return action(
        "Account deletion scheduled. Will be deleted in 7 days unless cancelled.",
        level="warning",
    )


@router.post("/{user_id}/cancel-deletion", response_model=ActionResponse)
async def cancel_pending_deletion(
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    cancelled = await UserDataService(db).cancel_pending_deletion(user)
    if cancelled is None:
        return action("No pending deletion request found.", level="warning")

    await create_audit_log(
        db,
        admin_user,
        AuditAction.DELETION_CANCELLED,
        AuditTargetType.USER,
        user.id,
        "Pending deletion cancelled",
        metadata={"deletion_request_id": cancelled.id},
        request=request,
        target_user_id=user.id,
    )
    return action("Pending deletion cancelled.")


@router.post("/{user_id}/anonymize", response_model=ActionResponse)
async def anonymize_user(
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    if user.id == admin_user.id:
        return action("You cannot anonymize your own account.", level="error")

    original_email = user.email
    await UserDataService(db).anonymize(user)

    await create_audit_log(
        db,
        admin_user,
        AuditAction.USER_ANONYMIZED,
        AuditTargetType.USER,
        user.id,
        "User data anonymized",
        metadata={"original_email": original_email},
        request=request,
        target_user_id=user.id,
    )
    return action("User data anonymized.")


@router.post("/{user_id}/packages", response_model=ActionResponse)
async def provision_package(
    body: ProvisionPackageRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not body.workspace_id or not body.package_code:
        return action("Please select a workspace and package.", level="warning")

    workspace = await _owned_workspace(db, user, body.workspace_id)
    if workspace is None:
        return action("This workspace does not belong to this user.", level="error")

    entitlements = EntitlementService(db)
    try:
        workspace_package = await entitlements.provision_package(
            workspace, body.package_code, source=EntitlementSource.ADMIN.value, user=admin_user
        )
    except EntitlementError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    package_name = workspace_package.package.name
    await create_audit_log(
        db,
        admin_user,
        AuditAction.PACKAGE_PROVISIONED,
        AuditTargetType.WORKSPACE,
        workspace.id,
        f"Package {body.package_code} provisioned",
        metadata={"package_code": body.package_code},
        request=request,
        target_user_id=user.id,
    )
    return action(f"Package '{package_name}' provisioned to workspace '{workspace.name}'.")


@router.post("/{user_id}/packages/revoke", response_model=ActionResponse)
async def revoke_package(
    body: RevokePackageRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    workspace = await _owned_workspace(db, user, body.workspace_id)
    if workspace is None:
        return action("This workspace does not belong to this user.", level="error")

    entitlements = EntitlementService(db)
    package = await entitlements.get_package(body.package_code)
    package_name = package.name if package else body.package_code
    await entitlements.revoke_package(
        workspace, body.package_code, source=EntitlementSource.ADMIN.value, user=admin_user
    )

    await create_audit_log(
        db,
        admin_user,
        AuditAction.PACKAGE_REVOKED,
        AuditTargetType.WORKSPACE,
        workspace.id,
        f"Package {body.package_code} revoked",
        metadata={"package_code": body.package_code},
        request=request,
        target_user_id=user.id,
    )
    return action(f"Package '{package_name}' revoked from workspace '{workspace.name}'.")


@router.post("/{user_id}/entitlements", response_model=ActionResponse)
async def provision_entitlement(
    body: ProvisionEntitlementRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Add a boost to one of the user's workspaces."""
    if not body.workspace_id or not body.feature_code:
        return action("Please select a workspace and feature.", level="warning")

    entitlements = EntitlementService(db)
    feature = await entitlements.get_feature(body.feature_code)
    if feature is None:
        return action("Feature not found.", level="error")

    workspace = await _owned_workspace(db, user, body.workspace_id)
    if workspace is None:
        return action("This workspace does not belong to this user.", level="error")

    duration_type = (
        BoostDuration.PERMANENT.value if body.duration == "permanent" else BoostDuration.DURATION.value
    )
    await entitlements.provision_boost(
        workspace,
        feature.code,
        boost_type=body.type,
        duration_type=duration_type,
        limit_value=body.limit_value if body.type == "add_limit" else None,
        expires_at=body.expires_at if body.duration == "duration" else None,
        source=EntitlementSource.ADMIN.value,
        user=admin_user,
    )

    await create_audit_log(
        db,
        admin_user,
        AuditAction.ENTITLEMENT_PROVISIONED,
        AuditTargetType.WORKSPACE,
        workspace.id,
        f"Entitlement {feature.code} provisioned",
        metadata={"feature_code": feature.code, "type": body.type, "duration": body.duration},
        request=request,
        target_user_id=user.id,
    )
    return action(f"Entitlement '{feature.name}' added to workspace '{workspace.name}'.")


@router.delete("/{user_id}/boosts/{boost_id}", response_model=ActionResponse)
async def remove_boost(
    boost_id: str,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    user: Annotated[User, Depends(get_target_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    boost = (await db.execute(select(Boost).where(Boost.id == boost_id))).scalar_one_or_none()
    if boost is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Boost not found")

    workspace = await _owned_workspace(db, user, boost.workspace_id)
    if workspace is None:
        return action("This boost does not belong to this user.", level="error")

    await EntitlementService(db).cancel_boost(
        workspace, boost, source=EntitlementSource.ADMIN.value, user=admin_user
    )

    await create_audit_log(
        db,
        admin_user,
        AuditAction.BOOST_REMOVED,
        AuditTargetType.BOOST,
        boost.id,
        f"Boost for {boost.feature_code} removed",
        metadata={"workspace_id": workspace.id, "feature_code": boost.feature_code},
        request=request,
        target_user_id=user.id,
    )
    return action("Boost removed.")
