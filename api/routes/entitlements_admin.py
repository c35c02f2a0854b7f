"""
Entitlement catalogue administration: packages, features and assignments.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_hades_user
from api.presenters import catalogue_package_row
from api.schemas.admin import FeatureRequest, PackageFeaturesRequest, PackageRequest
from api.schemas.hub import ActionResponse
from api.utils import action, create_audit_log, raise_validation
from core.domain.entitlement import BoostStatus, PackageStatus
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuditAction,
    AuditTargetType,
    Boost,
    Feature,
    Package,
    PackageFeature,
    User,
    WorkspacePackage,
)
from services.cache import cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/entitlements", tags=["Admin - Entitlements"])

FEATURE_TYPE_COLORS = {"boolean": "gray", "limit": "blue", "unlimited": "purple"}


def _truncate(value: str | None, limit: int) -> str | None:
    if value is None or len(value) <= limit:
        return value
    return value[:limit] + "..."


def feature_row(feature: Feature) -> dict:
    if feature.reset_type == "monthly":
        reset = {"label": "Monthly", "color": "green"}
    elif feature.reset_type == "rolling":
        reset = {"label": f"{feature.rolling_window_days or 30}d", "color": "amber"}
    else:
        reset = {"label": "Never", "color": None}

    return {
        "id": feature.id,
        "code": feature.code,
        "name": feature.name,
        "description": _truncate(feature.description, 40),
        "category": feature.category,
        "type": feature.type,
        "reset_type": feature.reset_type,
        "rolling_window_days": feature.rolling_window_days,
        "parent_feature_id": feature.parent_feature_id,
        "pool": feature.parent.name if feature.parent else None,
        "sort_order": feature.sort_order,
        "is_active": feature.is_active,
        "type_badge": {"label": feature.type.capitalize(), "color": FEATURE_TYPE_COLORS.get(feature.type, "gray")},
        "reset_badge": reset,
        "status_badge": {
            "label": "Active" if feature.is_active else "Inactive",
            "color": "green" if feature.is_active else "gray",
        },
    }


async def _get_package(db: AsyncSession, package_id: str) -> Package:
    package = (await db.execute(select(Package).where(Package.id == package_id))).scalar_one_or_none()
    if package is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Package not found")
    return package


async def _get_feature(db: AsyncSession, feature_id: str) -> Feature:
    feature = (await db.execute(select(Feature).where(Feature.id == feature_id))).scalar_one_or_none()
    if feature is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feature not found")
    return feature


async def _code_taken(db: AsyncSession, model, code: str, exclude_id: str | None = None) -> bool:
    query = select(func.count(model.id)).where(model.code == code)
    if exclude_id:
        query = query.where(model.id != exclude_id)
    return ((await db.execute(query)).scalar() or 0) > 0


async def _count(db: AsyncSession, column, *where) -> int:
    query = select(func.count(column))
    if where:
        query = query.where(*where)
    return (await db.execute(query)).scalar() or 0


async def _invalidate_all_limits() -> None:
    # Catalogue edits change limits for every workspace holding the package
    await cache.delete_prefix("entitlement:")


@router.get("")
async def entitlements_dashboard(
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Stats plus package and feature tables."""
    packages = (await db.execute(select(Package).order_by(Package.sort_order, Package.name))).scalars().all()
    features = (
        await db.execute(select(Feature).order_by(Feature.category, Feature.sort_order, Feature.name))
    ).unique().scalars().all()

    package_rows = []
    for package in packages:
        row = catalogue_package_row(package)
        row["description"] = _truncate(package.description, 50)
        row["features_count"] = len(package.features)
        row["features"] = [
            {"feature_id": pf.feature_id, "code": pf.feature.code, "limit_value": pf.limit_value}
            for pf in package.features
        ]
        package_rows.append(row)

    return {
        "stats": {
            "packages": {
                "total": await _count(db, Package.id),
                "active": await _count(db, Package.id, Package.is_active.is_(True)),
                "public": await _count(db, Package.id, Package.is_public.is_(True)),
                "base": await _count(db, Package.id, Package.is_base_package.is_(True)),
            },
            "features": {
                "total": await _count(db, Feature.id),
                "active": await _count(db, Feature.id, Feature.is_active.is_(True)),
                "boolean": await _count(db, Feature.id, Feature.type == "boolean"),
                "limit": await _count(db, Feature.id, Feature.type == "limit"),
            },
            "assignments": {
                "workspace_packages": await _count(
                    db, WorkspacePackage.id, WorkspacePackage.status == PackageStatus.ACTIVE.value
                ),
                "active_boosts": await _count(db, Boost.id, Boost.status == BoostStatus.ACTIVE.value),
            },
        },
        "packages": package_rows,
        "features": [feature_row(f) for f in features],
        "categories": sorted({f.category for f in features if f.category}),
    }


# ============================================================================
# Packages
# ============================================================================


@router.post("/packages", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def create_package(
    body: PackageRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    if await _code_taken(db, Package, body.code):
        raise_validation({"code": "The code has already been taken."})

    package = Package(**body.model_dump())
    db.add(package)
    await db.commit()
    await db.refresh(package)

    await create_audit_log(
        db, admin_user, AuditAction.PACKAGE_CREATED, AuditTargetType.PACKAGE, package.id,
        f"Package {package.code} created", request=request,
    )
    return action("Package created successfully.", package=catalogue_package_row(package))


@router.put("/packages/{package_id}", response_model=ActionResponse)
async def update_package(
    package_id: str,
    body: PackageRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    package = await _get_package(db, package_id)
    if await _code_taken(db, Package, body.code, exclude_id=package.id):
        raise_validation({"code": "The code has already been taken."})

    for field, value in body.model_dump().items():
        setattr(package, field, value)
    await db.commit()
    await _invalidate_all_limits()

    await create_audit_log(
        db, admin_user, AuditAction.PACKAGE_UPDATED, AuditTargetType.PACKAGE, package.id,
        f"Package {package.code} updated", request=request,
    )
    return action("Package updated successfully.", package=catalogue_package_row(package))


@router.delete("/packages/{package_id}", response_model=ActionResponse)
async def delete_package(
    package_id: str,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    package = await _get_package(db, package_id)
    if await _count(db, WorkspacePackage.id, WorkspacePackage.package_id == package.id):
        return action("Cannot delete package with active assignments.", level="error")

    code = package.code
    await db.delete(package)
    await db.commit()

    await create_audit_log(
        db, admin_user, AuditAction.PACKAGE_DELETED, AuditTargetType.PACKAGE, package_id,
        f"Package {code} deleted", request=request,
    )
    return action("Package deleted successfully.")


@router.put("/packages/{package_id}/features", response_model=ActionResponse)
async def assign_features(
    package_id: str,
    body: PackageFeaturesRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Replace the package's feature set with the submitted one."""
    package = await _get_package(db, package_id)

    known = set((await db.execute(select(Feature.id))).scalars().all())
    unknown = [a.feature_id for a in body.features if a.feature_id not in known]
    if unknown:
        raise_validation({"features": f"Unknown feature: {unknown[0]}"})

    # Flush the removals first so re-assigned features do not hit uq_package_feature
    package.features.clear()
    await db.flush()
    package.features.extend(
        PackageFeature(feature_id=assignment.feature_id, limit_value=assignment.limit_value)
        for assignment in body.features
    )
    await db.commit()
    await db.refresh(package)
    await _invalidate_all_limits()

    await create_audit_log(
        db, admin_user, AuditAction.PACKAGE_UPDATED, AuditTargetType.PACKAGE, package.id,
        f"Features of package {package.code} updated",
        metadata={"features": [a.model_dump() for a in body.features]},
        request=request,
    )
    return action("Package features updated successfully.")


# ============================================================================
# Features
# ============================================================================


def _feature_errors(body: FeatureRequest, parent_exists: bool) -> dict[str, str]:
    errors = {}
    if body.parent_feature_id and not parent_exists:
        errors["parent_feature_id"] = "The selected parent feature is invalid."
    if body.rolling_window_days is not None and body.rolling_window_days > 365:
        errors["rolling_window_days"] = "The rolling window may not be greater than 365 days."
    return errors


@router.post("/features", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def create_feature(
    body: FeatureRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    errors = _feature_errors(
        body,
        bool(body.parent_feature_id)
        and await _count(db, Feature.id, Feature.id == body.parent_feature_id) > 0,
    )
    if await _code_taken(db, Feature, body.code):
        errors["code"] = "The code has already been taken."
    raise_validation(errors)

    feature = Feature(**body.model_dump())
    db.add(feature)
    await db.commit()
    await db.refresh(feature)

    await create_audit_log(
        db, admin_user, AuditAction.FEATURE_CREATED, AuditTargetType.FEATURE, feature.id,
        f"Feature {feature.code} created", request=request,
    )
    return action("Feature created successfully.", feature=feature_row(feature))


@router.put("/features/{feature_id}", response_model=ActionResponse)
async def update_feature(
    feature_id: str,
    body: FeatureRequest,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    feature = await _get_feature(db, feature_id)
    errors = _feature_errors(
        body,
        bool(body.parent_feature_id)
        and await _count(db, Feature.id, Feature.id == body.parent_feature_id) > 0,
    )
    if body.parent_feature_id == feature.id:
        errors["parent_feature_id"] = "A feature cannot be its own parent."
    if await _code_taken(db, Feature, body.code, exclude_id=feature.id):
        errors["code"] = "The code has already been taken."
    raise_validation(errors)

    for field, value in body.model_dump().items():
        setattr(feature, field, value)
    await db.commit()
    await db.refresh(feature)
    await _invalidate_all_limits()

    await create_audit_log(
        db, admin_user, AuditAction.FEATURE_UPDATED, AuditTargetType.FEATURE, feature.id,
        f"Feature {feature.code} updated", request=request,
    )
    return action("Feature updated successfully.", feature=feature_row(feature))


@router.delete("/features/{feature_id}", response_model=ActionResponse)
async def delete_feature(
    feature_id: str,
    request: Request,
    admin_user: Annotated[User, Depends(get_current_hades_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    feature = await _get_feature(db, feature_id)
    if await _count(db, PackageFeature.id, PackageFeature.feature_id == feature.id):
        return action("Cannot delete feature assigned to packages.", level="error")
    if await _count(db, Feature.id, Feature.parent_feature_id == feature.id):
        return action("Cannot delete feature with children.", level="error")

    code = feature.code
    await db.delete(feature)
    await db.commit()

    await create_audit_log(
        db, admin_user, AuditAction.FEATURE_DELETED, AuditTargetType.FEATURE, feature_id,
        f"Feature {code} deleted", request=request,
    )
    return action("Feature deleted successfully.")
