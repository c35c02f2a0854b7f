"""
Workspace membership, switching and per-workspace overviews.
"""

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entitlement import EntitlementSource, FeatureType, ResetType
from core.plans import DEFAULT_CURRENCY, SERVICES, service_by_feature_code
from infrastructure.database.models import (
    Feature,
    Package,
    PackageFeature,
    User,
    Workspace,
    WorkspaceMember,
)
from services.entitlements import EntitlementService

logger = logging.getLogger(__name__)


class WorkspaceService:
    def __init__(self, db: AsyncSession, entitlements: Optional[EntitlementService] = None):
        self.db = db
        self.entitlements = entitlements or EntitlementService(db)

    async def memberships(self, user: User) -> list[tuple[Workspace, WorkspaceMember]]:
        result = await self.db.execute(
            select(Workspace, WorkspaceMember)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user.id)
            .order_by(Workspace.sort_order, Workspace.name)
        )
        return list(result.all())

    async def list_for_user(self, user: User) -> list[dict]:
        return [
            {
                "id": workspace.id,
                "name": workspace.name,
                "slug": workspace.slug,
                "domain": workspace.domain,
                "icon": workspace.icon,
                "color": workspace.color,
                "role": membership.role,
                "is_default": membership.is_default,
            }
            for workspace, membership in await self.memberships(user)
        ]

    async def get_membership(self, user: User, workspace: Workspace) -> Optional[WorkspaceMember]:
        result = await self.db.execute(
            select(WorkspaceMember).where(
                WorkspaceMember.user_id == user.id,
                WorkspaceMember.workspace_id == workspace.id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Optional[Workspace]:
        result = await self.db.execute(select(Workspace).where(Workspace.slug == slug))
        return result.scalar_one_or_none()

    async def default_workspace(self, user: User) -> Optional[Workspace]:
        """The user's default host workspace, else the first one."""
        memberships = await self.memberships(user)
        for workspace, membership in memberships:
            if membership.is_default:
                return workspace
        return memberships[0][0] if memberships else None

    async def current(self, user: User) -> Optional[Workspace]:
        """The selected workspace while the user is still a member of it."""
        if user.current_workspace_id:
            result = await self.db.execute(
                select(Workspace)
                .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
                .where(
                    Workspace.id == user.current_workspace_id,
                    WorkspaceMember.user_id == user.id,
                )
            )
            workspace = result.scalar_one_or_none()
            if workspace is not None:
                return workspace
        return await self.default_workspace(user)

    async def switch(self, user: User, slug: str) -> Workspace:
        """
        Make the workspace with slug the user's current one.

        Raises:
            HTTPException: 404 if the workspace does not exist or the user is not a member
        """
        workspace = await self.get_by_slug(slug)
        if workspace is None or await self.get_membership(user, workspace) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found")

        user.current_workspace_id = workspace.id
        await self.db.commit()
        logger.info("User %s switched to workspace %s", user.id, workspace.slug)
        return workspace

    async def entitled_services(self, workspace: Workspace, include_all: bool = False) -> list[dict]:
        """Service catalogue entries the workspace is entitled to (Hades sees all)."""
        services = []
        for slug, service in SERVICES.items():
            entitled = include_all or (
                await self.entitlements.can(workspace, service["feature_code"])
            ).allowed
            if entitled:
                services.append({"slug": slug, **service})
        return services

    async def user_workspace_overview(self, user: User) -> list[dict]:
        """Per-workspace plan, price and service summary for the account panel."""
        overview = []
        for workspace, membership in await self.memberships(user):
            base = None
            for workspace_package in await self.entitlements.get_active_packages(workspace):
                if workspace_package.package.is_base_package:
                    base = workspace_package
                    break

            services = await self.entitled_services(workspace, include_all=user.is_hades)
            package = base.package if base is not None else None
            overview.append(
                {
                    "workspace": {
                        "id": workspace.id,
                        "name": workspace.name,
                        "slug": workspace.slug,
                        "role": membership.role,
                    },
                    "plan": package.name if package is not None else "Free",
                    "status": base.status if base is not None else "inactive",
                    "renews_at": base.expires_at.isoformat() if base is not None and base.expires_at else None,
                    "price": float(package.monthly_price or 0) if package is not None else 0,
                    "currency": DEFAULT_CURRENCY,
                    "services": [
                        {"slug": s["slug"], "name": s["name"], "icon": s["icon"], "color": s["color"]}
                        for s in services
                    ],
                    "service_count": len(services),
                }
            )
        return sorted(overview, key=lambda entry: entry["workspace"]["name"])

    async def add_service(self, workspace: Workspace, feature_code: str, user: User) -> Feature:
        """
        Give a workspace one catalogue service.

        Finds or creates the service's boolean feature and a stackable
        ``<feature>-access`` package holding it, then provisions that package.

        Raises:
            HTTPException: 404 if no catalogue service uses feature_code
        """
        match = service_by_feature_code(feature_code)
        if match is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found.")
        _, service = match

        feature = await self.entitlements.get_feature(feature_code)
        if feature is None:
            feature = Feature(
                code=feature_code,
                name=f"{service['name']} Access",
                description=f"Access to {service['name']}",
                category="service",
                type=FeatureType.BOOLEAN.value,
                reset_type=ResetType.NONE.value,
                is_active=True,
                sort_order=1,
            )
            self.db.add(feature)
            await self.db.flush()

        package_code = feature_code.replace(".", "-") + "-access"
        package = await self.entitlements.get_package(package_code)
        if package is None:
            package = Package(
                code=package_code,
                name=feature.name,
                description=f"Access to {feature.name}",
                is_stackable=True,
                is_base_package=False,
                is_active=True,
                is_public=False,
                sort_order=99,
            )
            self.db.add(package)
            await self.db.flush()
            await self.db.refresh(package, ["features"])

        if all(pf.feature_id != feature.id for pf in package.features):
            package.features.append(PackageFeature(feature=feature, limit_value=None))
        await self.db.commit()

        await self.entitlements.provision_package(
            workspace,
            package_code,
            source=EntitlementSource.USER.value,
            metadata={"added_via": "site_settings_page"},
            user=user,
        )
        logger.info("Service %s added to workspace %s by user %s", feature_code, workspace.id, user.id)
        return feature
