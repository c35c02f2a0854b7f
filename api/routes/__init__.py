"""API Routes."""

from fastapi import APIRouter

from .account_usage import router as account_usage_router
from .ai_services import router as ai_services_router
from .auth import router as auth_router
from .console import router as console_router
from .content import router as content_router
from .content_editor import router as content_editor_router
from .content_manager import router as content_manager_router
from .databases import router as databases_router
from .deployments import router as deployments_router
from .entitlements_admin import router as entitlements_admin_router
from .health import router as health_router
from .honeypot import router as honeypot_router, trap_router
from .platform import router as platform_router
from .platform_user import router as platform_user_router
from .profile import router as profile_router
from .prompts import router as prompts_router
from .search import router as search_router
from .services_admin import router as services_admin_router
from .settings import router as settings_router
from .site_settings import router as site_settings_router
from .usage_dashboard import router as usage_dashboard_router
from .webhooks import router as webhooks_router
from .workspaces import router as workspaces_router

# Create main API router
api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(auth_router)

# Hub panels
api_router.include_router(account_usage_router)
api_router.include_router(ai_services_router)
api_router.include_router(usage_dashboard_router)
api_router.include_router(workspaces_router)
api_router.include_router(search_router)
api_router.include_router(profile_router)
api_router.include_router(settings_router)
api_router.include_router(site_settings_router)
api_router.include_router(services_admin_router)
api_router.include_router(content_manager_router)
api_router.include_router(content_router)
api_router.include_router(content_editor_router)
api_router.include_router(prompts_router)
api_router.include_router(databases_router)
api_router.include_router(deployments_router)
api_router.include_router(console_router)
api_router.include_router(honeypot_router)

# Platform administration
api_router.include_router(platform_router)
api_router.include_router(platform_user_router)
api_router.include_router(entitlements_admin_router)

api_router.include_router(webhooks_router)

__all__ = ["api_router", "trap_router"]
