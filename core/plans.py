"""
Static catalogues for the hub: tiers, AI providers, panel sections and services.

This module is the single source of truth for these lists. It lives in core/
so both service and API layers can import from it without creating circular
dependencies.
"""

# Account tiers. max_workspaces of -1 means unlimited.
TIERS = {
    "free": {"name": "Free", "max_workspaces": 1, "badge": "zinc"},
    "apollo": {"name": "Apollo", "max_workspaces": 5, "badge": "blue"},
    "hades": {"name": "Hades", "max_workspaces": -1, "badge": "violet"},
}

# AI providers a user can configure. The first model in each list is the default.
AI_PROVIDERS = {
    "claude": {
        "name": "Claude",
        "label": "Anthropic Claude",
        "models": [
            "claude-sonnet-4-20250514",
            "claude-opus-4-20250514",
            "claude-3-5-sonnet-20241022",
            "claude-3-5-haiku-20241022",
        ],
    },
    "gemini": {
        "name": "Gemini",
        "label": "Google Gemini",
        "models": [
            "gemini-2.0-flash",
            "gemini-2.0-flash-lite",
            "gemini-1.5-pro",
            "gemini-1.5-flash",
        ],
    },
    "openai": {
        "name": "OpenAI",
        "label": "OpenAI",
        "models": [],
    },
}

# Per-million-token prices (USD) used for cost estimates
AI_MODEL_PRICING = {
    "claude-sonnet-4-20250514": (3.00, 15.00),
    "claude-opus-4-20250514": (15.00, 75.00),
    "claude-3-5-sonnet-20241022": (3.00, 15.00),
    "claude-3-5-haiku-20241022": (0.80, 4.00),
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-2.0-flash-lite": (0.075, 0.30),
    "gemini-1.5-pro": (1.25, 5.00),
    "gemini-1.5-flash": (0.075, 0.30),
}

# Section/tab names per panel; the first entry is the default
HUB_SECTIONS = {
    "account_usage": ["overview", "workspaces", "entitlements", "boosts", "ai"],
    "ai_services": ["claude", "gemini", "openai"],
    "platform_user": ["overview", "workspaces", "entitlements", "data", "danger"],
    "content_manager": ["dashboard", "kanban", "calendar", "list", "webhooks"],
    "content": ["posts", "pages", "media"],
    "settings": ["profile", "preferences", "password", "two_factor", "delete_account"],
    "site_settings": ["services", "general", "deployment", "environment", "ssl", "backups", "danger"],
}

# Add-on services a workspace can enable from its site settings
SERVICES = {
    "bio": {
        "name": "Bio",
        "feature_code": "core.srv.bio",
        "color": "violet",
        "icon": "link",
        "description": "Link-in-bio pages with custom domains and analytics.",
        "features": [
            "Unlimited bio pages",
            "Custom domains",
            "Link analytics",
            "QR code generation",
        ],
        "tabs": ["dashboard", "pages", "projects"],
    },
    "social": {
        "name": "Social",
        "feature_code": "core.srv.social",
        "color": "blue",
        "icon": "share-nodes",
        "description": "Schedule and publish to every social network from one place.",
        "features": [
            "Multi-platform posting",
            "Content calendar",
            "Team approvals",
            "Analytics & insights",
        ],
        "tabs": ["dashboard", "accounts", "posts"],
    },
    "analytics": {
        "name": "Analytics",
        "feature_code": "core.srv.analytics",
        "color": "cyan",
        "icon": "chart-line",
        "description": "Privacy-first website analytics.",
        "features": [
            "Real-time visitors",
            "Goal tracking",
            "Heatmaps",
            "Session replays",
        ],
        "tabs": ["dashboard", "websites", "settings"],
    },
    "trust": {
        "name": "Trust",
        "feature_code": "core.srv.trust",
        "color": "orange",
        "icon": "shield-check",
        "description": "Social proof notifications that convert visitors.",
        "features": [
            "Purchase notifications",
            "Review widgets",
            "Visitor counts",
            "Custom campaigns",
        ],
        "tabs": ["dashboard", "campaigns"],
    },
    "notify": {
        "name": "Notify",
        "feature_code": "core.srv.notify",
        "color": "yellow",
        "icon": "bell",
        "description": "Browser push notifications for your audience.",
        "features": [
            "Browser push notifications",
            "Subscriber management",
            "Campaign scheduling",
            "Delivery analytics",
        ],
        "tabs": ["dashboard", "websites", "campaigns"],
    },
    "support": {
        "name": "Support",
        "feature_code": "core.srv.support",
        "color": "teal",
        "icon": "headset",
        "description": "Shared inbox for customer conversations.",
        "features": [
            "Email ticketing",
            "Live chat widget",
            "Knowledge base",
            "Team collaboration",
        ],
        "tabs": ["dashboard", "inbox"],
    },
}

# Static hub pages offered by the global search palette
HUB_PAGES = [
    {"id": "dashboard", "title": "Dashboard", "subtitle": "Hub overview", "url": "/hub", "icon": "house"},
    {"id": "usage", "title": "Usage & Limits", "subtitle": "Workspace usage and features", "url": "/hub/usage", "icon": "chart-bar"},
    {"id": "account-usage", "title": "Account Usage", "subtitle": "Packages, boosts and AI", "url": "/hub/account/usage", "icon": "gauge"},
    {"id": "ai-services", "title": "AI Services", "subtitle": "Provider API keys", "url": "/hub/ai-services", "icon": "sparkles"},
    {"id": "prompts", "title": "Prompt Manager", "subtitle": "AI prompt library", "url": "/hub/prompts", "icon": "wand-magic-sparkles"},
    {"id": "content", "title": "Content", "subtitle": "Posts, pages and media", "url": "/hub/content", "icon": "file-lines"},
    {"id": "content-manager", "title": "Content Manager", "subtitle": "Kanban, calendar and webhooks", "url": "/hub/content-manager", "icon": "newspaper"},
    {"id": "services", "title": "Services", "subtitle": "Bio, Social, Analytics and more", "url": "/hub/services", "icon": "cubes"},
    {"id": "workspaces", "title": "Workspaces", "subtitle": "Manage your workspaces", "url": "/hub/workspaces", "icon": "layer-group"},
    {"id": "databases", "title": "Databases", "subtitle": "WordPress connector", "url": "/hub/databases", "icon": "database"},
    {"id": "profile", "title": "Profile", "subtitle": "Your account overview", "url": "/hub/profile", "icon": "user"},
    {"id": "settings", "title": "Account Settings", "subtitle": "Profile, preferences and password", "url": "/hub/settings", "icon": "gear"},
    {"id": "platform", "title": "Platform Admin", "subtitle": "Users and system", "url": "/admin/platform", "icon": "crown", "hades": True},
    {"id": "entitlements", "title": "Entitlements", "subtitle": "Packages and features", "url": "/admin/entitlements", "icon": "key", "hades": True},
    {"id": "deployments", "title": "Deployments", "subtitle": "Service health and commits", "url": "/hub/deployments", "icon": "rocket", "hades": True},
    {"id": "console", "title": "Server Console", "subtitle": "Server list", "url": "/hub/console", "icon": "terminal", "hades": True},
    {"id": "honeypot", "title": "Honeypot", "subtitle": "Bot traps and blocklist", "url": "/hub/honeypot", "icon": "bug", "hades": True},
]

DEFAULT_CURRENCY = "GBP"


def get_tier(tier: str) -> dict:
    """Get tier configuration, falling back to free for unknown tiers."""
    return TIERS.get(tier, TIERS["free"])


def service_by_feature_code(feature_code: str) -> tuple[str, dict] | None:
    for slug, service in SERVICES.items():
        if service["feature_code"] == feature_code:
            return slug, service
    return None


def default_model(provider: str) -> str | None:
    models = AI_PROVIDERS.get(provider, {}).get("models") or []
    return models[0] if models else None
