"""
Shared API utility functions.
"""

from math import ceil
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import AdminAuditLog, AuditAction, AuditTargetType, User


def escape_like(value: str) -> str:
    """Escape LIKE wildcards for safe use in SQL LIKE/ILIKE patterns."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def action(message: str, level: str = "success", success: Optional[bool] = None, **payload: Any) -> dict:
    """ActionResponse body; success follows level unless given."""
    if success is None:
        success = level in ("success", "warning")
    return {"success": success, "message": message, "level": level, **payload}


def raise_validation(errors: dict[str, str]) -> None:
    """Report inline field errors as 422 {"detail": {field: message}}."""
    if errors:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=errors)


def paginate(total: int, page: int, per_page: int) -> dict:
    return {
        "total": total,
        "page": page,
        "page_size": per_page,
        "pages": ceil(total / per_page) if total > 0 else 0,
    }


async def create_audit_log(
    db: AsyncSession,
    admin_user: User,
    action: AuditAction,
    target_type: AuditTargetType,
    target_id: Optional[str],
    description: str,
    metadata: Optional[dict] = None,
    request: Optional[Request] = None,
    target_user_id: Optional[str] = None,
) -> AdminAuditLog:
    """
    Create an audit log entry for platform administration actions.
    """
    details = metadata.copy() if metadata else {}
    if description:
        details["description"] = description
    user_agent = request.headers.get("user-agent") if request is not None else None
    if user_agent:
        details["user_agent"] = user_agent

    audit_log = AdminAuditLog(
        admin_user_id=admin_user.id,
        action=action.value,
        target_user_id=target_user_id,
        target_type=target_type.value,
        target_id=target_id,
        details=details or None,
        ip_address=request.client.host if request is not None and request.client else None,
    )
    db.add(audit_log)
    await db.commit()
    return audit_log
