"""
Platform administration dependencies.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from api.dependencies import get_current_user
from infrastructure.database.models import User


async def get_current_hades_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Dependency to verify the current user holds the Hades tier.

    Raises:
        HTTPException: 403 if the user's effective tier is not Hades
    """
    if not current_user.is_hades:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Hades tier required for platform administration.",
        )

    return current_user
