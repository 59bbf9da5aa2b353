"""
Supabase JWT authentication for API routes.
"""

import logging

from fastapi import Header, HTTPException
from pydantic import BaseModel

from glowfit.db.client import get_service_client

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """Authenticated user info from Supabase JWT."""
    id: str
    email: str | None
    access_token: str


async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """
    Validate Supabase JWT and extract user info.

    Expects: Authorization: Bearer <supabase_access_token>
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    token = authorization.removeprefix("Bearer ")

    try:
        user_response = get_service_client().auth.get_user(token)

        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid token")

        return AuthenticatedUser(
            id=user_response.user.id,
            email=user_response.user.email,
            access_token=token,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Auth error: {e}")
        raise HTTPException(status_code=401, detail="Authentication failed")
