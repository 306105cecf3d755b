"""JWT authentication dependency for the REST routes."""
from typing import Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlmodel import Session

from medreminder.config import get_settings
from medreminder.services.settings_service import SettingsService


class CurrentUser(BaseModel):
    """User information extracted from JWT."""
    user_id: str
    email: Optional[str] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request) -> CurrentUser:
    """
    Validate the bearer token and extract the user.

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    secret = get_settings().auth_secret
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication is not configured",
        )

    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise _unauthorized("Missing or invalid Authorization header")

    token = auth_header[7:]  # Remove "Bearer " prefix
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"])
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Token is missing the subject claim")

    return CurrentUser(user_id=user_id, email=payload.get("email"))


def ensure_same_user(user_id: str, current_user: CurrentUser):
    """Reject access to another user's resources."""
    if user_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this user's resources",
        )


def ensure_can_act_for(user_id: str, current_user: CurrentUser, session: Session):
    """Allow the owner and accounts linked to the owner; reject anyone else."""
    if not SettingsService(session).can_act_for(current_user.user_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this user's resources",
        )
