"""JWT authentication middleware for FastAPI."""
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException, status, Request
from jose import jwt, JWTError
from pydantic import BaseModel

from crm_reminders.config import settings
from crm_reminders.utils.israel_time import utc_now

ALGORITHM = "HS256"


class CurrentUser(BaseModel):
    """User information extracted from JWT."""
    user_id: str
    email: Optional[str] = None


def create_access_token(user_id: str, email: Optional[str] = None, expires_minutes: int = 60 * 24,
                        secret: Optional[str] = None) -> str:
    """Issue an HS256 token whose subject is the user id."""
    payload = {"sub": str(user_id), "exp": utc_now() + timedelta(minutes=expires_minutes)}
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret or settings.auth_secret, algorithm=ALGORITHM)


def decode_access_token(token: str, secret: Optional[str] = None) -> CurrentUser:
    """
    Decode a bearer token.

    Raises:
        HTTPException: If token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, secret or settings.auth_secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(user_id=str(user_id), email=payload.get("email"))


async def get_current_user(request: Request) -> CurrentUser:
    """
    Validate JWT token from Authorization header and extract user information.

    Args:
        request: FastAPI request object to extract Authorization header

    Returns:
        CurrentUser with user_id and email from token

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    # Skip authentication for OPTIONS requests (preflight CORS requests)
    if request.method == "OPTIONS":
        return CurrentUser(user_id="", email="")

    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return decode_access_token(auth_header[7:])


def ensure_same_user(user_id: str, current_user: CurrentUser):
    """Raise 403 unless the path user is the authenticated user."""
    if user_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this user's resources"
        )
