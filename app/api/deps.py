import base64
import secrets

from fastapi import Header, HTTPException, status

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.person_store import SqlPersonStore


def get_person_store() -> SqlPersonStore:
    return SqlPersonStore(SessionLocal)


def get_school_context(x_school_id: int = Header(None)) -> int:
    """School the calling session is bound to, from the ``X-School-Id`` header."""
    if x_school_id is None or x_school_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No school selected"
        )
    return x_school_id


def verify_admin_header(authorization: str = Header(None)) -> str:
    """Verify admin from Authorization header sent by browser"""
    if not authorization or not authorization.startswith("Basic "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    settings = get_settings()
    try:
        credentials = base64.b64decode(authorization.split(" ", 1)[1]).decode()
        username, password = credentials.split(":", 1)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    # compare_digest only accepts ASCII str, so compare UTF-8 bytes
    if not settings.admin_password or not (
        secrets.compare_digest(username.encode(), settings.admin_username.encode())
        and secrets.compare_digest(password.encode(), settings.admin_password.encode())
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )
    return username
