"""
Bearer-token authentication for the sanitize routes.
Value-safe: never log tokens or headers.
"""
import hmac
from enum import Enum
from typing import Optional

from fastapi import HTTPException, Request, status

from app.core.config import get_settings
from app.core.logging import get_safe_logger

logger = get_safe_logger(__name__)


class AuthErrorCode(str, Enum):
    """
    Value-safe error codes for authentication failures.
    These codes are safe to log and return to clients.
    """
    NO_AUTH_HEADER = "NO_AUTH_HEADER"
    MALFORMED_HEADER = "MALFORMED_HEADER"
    TOKEN_INVALID = "TOKEN_INVALID"


def extract_bearer_token(request: Request) -> str:
    """
    Extract Bearer token from Authorization header.

    Args:
        request: FastAPI request object

    Returns:
        The token string

    Raises:
        HTTPException: If header is missing or malformed
    """
    auth_header = request.headers.get("Authorization")

    if not auth_header:
        logger.warning("Missing authorization header", error_code=AuthErrorCode.NO_AUTH_HEADER.value)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header"
        )

    parts = auth_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Malformed authorization header", error_code=AuthErrorCode.MALFORMED_HEADER.value)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format"
        )

    return parts[1]


def verify_token(token: str, expected: Optional[str]) -> None:
    """
    Compare a token against the configured one in constant time.

    Raises:
        HTTPException 401: If the token does not match
    """
    if expected is None or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning("Invalid bearer token", error_code=AuthErrorCode.TOKEN_INVALID.value)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )


async def verify_auth_header(request: Request) -> None:
    """
    Router-level dependency that verifies auth BEFORE body parsing.

    Auth is disabled when API_TOKEN is unset.

    Raises:
        HTTPException 401: If token missing, malformed, or invalid.
    """
    settings = get_settings()
    if settings.api_token is None:
        return

    token = extract_bearer_token(request)
    verify_token(token, settings.api_token)
