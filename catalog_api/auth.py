"""
Bearer token authentication for the catalog endpoints.
"""

from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request, status

from catalog_api.identity import IdentityError, IdentityVerifier
from catalog_api.models import AuthenticatedUser

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """Identity verifier attached to the application at startup."""
    return request.app.state.identity_verifier


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Return the token following the "Bearer " prefix.

    Args:
        authorization: Raw Authorization header value

    Returns:
        The token, or None if the header is missing, uses another scheme or is empty
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_bearer_token(
    request: Request,
    verifier: IdentityVerifier = Depends(get_identity_verifier)
) -> AuthenticatedUser:
    """
    Authenticate the request.

    The identity service is only contacted when a non-empty token is present.

    Raises:
        HTTPException: 401 if the token is missing or not accepted
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        logger.info("Missing bearer token", path=request.url.path)
        raise _unauthorized()

    try:
        user = await verifier.get_user(token)
    except IdentityError as e:
        logger.warning("Token verification failed", error=str(e), token=token[:10] + "...")
        raise _unauthorized()

    if user is None:
        logger.warning("Invalid token attempted", token=token[:10] + "...")
        raise _unauthorized()

    return user
