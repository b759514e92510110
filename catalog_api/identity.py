"""
Bearer token verification through the Supabase auth client.
"""

from typing import Optional

import httpx
import structlog
from supabase import AsyncClient, AuthApiError, AuthError

from catalog_api.models import AuthenticatedUser

logger = structlog.get_logger(__name__)


class IdentityError(Exception):
    """The identity service could not verify a token."""


class IdentityVerifier:
    """Resolves access tokens to users with ``auth.get_user``."""

    def __init__(self, client: Optional[AsyncClient]):
        """
        Args:
            client: Supabase client, None when the service is not configured
        """
        self.client = client

    async def get_user(self, token: str) -> Optional[AuthenticatedUser]:
        """
        Look up the user owning a token.

        Args:
            token: Access token taken from the request

        Returns:
            The user, or None if the service rejects the token

        Raises:
            IdentityError: If the service is unconfigured, unreachable or misbehaves
        """
        if self.client is None:
            raise IdentityError("Identity service is not configured")

        try:
            response = await self.client.auth.get_user(token)
        except AuthApiError as e:
            if e.status in (401, 403):
                logger.debug("Token rejected", status=e.status, code=e.code)
                return None
            raise IdentityError(f"Identity service answered {e.status}: {e.message}") from e
        except (AuthError, httpx.HTTPError) as e:
            raise IdentityError(f"Identity service failed: {e}") from e

        if response is None or response.user is None:
            return None

        user = response.user
        return AuthenticatedUser(id=str(user.id), email=user.email, role=user.role)
