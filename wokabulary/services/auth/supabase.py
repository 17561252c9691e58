"""
Supabase Auth Service

Production staff authentication backed by Supabase Auth. Supabase owns the
passwords; the POS keeps only the returned user id (``Staff.auth_id``).
The Supabase client is synchronous, so its calls run in a worker thread.
"""

import asyncio
import logging
from typing import Optional

from supabase import Client, create_client

from wokabulary.services.auth.base import AuthResult, BaseAuthService
from wokabulary.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class SupabaseAuthService(BaseAuthService):
    """Auth provider using the Supabase GoTrue API."""

    def __init__(self):
        if settings.supabase_url and settings.supabase_anon_key:
            self.client: Optional[Client] = create_client(
                settings.supabase_url,
                settings.supabase_anon_key,
            )
        else:
            self.client = None
            logger.warning("Supabase credentials not configured")

        logger.info("SupabaseAuthService initialized")

    @property
    def provider_name(self) -> str:
        return "supabase"

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password."""
        if not self.client:
            return AuthResult(
                success=False,
                error_message="Supabase not configured",
                provider="supabase",
            )

        try:
            response = await asyncio.to_thread(
                self.client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except Exception as e:
            logger.warning(f"Supabase sign-in failed for {email}: {e}")
            return AuthResult(
                success=False,
                error_message=str(e),
                provider="supabase",
            )

        if response.user is None:
            return AuthResult(
                success=False,
                error_message="Invalid login credentials",
                provider="supabase",
            )

        session = {}
        if response.session is not None:
            session = {
                "access_token": response.session.access_token,
                "refresh_token": response.session.refresh_token,
                "token_type": response.session.token_type,
                "expires_at": response.session.expires_at,
            }

        return AuthResult(
            success=True,
            user_id=response.user.id,
            email=response.user.email,
            session=session,
            provider="supabase",
        )

    async def sign_up(self, email: str, password: str) -> AuthResult:
        """Register a staff account with Supabase."""
        if not self.client:
            return AuthResult(
                success=False,
                error_message="Supabase not configured",
                provider="supabase",
            )

        try:
            response = await asyncio.to_thread(
                self.client.auth.sign_up,
                {"email": email, "password": password},
            )
        except Exception as e:
            logger.error(f"Supabase sign-up error for {email}: {e}")
            return AuthResult(
                success=False,
                error_message=str(e),
                provider="supabase",
            )

        if response.user is None:
            return AuthResult(
                success=False,
                error_message="Failed to create user",
                provider="supabase",
            )

        logger.info(f"Supabase account registered for {email}: {response.user.id}")
        return AuthResult(
            success=True,
            user_id=response.user.id,
            email=response.user.email,
            provider="supabase",
        )

    async def health_check(self) -> bool:
        return self.client is not None
