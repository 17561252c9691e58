"""
Auth Service Factory

Returns the mock or Supabase auth service based on ENV_MODE.
"""

import logging
from functools import lru_cache

from wokabulary.core.config import get_settings
from wokabulary.services.auth.base import AuthResult, BaseAuthService
from wokabulary.services.auth.mock import MockAuthService
from wokabulary.services.auth.supabase import SupabaseAuthService

logger = logging.getLogger(__name__)


@lru_cache()
def get_auth_service() -> BaseAuthService:
    """Get the configured auth service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Auth Service: Using MockAuthService (development mode)")
        return MockAuthService()
    else:
        logger.info(f"Auth Service: Using SupabaseAuthService ({settings.env_mode.value} mode)")
        return SupabaseAuthService()


def reset_auth_service() -> None:
    """Clear the cached service instance."""
    get_auth_service.cache_clear()


__all__ = [
    "get_auth_service",
    "reset_auth_service",
    "AuthResult",
    "BaseAuthService",
]
