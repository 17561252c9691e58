"""
Auth Service Abstract Base Class

Staff credentials are held by a hosted auth provider; the POS only stores
the provider's user id on the Staff row. Implementations:
    - MockAuthService: in-memory accounts for development and tests
    - SupabaseAuthService: Supabase Auth for staging and production
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class AuthResult:
    """Result of a sign-in or sign-up call."""
    success: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    session: dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseAuthService(ABC):
    """Abstract base class for auth providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Verify credentials and open a session."""
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthResult:
        """Register a new account and return its provider user id."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
