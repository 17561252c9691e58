"""
Mock Auth Service

Keeps accounts in memory so staff login works without a Supabase project.
Passwords are stored as salted SHA-256 digests; nothing leaves the process.
"""

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from wokabulary.services.auth.base import AuthResult, BaseAuthService

logger = logging.getLogger(__name__)


def _digest(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


class MockAuthService(BaseAuthService):
    """In-memory auth provider for development."""

    def __init__(self):
        # email -> (user_id, salt, digest)
        self._accounts: dict[str, tuple[str, str, str]] = {}
        logger.info("MockAuthService initialized")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def sign_up(self, email: str, password: str) -> AuthResult:
        email = email.lower()
        if email in self._accounts:
            return AuthResult(
                success=False,
                error_message="User already registered",
                provider="mock",
            )

        user_id = str(uuid.uuid4())
        salt = secrets.token_hex(8)
        self._accounts[email] = (user_id, salt, _digest(password, salt))
        logger.info(f"Mock account registered for {email}")

        return AuthResult(success=True, user_id=user_id, email=email, provider="mock")

    async def sign_in(self, email: str, password: str) -> AuthResult:
        account = self._accounts.get(email.lower())
        if account is None or _digest(password, account[1]) != account[2]:
            logger.warning(f"Mock sign-in rejected for {email}")
            return AuthResult(
                success=False,
                error_message="Invalid login credentials",
                provider="mock",
            )

        user_id = account[0]
        expires_at = datetime.now(timezone.utc) + timedelta(hours=1)
        session = {
            "access_token": f"mock_{secrets.token_urlsafe(24)}",
            "token_type": "bearer",
            "expires_at": int(expires_at.timestamp()),
            "user_id": user_id,
        }
        return AuthResult(
            success=True,
            user_id=user_id,
            email=email.lower(),
            session=session,
            provider="mock",
        )

    async def health_check(self) -> bool:
        return True
