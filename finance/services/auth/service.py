"""
Authentication Service

DESIGN DECISION: Authentication is delegated to Supabase Auth.
We never see or store password hashes; we only:
1. Forward sign up / sign in / sign out calls
2. Keep the resulting session (user id, email, access token)
3. Let the SDK attach the token to every later storage query

The in-memory service keeps plain credentials in a dict and is only
meant for tests and the offline demo.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID, uuid4

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from supabase import AuthError as SupabaseAuthError

from finance.services.storage.supabase_storage import SupabaseClient


logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthSession(BaseModel):
    """The signed-in user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: UUID
    email: str = Field(..., min_length=3)
    access_token: Optional[str] = Field(
        default=None,
        description="JWT sent with storage queries (None until email is confirmed)"
    )

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class AuthError(Exception):
    """Sign up / sign in failed. The message is safe to show the user."""
    pass


def check_credentials(email: str, password: str) -> None:
    """Cheap local checks before calling the backend."""
    if not email or "@" not in email:
        raise AuthError("Enter a valid email address")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must have at least {MIN_PASSWORD_LENGTH} characters")


class AuthServiceInterface(ABC):
    """Sign up, sign in, sign out and current session."""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthSession:
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    async def current_session(self) -> Optional[AuthSession]:
        pass


class SupabaseAuthService(AuthServiceInterface):
    """
    Supabase Auth (email + password).

    Shares the SupabaseClient with the storage services so the
    session token reaches the query builder.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    @staticmethod
    def _to_session(user, session) -> AuthSession:
        if user is None:
            raise AuthError("Authentication returned no user")
        return AuthSession(
            user_id=user.id,
            email=user.email,
            access_token=session.access_token if session is not None else None,
        )

    def _call(self, action: str, func, *args):
        try:
            return func(*args)
        except SupabaseAuthError as e:
            logger.warning("auth_failed", action=action, error=e.message)
            raise AuthError(e.message)
        except httpx.TransportError as e:
            logger.error("auth_unreachable", action=action, error=str(e))
            raise AuthError("Could not reach the authentication server")

    async def sign_up(self, email: str, password: str) -> AuthSession:
        check_credentials(email, password)
        response = self._call(
            "sign_up",
            self._client.auth.sign_up,
            {"email": email, "password": password},
        )
        logger.info("user_signed_up", confirmed=response.session is not None)
        return self._to_session(response.user, response.session)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        check_credentials(email, password)
        response = self._call(
            "sign_in",
            self._client.auth.sign_in_with_password,
            {"email": email, "password": password},
        )
        session = self._to_session(response.user, response.session)
        logger.info("user_signed_in", user_id=str(session.user_id))
        return session

    async def sign_out(self) -> None:
        self._call("sign_out", self._client.auth.sign_out)
        logger.info("user_signed_out")

    async def current_session(self) -> Optional[AuthSession]:
        session = self._call("get_session", self._client.auth.get_session)
        if session is None or session.user is None:
            return None
        return self._to_session(session.user, session)


class InMemoryAuthService(AuthServiceInterface):
    """Dict of email -> (password, user id)."""

    def __init__(self):
        self._users: dict[str, tuple[str, UUID]] = {}
        self._current: Optional[AuthSession] = None

    async def sign_up(self, email: str, password: str) -> AuthSession:
        check_credentials(email, password)
        key = email.strip().lower()
        if key in self._users:
            raise AuthError("User already registered")
        self._users[key] = (password, uuid4())
        return await self.sign_in(email, password)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        check_credentials(email, password)
        key = email.strip().lower()
        stored = self._users.get(key)
        if stored is None or stored[0] != password:
            raise AuthError("Invalid login credentials")
        self._current = AuthSession(
            user_id=stored[1],
            email=key,
            access_token=f"local-{uuid4().hex}",
        )
        return self._current

    async def sign_out(self) -> None:
        self._current = None

    async def current_session(self) -> Optional[AuthSession]:
        return self._current
