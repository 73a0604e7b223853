"""Tests for the auth services."""

from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest
from supabase import AuthError as SupabaseAuthError

from finance.services.auth import (
    AuthError,
    AuthSession,
    InMemoryAuthService,
    SupabaseAuthService,
)


class RejectedCredentials(SupabaseAuthError):
    """SDK error with a message, independent of the SDK's constructor."""

    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


class FakeAuth:
    """Stands in for `client.auth`; each method returns or raises the queued outcome."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def _respond(self, name, *args):
        self.calls.append((name, args))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def sign_up(self, credentials):
        return self._respond("sign_up", credentials)

    def sign_in_with_password(self, credentials):
        return self._respond("sign_in_with_password", credentials)

    def sign_out(self):
        return self._respond("sign_out")

    def get_session(self):
        return self._respond("get_session")


def supabase_service(outcome):
    auth = FakeAuth(outcome)
    return SupabaseAuthService(SimpleNamespace(auth=auth)), auth


def auth_response(user_id, email="ana@example.com", token="jwt-token"):
    user = SimpleNamespace(id=str(user_id), email=email)
    session = SimpleNamespace(access_token=token, user=user) if token else None
    return SimpleNamespace(user=user, session=session)


class TestInMemoryAuth:
    def test_sign_up_signs_in(self, run):
        service = InMemoryAuthService()
        session = run(service.sign_up("  Ana@Example.com ", "secret123"))
        assert session.email == "ana@example.com"
        assert session.access_token.startswith("local-")
        assert run(service.current_session()) == session

    def test_users_get_distinct_ids(self, run):
        service = InMemoryAuthService()
        first = run(service.sign_up("ana@example.com", "secret123"))
        second = run(service.sign_up("bia@example.com", "secret123"))
        assert first.user_id != second.user_id

    def test_unknown_user(self, run):
        with pytest.raises(AuthError, match="Invalid login credentials"):
            run(InMemoryAuthService().sign_in("ana@example.com", "secret123"))

    def test_invalid_email(self, run):
        with pytest.raises(AuthError, match="email"):
            run(InMemoryAuthService().sign_up("not-an-email", "secret123"))


class TestSupabaseAuth:
    def test_sign_in(self, run):
        user_id = uuid4()
        service, auth = supabase_service(auth_response(user_id))

        session = run(service.sign_in("Ana@Example.com", "secret123"))

        assert session == AuthSession(user_id=user_id, email="ana@example.com", access_token="jwt-token")
        assert auth.calls == [(
            "sign_in_with_password",
            ({"email": "Ana@Example.com", "password": "secret123"},),
        )]

    def test_sign_up_pending_confirmation(self, run):
        """No session until the email is confirmed."""
        service, _ = supabase_service(auth_response(uuid4(), token=None))
        session = run(service.sign_up("ana@example.com", "secret123"))
        assert session.access_token is None

    def test_rejected_credentials(self, run):
        service, _ = supabase_service(RejectedCredentials("Invalid login credentials"))
        with pytest.raises(AuthError, match="Invalid login credentials"):
            run(service.sign_in("ana@example.com", "secret123"))

    def test_unreachable_server(self, run):
        service, _ = supabase_service(httpx.ConnectError("connection refused"))
        with pytest.raises(AuthError, match="Could not reach"):
            run(service.sign_in("ana@example.com", "secret123"))

    def test_local_checks_run_first(self, run):
        service, auth = supabase_service(auth_response(uuid4()))
        with pytest.raises(AuthError):
            run(service.sign_in("ana@example.com", "123"))
        assert auth.calls == []

    def test_current_session(self, run):
        user_id = uuid4()
        service, _ = supabase_service(auth_response(user_id).session)
        assert run(service.current_session()).user_id == user_id

    def test_no_current_session(self, run):
        service, _ = supabase_service(None)
        assert run(service.current_session()) is None
