"""Shared fixtures: in-memory backends, default settings and an async runner."""

import asyncio
from uuid import uuid4

import pytest

from finance.audit import AuditLogger
from finance.config import AppSettings
from finance.orchestrator import create_app_components
from finance.services.storage import InMemoryAuditStorage, InMemoryFinanceStorage


@pytest.fixture
def run():
    """Run a coroutine to completion (one event loop per call, like the app)."""
    return asyncio.run


@pytest.fixture
def app_settings():
    return AppSettings(_env_file=None)


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def storage():
    return InMemoryFinanceStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def components(app_settings):
    return create_app_components(use_storage=False, settings=app_settings)
