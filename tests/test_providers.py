"""
Tests for store error mapping and provider selection.
"""
import logging
import uuid

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from ticketdesk.core.config import settings
from ticketdesk.core.errors import StoreUnavailable
from ticketdesk.platform.adapters.store_sql import SqlRuleStore
from ticketdesk.platform.provider_registry import ProviderRegistry


class FailingSession:
    def __init__(self, exc):
        self.exc = exc

    async def execute(self, *args, **kwargs):
        raise self.exc


@pytest.mark.parametrize("exc", [
    OperationalError("SELECT 1", {}, Exception("server closed the connection")),
    DBAPIError("SELECT 1", {}, Exception("connection reset"), connection_invalidated=True),
    ConnectionRefusedError("connect call failed"),
])
async def test_connection_failures_become_store_unavailable(exc):
    store = SqlRuleStore(FailingSession(exc))

    with pytest.raises(StoreUnavailable):
        await store.get_user(uuid.uuid4())


async def test_constraint_errors_are_not_outages():
    store = SqlRuleStore(FailingSession(IntegrityError("INSERT", {}, Exception("duplicate key"))))

    with pytest.raises(IntegrityError):
        await store.get_role_by_name("Agent")


def test_memory_store_outside_local_logs_warning(monkeypatch, caplog):
    ProviderRegistry.reset()
    monkeypatch.setattr(settings, "ENV", "prod")

    with caplog.at_level(logging.WARNING):
        first = ProviderRegistry.memory_store()
        second = ProviderRegistry.memory_store()

    assert first is second
    assert sum("memory rule store selected" in r.getMessage() for r in caplog.records) == 1
    ProviderRegistry.reset()


def test_memory_store_in_local_is_quiet(monkeypatch, caplog):
    ProviderRegistry.reset()
    monkeypatch.setattr(settings, "ENV", "local")

    with caplog.at_level(logging.WARNING):
        ProviderRegistry.memory_store()

    assert not [r for r in caplog.records if "memory rule store" in r.getMessage()]
    ProviderRegistry.reset()
