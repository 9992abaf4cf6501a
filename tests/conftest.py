"""Shared pytest fixtures: an in-memory rule store plus small factories."""
import os
import uuid

# keep the app off postgres/redis for the whole test session
os.environ.setdefault("ENV", "local")
os.environ.setdefault("RULE_STORE_PROVIDER", "memory")
os.environ.setdefault("ROUTING_CURSOR_PROVIDER", "memory")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest

from ticketdesk.modules.access.models import User
from ticketdesk.modules.access.seed import seed_rule_store
from ticketdesk.modules.catalog.models import Category
from ticketdesk.modules.catalog.service import category_path
from ticketdesk.modules.tickets.models import Ticket
from ticketdesk.platform.adapters.cursor_memory import MemoryRotationCursor
from ticketdesk.platform.adapters.store_memory import MemoryRuleStore


@pytest.fixture
def store():
    """A clean, unseeded memory store."""
    return MemoryRuleStore()


@pytest.fixture
async def seeded_store(store):
    """Memory store with the default roles, pages, features and fields."""
    await seed_rule_store(store)
    return store


@pytest.fixture
def cursor():
    return MemoryRotationCursor()


@pytest.fixture
def make_user(store):
    async def _make(name, role="Agent", department="Finance", **kw):
        return await store.save_user(User(
            email=f"{name.lower().replace(' ', '.')}@example.com",
            name=name,
            role=role,
            department=department,
            **kw,
        ))
    return _make


@pytest.fixture
def make_category(store):
    async def _make(l1="Payments", l2="Payouts", l3="Delayed payout", l4=None, issue_type="Complaint", points=10, **kw):
        return await store.save_category(Category(
            issue_type=issue_type, l1=l1, l2=l2, l3=l3, l4=l4,
            path=category_path(issue_type, l1, l2, l3, l4),
            issue_priority_points=points,
            **kw,
        ))
    return _make


@pytest.fixture
def make_ticket(store):
    """Persist a bare ticket, used to build up open-ticket counts."""
    async def _make(status="Open", department="Finance", vendor_handle=None, assignee_id=None, category_id=None, **kw):
        return await store.add_ticket(Ticket(
            ticket_number=f"TKT-{uuid.uuid4().hex[:8].upper()}",
            vendor_handle=vendor_handle,
            department=department,
            issue_type="Complaint",
            category_id=category_id or uuid.uuid4(),
            subject="Existing ticket",
            description="Created by a test",
            status=status,
            priority_score=20,
            priority_tier="Low",
            priority_badge="P3",
            assignee_id=assignee_id,
            **kw,
        ))
    return _make
