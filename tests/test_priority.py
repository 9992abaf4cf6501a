"""
Tests for priority scoring.

Score = gmv points + ticket history points + category issue points.
"""
import pytest

from ticketdesk.modules.catalog.models import Vendor
from ticketdesk.modules.priority.service import PriorityScorer, score, tier_for, apply_boost


def test_platinum_vendor_with_history_is_critical():
    result = score("Platinum", open_ticket_count=2, category_issue_points=20)

    assert result.priority_score == 70
    assert result.priority_tier == "Critical"
    assert result.priority_badge == "P0"
    assert result.breakdown.gmv_points == 40
    assert result.breakdown.ticket_history_points == 10
    assert result.breakdown.issue_points == 20


def test_platinum_vendor_with_many_open_tickets():
    result = score("Platinum", 5, 10)

    assert result.breakdown.gmv_points == 40
    assert result.breakdown.ticket_history_points == 20, "History points cap at 20"
    assert result.priority_score == 70
    assert (result.priority_tier, result.priority_badge) == ("Critical", "P0")


def test_bronze_vendor_without_history_is_low():
    result = score("Bronze", 0, 10)

    assert result.priority_score == 20
    assert (result.priority_tier, result.priority_badge) == ("Low", "P3")


@pytest.mark.parametrize("named,code", [
    ("Platinum", "XL"),
    ("Gold", "L"),
    ("Silver", "M"),
    ("Bronze", "S"),
])
def test_size_codes_score_like_named_tiers(named, code):
    assert score(code, 0, 10).breakdown.gmv_points == score(named, 0, 10).breakdown.gmv_points


def test_unknown_vendor_without_category_is_low():
    result = score(None, open_ticket_count=0, category_issue_points=None)

    assert result.priority_score == 20
    assert result.priority_tier == "Low"
    assert result.priority_badge == "P3"


@pytest.mark.parametrize("value,tier,badge", [
    (70, "Critical", "P0"),
    (69, "High", "P1"),
    (50, "High", "P1"),
    (49, "Medium", "P2"),
    (30, "Medium", "P2"),
    (29, "Low", "P3"),
])
def test_tier_boundaries_are_inclusive(value, tier, badge):
    assert tier_for(value) == (tier, badge)


def test_history_points_are_capped():
    assert score("Gold", 10, 10).breakdown.ticket_history_points == 20
    assert score("Gold", -3, 10).breakdown.ticket_history_points == 0


def test_unrecognised_gmv_tier_gets_base_points():
    assert score("Diamond", 0, 10).breakdown.gmv_points == 10
    assert score("Silver", 0, 10).breakdown.gmv_points == 20


def test_boost_retiers_score():
    base = score("Gold", 0, 30)  # 60, High
    boosted = apply_boost(base, 15)

    assert base.priority_tier == "High"
    assert boosted.priority_score == 75
    assert boosted.priority_tier == "Critical"
    assert boosted.breakdown.boost == 15

    lowered = apply_boost(base, -40)
    assert lowered.priority_badge == "P3"


async def test_score_ticket_reads_vendor_and_open_count(store, make_ticket, make_category):
    await store.save_vendor(Vendor(handle="acme", name="Acme", gmv_tier="Platinum"))
    await make_ticket(vendor_handle="acme", status="Open")
    await make_ticket(vendor_handle="acme", status="Pending")
    await make_ticket(vendor_handle="acme", status="Solved")
    await make_ticket(vendor_handle="other", status="Open")
    category = await make_category(points=20)

    result = await PriorityScorer(store).score_ticket("acme", category)

    assert result.breakdown.ticket_history_points == 10, "Only New/Open/Pending tickets count"
    assert result.priority_score == 70


async def test_score_ticket_without_vendor_or_category(store):
    result = await PriorityScorer(store).score_ticket(None, None)

    assert result.priority_score == 20
    assert result.priority_badge == "P3"
