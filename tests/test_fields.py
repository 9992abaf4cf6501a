"""
Tests for ticket form field resolution.

Core fields are always shown. With a category selected, a field without a
category override is hidden; without a category, the department type decides.
"""
import pytest

from ticketdesk.core.errors import MissingRequiredFields
from ticketdesk.modules.fields.schemas import FieldConfigurationIn, CategoryFieldOverrideIn
from ticketdesk.modules.fields.service import FieldVisibilityResolver, CORE_FIELDS


def by_name(fields):
    return {f.field_name: f for f in fields}


async def test_department_type_filters_fields_without_category(seeded_store):
    resolver = FieldVisibilityResolver(seeded_store)

    seller = by_name(await resolver.resolve_fields("Seller Support"))
    customer = by_name(await resolver.resolve_fields("Customer Support"))
    everyone = by_name(await resolver.resolve_fields("All"))

    assert seller["vendorHandle"].effective_visibility == "visible"
    assert seller["vendorHandle"].effective_required is True
    assert seller["customer"].effective_visibility == "hidden"
    assert seller["customer"].effective_required is False, "Hidden fields are never required"

    assert customer["customer"].effective_visibility == "visible"
    assert customer["vendorHandle"].effective_visibility == "hidden"

    assert everyone["customer"].effective_visibility == "visible"
    assert everyone["vendorHandle"].effective_visibility == "visible"


async def test_core_fields_always_visible(seeded_store, make_category):
    resolver = FieldVisibilityResolver(seeded_store)
    category = await make_category()

    await resolver.save_field_configuration("subject", FieldConfigurationIn(field_label="Subject", is_enabled=False, display_order=5))
    await resolver.set_category_override(category.id, "description", CategoryFieldOverrideIn(visibility_override="hidden"))

    for fields in (
        await resolver.resolve_fields("Seller Support"),
        await resolver.resolve_fields("Customer Support", category.id),
    ):
        resolved = by_name(fields)
        for name in CORE_FIELDS:
            assert resolved[name].effective_visibility == "visible", f"{name} must stay visible"


async def test_category_without_override_hides_field(seeded_store, make_category):
    resolver = FieldVisibilityResolver(seeded_store)
    category = await make_category()

    resolved = by_name(await resolver.resolve_fields("Seller Support", category.id))

    assert resolved["vendorHandle"].effective_visibility == "hidden"
    assert resolved["vendorHandle"].effective_required is False
    assert resolved["attachments"].effective_visibility == "hidden"


async def test_category_override_controls_visibility_and_required(seeded_store, make_category):
    resolver = FieldVisibilityResolver(seeded_store)
    category = await make_category()

    await resolver.set_category_override(category.id, "vendorHandle", CategoryFieldOverrideIn(required_override=False))
    await resolver.set_category_override(category.id, "attachments", CategoryFieldOverrideIn(visibility_override="visible", required_override=True))
    await resolver.set_category_override(category.id, "subject", CategoryFieldOverrideIn(required_override=False))

    resolved = by_name(await resolver.resolve_fields("All", category.id))

    assert resolved["vendorHandle"].effective_visibility == "visible"
    assert resolved["vendorHandle"].effective_required is False
    assert resolved["attachments"].effective_required is True
    # core field keeps visibility but its required flag follows the override
    assert resolved["subject"].effective_visibility == "visible"
    assert resolved["subject"].effective_required is False


async def test_clearing_category_override_hides_field_again(seeded_store, make_category):
    resolver = FieldVisibilityResolver(seeded_store)
    category = await make_category()
    await resolver.set_category_override(category.id, "attachments", CategoryFieldOverrideIn(visibility_override="visible"))

    assert await resolver.clear_category_override(category.id, "attachments") is True
    resolved = by_name(await resolver.resolve_fields("All", category.id))

    assert resolved["attachments"].effective_visibility == "hidden"
    assert await resolver.clear_category_override(category.id, "attachments") is False


async def test_missing_core_configuration_is_synthesized(store):
    resolver = FieldVisibilityResolver(store)

    resolved = await resolver.resolve_fields("All")

    assert [f.field_name for f in resolved] == list(CORE_FIELDS)
    assert all(f.effective_visibility == "visible" and f.effective_required for f in resolved)


async def test_fields_ordered_by_display_order_then_name(seeded_store):
    resolved = await FieldVisibilityResolver(seeded_store).resolve_fields("All")
    names = [f.field_name for f in resolved]

    assert names[:2] == ["customer", "vendorHandle"]
    assert names[-2:] == ["fleekOrderIds", "attachments"]


async def test_missing_required_lists_blank_fields(seeded_store):
    resolver = FieldVisibilityResolver(seeded_store)
    values = {
        "subject": "Payout missing",
        "description": "   ",
        "department": "Finance",
        "issueType": "Complaint",
        "categoryId": None,
        "vendorHandle": "acme",
    }

    missing = await resolver.missing_required("Seller Support", None, values)

    assert missing == ["categoryId", "description"]


async def test_validate_submission_raises_with_fields(seeded_store):
    resolver = FieldVisibilityResolver(seeded_store)

    with pytest.raises(MissingRequiredFields) as exc:
        await resolver.validate_submission("All", None, {"subject": "x"})

    assert "description" in exc.value.fields
    assert "Missing required fields" in str(exc.value)


async def test_override_for_unknown_category_is_rejected(seeded_store):
    import uuid
    resolver = FieldVisibilityResolver(seeded_store)

    assert await resolver.set_category_override(uuid.uuid4(), "attachments", CategoryFieldOverrideIn()) is None
