import logging
import uuid

from ticketdesk.core.errors import MissingRequiredFields
from ticketdesk.modules.fields.models import FieldConfiguration, CategoryFieldOverride
from ticketdesk.modules.fields.schemas import ResolvedField, FieldConfigurationIn, CategoryFieldOverrideIn
from ticketdesk.platform.ports.rule_store import RuleStorePort

logger = logging.getLogger(__name__)

# always visible whatever the configuration says
CORE_FIELDS = ("subject", "description", "department", "issueType", "categoryId")

def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False

def _visible_in_department(cfg: FieldConfiguration, department_type: str) -> bool:
    return department_type == "All" or cfg.department_type in ("All", department_type)


class FieldVisibilityResolver:
    def __init__(self, store: RuleStorePort):
        self.store = store

    async def _base_configs(self) -> list[FieldConfiguration]:
        configs = list(await self.store.get_field_configurations())
        known = {c.field_name for c in configs}
        for order, name in enumerate(CORE_FIELDS):
            if name not in known:
                # unsaved stand-in for a core field nobody configured
                configs.append(FieldConfiguration(
                    field_name=name, field_label=name, is_enabled=True, is_required=True,
                    display_order=order, department_type="All",
                ))
        return configs

    async def resolve_fields(self, department_type: str = "All", category_id: uuid.UUID | None = None) -> list[ResolvedField]:
        configs = await self._base_configs()
        overrides = await self.store.get_category_field_overrides(category_id) if category_id else {}

        out: list[ResolvedField] = []
        for cfg in configs:
            is_core = cfg.field_name in CORE_FIELDS
            ov = overrides.get(cfg.field_name)
            required = ov.required_override if ov and ov.required_override is not None else cfg.is_required

            if is_core:
                visibility = "visible"
            elif category_id:
                # category mode fails closed: no override row means hidden
                visibility = (ov.visibility_override or "visible") if ov else "hidden"
            else:
                visibility = "visible" if cfg.is_enabled and _visible_in_department(cfg, department_type) else "hidden"

            out.append(ResolvedField(
                field_name=cfg.field_name,
                field_label=cfg.field_label,
                display_order=cfg.display_order,
                effective_visibility=visibility,
                effective_required=bool(required) and visibility == "visible",
                is_core=is_core,
            ))
        out.sort(key=lambda f: (f.display_order, f.field_name))
        return out

    async def missing_required(self, department_type: str, category_id: uuid.UUID | None, values: dict) -> list[str]:
        fields = await self.resolve_fields(department_type, category_id)
        return [f.field_name for f in fields if f.effective_required and is_blank(values.get(f.field_name))]

    async def validate_submission(self, department_type: str, category_id: uuid.UUID | None, values: dict) -> None:
        missing = await self.missing_required(department_type, category_id, values)
        if missing:
            raise MissingRequiredFields(missing)

    # ---- writes ----
    async def save_field_configuration(self, field_name: str, payload: FieldConfigurationIn,
                                       actor_id: uuid.UUID | None = None) -> FieldConfiguration:
        existing = {c.field_name: c for c in await self.store.get_field_configurations()}
        cfg = existing.get(field_name) or FieldConfiguration(field_name=field_name)
        for k, v in payload.model_dump().items():
            setattr(cfg, k, v)
        cfg = await self.store.save_field_configuration(cfg)
        await self.store.record_audit(actor_id, "field.save", "field_configuration", field_name, payload.model_dump())
        await self.store.commit()
        return cfg

    async def set_category_override(self, category_id: uuid.UUID, field_name: str, payload: CategoryFieldOverrideIn,
                                    actor_id: uuid.UUID | None = None) -> CategoryFieldOverride | None:
        if not await self.store.get_category(category_id):
            return None
        row = await self.store.set_category_field_override(
            category_id, field_name, payload.visibility_override, payload.required_override,
        )
        await self.store.record_audit(actor_id, "override.set", "field_override", str(category_id),
                                      {"field_name": field_name, **payload.model_dump()})
        await self.store.commit()
        logger.info(f"category {category_id} field {field_name} override -> {payload.model_dump()}")
        return row

    async def clear_category_override(self, category_id: uuid.UUID, field_name: str,
                                      actor_id: uuid.UUID | None = None) -> bool:
        removed = await self.store.delete_category_field_override(category_id, field_name)
        if removed:
            await self.store.record_audit(actor_id, "override.clear", "field_override", str(category_id), {"field_name": field_name})
            await self.store.commit()
        return removed
