"""Quotation state reducers.

Every edit of a quotation is a pure function taking a Quotation snapshot
and returning a new one; snapshots are never mutated in place. Pricing is
derived afterwards from the new snapshot (services.pricing_aggregator).

Pricing edits (line items, sections, pricing settings, delivery scope) are
rejected with QuotationFrozenError once the quotation is accepted. Cost
entries may be recorded at any status.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from config.errors import (
    ElementQuoteError,
    ErrorCode,
    InvalidInputError,
    InvalidStatusTransitionError,
    QuotationFrozenError,
    ValidationError,
)
from models.cost_entry import CostEntry, parse_cost_entry
from models.line_items import KIND_BY_CATEGORY, LineItem, Section, parse_line_item
from models.pricing import (
    CATEGORY_ALIASES,
    CostCategory,
    PricingSettings,
    default_pricing_settings,
)
from models.quotation import (
    DeliveryScope,
    PaymentMilestone,
    Quotation,
    QuotationStatus,
    QuotationVersion,
)
from services.payment_schedule import recalculate_amounts

logger = structlog.get_logger(__name__)


ALLOWED_TRANSITIONS: Dict[QuotationStatus, frozenset] = {
    QuotationStatus.DRAFT: frozenset({QuotationStatus.AWAITING_APPROVAL, QuotationStatus.SENT}),
    QuotationStatus.AWAITING_APPROVAL: frozenset({QuotationStatus.APPROVED, QuotationStatus.DRAFT}),
    QuotationStatus.APPROVED: frozenset({QuotationStatus.SENT, QuotationStatus.DRAFT}),
    QuotationStatus.SENT: frozenset(
        {QuotationStatus.ACCEPTED, QuotationStatus.REJECTED, QuotationStatus.DRAFT}
    ),
    QuotationStatus.REJECTED: frozenset({QuotationStatus.DRAFT}),
    QuotationStatus.ACCEPTED: frozenset(),
}


def _ensure_editable(quotation: Quotation, operation: str) -> None:
    if quotation.is_frozen:
        logger.warning("quotation_frozen", quotation_id=quotation.id, operation=operation)
        raise QuotationFrozenError(quotation.id, operation)


def _replace(quotation: Quotation, **changes: Any) -> Quotation:
    return quotation.model_copy(update=changes)


def _merged_data(model: BaseModel, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Model data by alias with changes applied (snake_case or camelCase keys)."""
    fields = type(model).model_fields
    data = model.model_dump(by_alias=True)
    for key, value in changes.items():
        field = fields.get(key)
        data[field.alias or key if field else key] = value
    return data


# =============================================================================
# CREATION
# =============================================================================


def create_quotation(
    quotation_id: Optional[str] = None,
    building_type: str = "omakotitalo",
    pricing_settings: Optional[PricingSettings] = None,
) -> Quotation:
    """New draft quotation with default (or template) pricing settings."""
    return Quotation(
        id=quotation_id,
        building_type=building_type,
        pricing_settings=pricing_settings or default_pricing_settings(),
    )


# =============================================================================
# LINE ITEMS
# =============================================================================


def add_section(
    quotation: Quotation,
    title: str,
    category: Optional[CostCategory] = None,
    section_id: Optional[str] = None,
) -> Quotation:
    """Append an empty section."""
    _ensure_editable(quotation, "add_section")
    kwargs: Dict[str, Any] = {"title": title, "category": category, "order": len(quotation.sections)}
    if section_id:
        kwargs["id"] = section_id
    return _replace(quotation, sections=[*quotation.sections, Section(**kwargs)])


def add_line_item(
    quotation: Quotation,
    section_id: str,
    item: Any,
    section_title: Optional[str] = None,
    section_category: Optional[CostCategory] = None,
) -> Quotation:
    """Add a line item to a section, creating the section when missing.

    Args:
        quotation: Current snapshot.
        section_id: Target section.
        item: LineItem or raw dict.
        section_title: Title used if the section is created.
        section_category: Category used if the section is created.

    Returns:
        New snapshot.
    """
    _ensure_editable(quotation, "add_line_item")

    if quotation.section(section_id) is None:
        quotation = add_section(
            quotation,
            title=section_title or section_id,
            category=section_category,
            section_id=section_id,
        )
    section = quotation.section(section_id)

    if not isinstance(item, LineItem):
        default_kind = KIND_BY_CATEGORY.get(section.category, "element") if section.category else "element"
        item = parse_line_item(item, default_kind=default_kind)

    updated = section.model_copy(update={"items": [*section.items, item]})
    return _replace_section(quotation, updated)


def update_line_item(
    quotation: Quotation,
    section_id: str,
    item_id: str,
    changes: Dict[str, Any],
) -> Quotation:
    """Apply field changes to a line item (re-validated)."""
    _ensure_editable(quotation, "update_line_item")
    section = _require_section(quotation, section_id)

    items: List[LineItem] = []
    found = False
    for item in section.items:
        if item.id == item_id:
            data = _merged_data(item, changes)
            items.append(parse_line_item(data, default_kind=item.kind))
            found = True
        else:
            items.append(item)

    if not found:
        raise ValidationError(f"Line item not found: {item_id}", field="item_id")
    return _replace_section(quotation, section.model_copy(update={"items": items}))


def remove_line_item(quotation: Quotation, section_id: str, item_id: str) -> Quotation:
    """Remove a line item; unknown ids leave the quotation unchanged."""
    _ensure_editable(quotation, "remove_line_item")
    section = _require_section(quotation, section_id)
    items = [item for item in section.items if item.id != item_id]
    return _replace_section(quotation, section.model_copy(update={"items": items}))


def _require_section(quotation: Quotation, section_id: str) -> Section:
    section = quotation.section(section_id)
    if section is None:
        raise ValidationError(f"Section not found: {section_id}", field="section_id")
    return section


def _replace_section(quotation: Quotation, updated: Section) -> Quotation:
    sections = [updated if s.id == updated.id else s for s in quotation.sections]
    return _replace(quotation, sections=sections)


# =============================================================================
# PRICING CONFIGURATION
# =============================================================================


def update_pricing_settings(quotation: Quotation, changes: Dict[str, Any]) -> Quotation:
    """Merge changes into the pricing settings (re-validated).

    Raises:
        InvalidInputError: If a percentage is out of range.
    """
    _ensure_editable(quotation, "update_pricing_settings")
    data = quotation.pricing_settings.model_dump(by_alias=True)
    markups = changes.get("categoryMarkups", changes.get("category_markups"))
    if isinstance(markups, dict):
        # Fold legacy keys before merging, the dumped current keys would shadow them
        normalized = {
            CATEGORY_ALIASES[k].value if k in CATEGORY_ALIASES else k: v for k, v in markups.items()
        }
        data["categoryMarkups"] = {**data["categoryMarkups"], **normalized}
    for key in ("commissionPercentage", "commission_percentage"):
        if key in changes:
            data["commissionPercentage"] = changes[key]
    for key in ("vatMode", "vat_mode"):
        if key in changes:
            data["vatMode"] = changes[key]
    return _replace(quotation, pricing_settings=parse_pricing_settings(data))


def set_category_markup(quotation: Quotation, category: Any, percentage: float) -> Quotation:
    """Change the markup of a single category."""
    return update_pricing_settings(
        quotation, {"categoryMarkups": {CostCategory.parse(category).value: percentage}}
    )


def apply_pricing_template(quotation: Quotation, template: PricingSettings) -> Quotation:
    """Replace the pricing settings with a template's."""
    _ensure_editable(quotation, "apply_pricing_template")
    return _replace(quotation, pricing_settings=template)


def update_delivery(quotation: Quotation, changes: Dict[str, Any]) -> Quotation:
    """Merge changes into the delivery scope (assembly level, transportation)."""
    _ensure_editable(quotation, "update_delivery")
    data = quotation.delivery.model_dump(by_alias=True)
    transportation = changes.get("transportation")
    if isinstance(transportation, dict):
        data["transportation"] = {**data["transportation"], **transportation}
    for key in ("assemblyLevelId", "assembly_level_id"):
        if key in changes:
            data["assemblyLevelId"] = changes[key]
    try:
        delivery = DeliveryScope.model_validate(data)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise InvalidInputError("Invalid delivery scope", errors=errors)
    return _replace(quotation, delivery=delivery)


def parse_pricing_settings(data: Dict[str, Any]) -> PricingSettings:
    """Parse raw pricing settings, raising InvalidInputError on bad input."""
    try:
        return PricingSettings.model_validate(data)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise InvalidInputError("Invalid pricing settings", errors=errors)


# =============================================================================
# COST ENTRIES
# =============================================================================


def add_cost_entry(quotation: Quotation, entry: Any) -> Quotation:
    """Record a realized cost (allowed at any status)."""
    if not isinstance(entry, CostEntry):
        entry = parse_cost_entry(entry)
    return _replace(quotation, cost_entries=[*quotation.cost_entries, entry])


def update_cost_entry(quotation: Quotation, entry_id: str, changes: Dict[str, Any]) -> Quotation:
    """Apply field changes to a recorded cost entry."""
    entries: List[CostEntry] = []
    found = False
    for entry in quotation.cost_entries:
        if entry.id == entry_id:
            entries.append(parse_cost_entry(_merged_data(entry, changes)))
            found = True
        else:
            entries.append(entry)
    if not found:
        raise ElementQuoteError(
            code=ErrorCode.COST_ENTRY_NOT_FOUND,
            message=f"Cost entry not found: {entry_id}",
            details={"entryId": entry_id},
        )
    return _replace(quotation, cost_entries=entries)


def remove_cost_entry(quotation: Quotation, entry_id: str) -> Quotation:
    """Remove a cost entry by id; unknown ids leave the quotation unchanged."""
    entries = [entry for entry in quotation.cost_entries if entry.id != entry_id]
    return _replace(quotation, cost_entries=entries)


# =============================================================================
# STATUS AND VERSIONS
# =============================================================================


def can_transition(from_status: QuotationStatus, to_status: QuotationStatus) -> bool:
    return QuotationStatus(to_status) in ALLOWED_TRANSITIONS[QuotationStatus(from_status)]


def transition_status(quotation: Quotation, to_status: Any) -> Quotation:
    """Move the quotation to a new status.

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed.
    """
    try:
        target = QuotationStatus(to_status)
    except ValueError:
        raise ValidationError(f"Unknown quotation status: {to_status}", field="status")

    if not can_transition(quotation.status, target):
        raise InvalidStatusTransitionError(quotation.id, quotation.status.value, target.value)

    logger.info(
        "quotation_status_changed",
        quotation_id=quotation.id,
        from_status=quotation.status.value,
        to_status=target.value,
    )

    versions = [
        v.model_copy(update={"status": target, "is_sent": v.is_sent or target == QuotationStatus.SENT})
        if v.id == quotation.current_version_id else v
        for v in quotation.versions
    ]
    return _replace(quotation, status=target, versions=versions)


def create_version(
    quotation: Quotation,
    name: Optional[str] = None,
    created_by: str = "",
    notes: Optional[str] = None,
) -> Quotation:
    """Save a new version; it becomes the active, current version."""
    number = max((v.version_number for v in quotation.versions), default=0) + 1
    version = QuotationVersion(
        id=f"{quotation.id}-v{number}",
        version_number=number,
        name=name or f"Versio {number}",
        created_at=datetime.utcnow(),
        created_by=created_by,
        status=quotation.status,
        is_active=True,
        notes=notes,
    )
    versions = [v.model_copy(update={"is_active": False}) for v in quotation.versions]
    return _replace(quotation, versions=[*versions, version], current_version_id=version.id)


def switch_version(quotation: Quotation, version_id: str) -> Quotation:
    """Make an existing version the active, current one."""
    if not any(v.id == version_id for v in quotation.versions):
        raise ElementQuoteError(
            code=ErrorCode.VERSION_NOT_FOUND,
            message=f"Version not found: {version_id}",
            details={"versionId": version_id},
        )
    versions = [v.model_copy(update={"is_active": v.id == version_id}) for v in quotation.versions]
    return _replace(quotation, versions=versions, current_version_id=version_id)


# =============================================================================
# PAYMENT SCHEDULE
# =============================================================================


def set_payment_schedule(
    quotation: Quotation,
    milestones: List[Dict[str, Any]],
    total_with_vat: float,
) -> Quotation:
    """Replace the payment schedule; amounts follow from total_with_vat.

    Raises:
        InvalidInputError: If a milestone is invalid or percentages do not sum to 100.
    """
    _ensure_editable(quotation, "set_payment_schedule")
    try:
        parsed = [
            m if isinstance(m, PaymentMilestone) else PaymentMilestone.model_validate(m)
            for m in milestones
        ]
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise InvalidInputError("Invalid payment milestone", errors=errors)
    return _replace(quotation, payment_schedule=recalculate_amounts(parsed, total_with_vat))
