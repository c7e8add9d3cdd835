"""Cost breakdown: per-category cost roll-up of a quotation.

Sums line item totals into cost categories and adds the costs that are
derived from the delivery scope (transportation and installation estimate).
All functions are pure.
"""

from typing import Dict, Iterable, Mapping, Optional, Sequence

import structlog

from config.settings import settings
from models.line_items import LineItem, Section
from models.pricing import CostCategory
from models.quotation import (
    ASSEMBLY_LEVEL_MULTIPLIERS,
    AssemblyLevel,
    DeliveryScope,
    Quotation,
    TransportationDetails,
)

logger = structlog.get_logger(__name__)

# Categories whose cost forms the base of the installation estimate
INSTALLATION_BASE_CATEGORIES = (
    CostCategory.ELEMENTS,
    CostCategory.TRUSSES,
    CostCategory.PRODUCTS,
)


def empty_costs() -> Dict[CostCategory, float]:
    """All categories at zero cost."""
    return {category: 0.0 for category in CostCategory}


def aggregate_costs(
    items: Iterable[LineItem],
    section_category: Optional[CostCategory] = None,
) -> Dict[CostCategory, float]:
    """Sum item totals per category.

    Args:
        items: Line items to aggregate.
        section_category: Category applied to items without their own.

    Returns:
        Mapping of every category to its total cost (0 when absent).
    """
    costs = empty_costs()
    for item in items:
        costs[item.resolve_category(section_category)] += item.total_price
    return costs


def aggregate_sections(sections: Sequence[Section]) -> Dict[CostCategory, float]:
    """Sum item totals of all sections, using each section's default category."""
    costs = empty_costs()
    for section in sections:
        for category, cost in aggregate_costs(section.items, section.category).items():
            costs[category] += cost
    return costs


def merge_costs(*cost_maps: Mapping[CostCategory, float]) -> Dict[CostCategory, float]:
    """Add several category cost maps together."""
    merged = empty_costs()
    for cost_map in cost_maps:
        for category, cost in cost_map.items():
            merged[CostCategory.parse(category)] += cost or 0.0
    return merged


def transportation_cost(details: TransportationDetails) -> float:
    """Round-trip truck cost: distance * 2 * rate * trucks."""
    rate = details.rate_per_km if details.rate_per_km is not None else settings.transport_rate_per_km
    return details.distance_km * 2 * rate * details.truck_count


def installation_cost(costs: Mapping[CostCategory, float], assembly_level: AssemblyLevel) -> float:
    """Installation estimate from the assembly level multiplier.

    The material base (elements, trusses, products) times the level's
    multiplier, minus the base itself.
    """
    material_base = sum(costs.get(category, 0.0) for category in INSTALLATION_BASE_CATEGORIES)
    multiplier = ASSEMBLY_LEVEL_MULTIPLIERS.get(AssemblyLevel(assembly_level), 1.0)
    return material_base * multiplier - material_base


def delivery_costs(
    section_costs: Mapping[CostCategory, float],
    delivery: DeliveryScope,
) -> Dict[CostCategory, float]:
    """Costs derived from the delivery scope."""
    costs = empty_costs()
    costs[CostCategory.TRANSPORTATION] = transportation_cost(delivery.transportation)
    costs[CostCategory.INSTALLATION] = installation_cost(section_costs, delivery.assembly_level_id)
    return costs


def build_cost_inputs(quotation: Quotation) -> Dict[CostCategory, float]:
    """Full per-category cost map of a quotation.

    Line item costs plus transportation and the installation estimate.
    Explicit installation or transportation items add to the derived costs.
    """
    section_costs = aggregate_sections(quotation.sections)
    costs = merge_costs(section_costs, delivery_costs(section_costs, quotation.delivery))

    logger.debug(
        "cost_inputs_built",
        quotation_id=quotation.id,
        material_cost_total=sum(costs.values()),
        sections=len(quotation.sections),
    )
    return costs
