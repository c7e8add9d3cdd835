"""Post-calculation reconciler.

Compares realized cost entries with the budget of a PricingCalculation and
derives the realized margin of the project.
"""

from typing import Dict, Iterable, Optional

import structlog

from config.settings import settings
from models.cost_entry import CostEntry, CostType
from models.pricing import CostCategory, PricingCalculation
from models.reconciliation import CategoryComparison, ReconciliationReport

logger = structlog.get_logger(__name__)


def realized_by_category(entries: Iterable[CostEntry]) -> Dict[CostCategory, float]:
    """Sum realized amounts per category."""
    realized = {category: 0.0 for category in CostCategory}
    for entry in entries:
        realized[entry.category] += entry.amount
    return realized


def compare_category(category: CostCategory, budget: float, realized: float) -> CategoryComparison:
    """Budget vs. realized row; percent_used is 0 without a budget."""
    return CategoryComparison(
        category=category,
        budget=budget,
        realized=realized,
        variance=budget - realized,
        percent_used=realized / budget * 100 if budget > 0 else 0.0,
    )


def reconcile(
    pricing: PricingCalculation,
    entries: Iterable[CostEntry],
    at_risk_threshold: Optional[float] = None,
) -> ReconciliationReport:
    """Reconcile realized costs against the quotation budget.

    Args:
        pricing: Budget side (pricing of the quotation).
        entries: Realized cost entries.
        at_risk_threshold: Percentage points the realized margin may fall below
            the budgeted margin before the project is at risk
            (default from settings).

    Returns:
        ReconciliationReport with one comparison per category.
    """
    entries = list(entries)
    if at_risk_threshold is None:
        at_risk_threshold = settings.at_risk_margin_threshold

    realized_material = sum(e.amount for e in entries if e.cost_type == CostType.MATERIAL)
    realized_labor = sum(e.amount for e in entries if e.cost_type == CostType.LABOR)
    realized_total = realized_material + realized_labor

    selling_price = pricing.selling_price_ex_vat
    realized_profit = selling_price - realized_total
    realized_margin = realized_profit / selling_price * 100 if selling_price > 0 else 0.0
    budgeted_margin = pricing.profit_percent

    budget = pricing.budget()
    realized = realized_by_category(entries)
    comparisons = [
        compare_category(category, budget[category], realized[category])
        for category in CostCategory
    ]

    report = ReconciliationReport(
        comparisons=comparisons,
        selling_price_ex_vat=selling_price,
        budgeted_cost=pricing.material_cost_total,
        budgeted_margin_percent=budgeted_margin,
        realized_material_cost=realized_material,
        realized_labor_cost=realized_labor,
        realized_total=realized_total,
        realized_profit=realized_profit,
        realized_margin_percent=realized_margin,
        at_risk_threshold=at_risk_threshold,
        at_risk=realized_margin < budgeted_margin - at_risk_threshold,
    )

    logger.info(
        "costs_reconciled",
        entries=len(entries),
        realized_total=round(realized_total, 2),
        realized_margin_percent=round(realized_margin, 2),
        at_risk=report.at_risk,
        overruns=[row.category.value for row in report.overruns],
    )
    return report
