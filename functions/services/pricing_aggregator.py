"""Pricing aggregator for ElementQuote.

Composes cost breakdown, markup engine and VAT calculator into the full
PricingCalculation of a quotation.

Commission placement: commission is a cost of sale computed on the total
cost. It is reported (commission_amount, net_profit_amount) but is not
added to the selling price, so the VAT base (subtotal) always equals
selling_price_ex_vat.
"""

import json
from collections import OrderedDict
from typing import Any, Dict, Mapping, Optional, Sequence

import structlog

from config.settings import settings
from models.line_items import Section
from models.pricing import CostCategory, PricingCalculation, PricingSettings
from models.quotation import Quotation
from services.cost_breakdown import aggregate_sections, build_cost_inputs, empty_costs
from services.markup_engine import apply_markups
from services.vat_calculator import calculate_vat

logger = structlog.get_logger(__name__)


def _safe_percent(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 for a zero denominator."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100


def aggregate_pricing(
    costs: Mapping[CostCategory, float],
    pricing_settings: PricingSettings,
) -> PricingCalculation:
    """Compute the pricing of a per-category cost map.

    Args:
        costs: Cost per category (missing categories count as zero).
        pricing_settings: Markups, commission and VAT mode.

    Returns:
        Complete PricingCalculation.
    """
    normalized = empty_costs()
    for category, cost in costs.items():
        normalized[CostCategory.parse(category)] += cost or 0.0

    breakdown = apply_markups(normalized, pricing_settings.category_markups)

    material_cost_total = sum(row.cost for row in breakdown.values())
    markup_amount = sum(row.markup for row in breakdown.values())
    selling_price_ex_vat = sum(row.selling_price for row in breakdown.values())
    commission_amount = material_cost_total * pricing_settings.commission_percentage / 100

    profit_amount = selling_price_ex_vat - material_cost_total
    profit_percent = _safe_percent(profit_amount, selling_price_ex_vat)

    vat = calculate_vat(selling_price_ex_vat, pricing_settings.vat_mode)

    return PricingCalculation(
        category_markups=pricing_settings.category_markups,
        commission_percentage=pricing_settings.commission_percentage,
        vat_mode=vat.vat_mode,
        breakdown=breakdown,
        material_cost_total=material_cost_total,
        markup_amount=markup_amount,
        commission_amount=commission_amount,
        selling_price_ex_vat=selling_price_ex_vat,
        subtotal=vat.subtotal,
        profit_amount=profit_amount,
        profit_percent=profit_percent,
        net_profit_amount=profit_amount - commission_amount,
        vat_percentage=vat.vat_percentage,
        vat_amount=vat.vat_amount,
        total_with_vat=vat.total_with_vat,
    )


def calculate_pricing(
    sections: Sequence[Section],
    pricing_settings: PricingSettings,
    extra_costs: Optional[Mapping[CostCategory, float]] = None,
) -> PricingCalculation:
    """Price a set of line item sections.

    Args:
        sections: Sections of line items.
        pricing_settings: Markups, commission and VAT mode.
        extra_costs: Additional per-category costs not expressed as items.

    Returns:
        Complete PricingCalculation.
    """
    costs = aggregate_sections(sections)
    for category, cost in (extra_costs or {}).items():
        costs[CostCategory.parse(category)] += cost or 0.0
    return aggregate_pricing(costs, pricing_settings)


class PricingAggregator:
    """Memoizing front for quotation pricing.

    Pricing is a pure function of (line items, delivery scope, pricing
    settings); results are cached under a canonical JSON key of those
    inputs, bounded to max_entries (least recently used evicted first).
    """

    def __init__(self, max_entries: Optional[int] = None):
        """Initialize PricingAggregator.

        Args:
            max_entries: Cache size (default from settings, 0 disables caching).
        """
        self.max_entries = settings.pricing_cache_size if max_entries is None else max_entries
        self._cache: "OrderedDict[str, PricingCalculation]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def cache_key(quotation: Quotation) -> str:
        """Canonical key of the inputs that affect pricing."""
        payload: Dict[str, Any] = {
            "sections": [section.model_dump(mode="json") for section in quotation.sections],
            "delivery": quotation.delivery.model_dump(mode="json"),
            "settings": quotation.pricing_settings.model_dump(mode="json"),
        }
        return json.dumps(payload, sort_keys=True, default=str)

    def calculate(self, quotation: Quotation) -> PricingCalculation:
        """Pricing of a quotation snapshot."""
        key = self.cache_key(quotation) if self.max_entries else None

        if key is not None and key in self._cache:
            self.hits += 1
            self._cache.move_to_end(key)
            return self._cache[key]

        self.misses += 1
        pricing = aggregate_pricing(build_cost_inputs(quotation), quotation.pricing_settings)

        logger.info(
            "pricing_calculated",
            quotation_id=quotation.id,
            material_cost_total=round(pricing.material_cost_total, 2),
            selling_price_ex_vat=round(pricing.selling_price_ex_vat, 2),
            total_with_vat=round(pricing.total_with_vat, 2),
            vat_mode=pricing.vat_mode.value,
        )

        if key is not None:
            self._cache[key] = pricing
            if len(self._cache) > self.max_entries:
                self._cache.popitem(last=False)
        return pricing

    def clear(self) -> None:
        """Drop all cached results."""
        self._cache.clear()
        self.hits = 0
        self.misses = 0
