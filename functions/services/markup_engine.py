"""Markup engine: per-category markup, selling price and profit."""

from typing import Dict, Mapping

from models.pricing import CategoryBreakdown, CategoryMarkups, CostCategory


def apply_markup(cost: float, markup_percentage: float) -> CategoryBreakdown:
    """Apply a markup percentage to a category cost.

    A category without cost never gets a markup, whatever its percentage.

    Args:
        cost: Summed cost of the category.
        markup_percentage: Markup as percent of cost.

    Returns:
        CategoryBreakdown with markup = cost * pct / 100,
        selling_price = cost + markup and profit = markup.
    """
    if not cost:
        return CategoryBreakdown(markup_percentage=markup_percentage)

    markup = cost * markup_percentage / 100
    return CategoryBreakdown(
        cost=cost,
        markup_percentage=markup_percentage,
        markup=markup,
        selling_price=cost + markup,
        profit=markup,
    )


def apply_markups(
    costs: Mapping[CostCategory, float],
    markups: CategoryMarkups,
) -> Dict[CostCategory, CategoryBreakdown]:
    """Apply the configured markup to every category.

    Returns:
        Breakdown for every CostCategory (missing costs count as zero).
    """
    return {
        category: apply_markup(costs.get(category, 0.0) or 0.0, markups.get(category))
        for category in CostCategory
    }
