"""Post-calculation result models for ElementQuote.

Realized-vs-budget comparison per cost category and the aggregate margin
figures shown in the cost tracking view.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from models.pricing import CostCategory


class CategoryComparison(BaseModel):
    """Budget vs. realized cost of one category.

    variance is budget - realized: positive means under budget,
    negative means an overrun.
    """

    category: CostCategory
    budget: float = Field(default=0.0)
    realized: float = Field(default=0.0)
    variance: float = Field(default=0.0)
    percent_used: float = Field(default=0.0, alias="percentUsed")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def is_overrun(self) -> bool:
        return self.variance < 0


class ReconciliationReport(BaseModel):
    """Realized margin of a project against its quotation budget."""

    comparisons: List[CategoryComparison] = Field(default_factory=list)

    selling_price_ex_vat: float = Field(..., alias="sellingPriceExVat")
    budgeted_cost: float = Field(..., alias="budgetedCost")
    budgeted_margin_percent: float = Field(..., alias="budgetedMarginPercent")

    realized_material_cost: float = Field(..., alias="realizedMaterialCost")
    realized_labor_cost: float = Field(..., alias="realizedLaborCost")
    realized_total: float = Field(..., alias="realizedTotal")
    realized_profit: float = Field(..., alias="realizedProfit")
    realized_margin_percent: float = Field(..., alias="realizedMarginPercent")

    at_risk_threshold: float = Field(..., alias="atRiskThreshold")
    at_risk: bool = Field(..., alias="atRisk")

    class Config:
        populate_by_name = True
        frozen = True

    def comparison(self, category: CostCategory) -> CategoryComparison:
        """Comparison row for a category."""
        category = CostCategory.parse(category)
        for row in self.comparisons:
            if row.category == category:
                return row
        return CategoryComparison(category=category)

    @property
    def overruns(self) -> List[CategoryComparison]:
        return [row for row in self.comparisons if row.is_overrun]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary, including overrun flags."""
        data = self.model_dump(by_alias=True, mode="json")
        for row, raw in zip(self.comparisons, data["comparisons"]):
            raw["isOverrun"] = row.is_overrun
        return data
