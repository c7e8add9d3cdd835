"""Pricing Pydantic models for ElementQuote.

This module defines the cost categories, the validated markup/commission
configuration and the derived PricingCalculation snapshot that is stored
alongside a quotation in Firestore.
"""

from enum import Enum
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel, Field, field_validator, model_validator

logger = structlog.get_logger(__name__)

MAX_MARKUP_PERCENTAGE = 200.0
MAX_COMMISSION_PERCENTAGE = 100.0


# =============================================================================
# ENUMS
# =============================================================================


class CostCategory(str, Enum):
    """Cost category with an independent markup percentage."""

    ELEMENTS = "elements"
    TRUSSES = "trusses"
    PRODUCTS = "products"             # windows, doors and worksite deliveries
    INSTALLATION = "installation"
    TRANSPORTATION = "transportation"
    DESIGN = "design"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "CostCategory":
        """Resolve a raw category value, routing unknown ones to OTHER."""
        if isinstance(value, CostCategory):
            return value
        key = str(value).strip() if value is not None else ""
        if key in CATEGORY_ALIASES:
            return CATEGORY_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            logger.warning("unknown_cost_category", category=value, routed_to=cls.OTHER.value)
            return cls.OTHER


# Older quotations split products in two and called transportation "logistics"
CATEGORY_ALIASES: Dict[str, CostCategory] = {
    "windowsDoors": CostCategory.PRODUCTS,
    "worksiteDeliveries": CostCategory.PRODUCTS,
    "logistics": CostCategory.TRANSPORTATION,
    "documents": CostCategory.DESIGN,
}


class VatMode(str, Enum):
    """VAT treatment of the quotation."""

    STANDARD = "standard"
    CONSTRUCTION_SERVICE = "construction_service"  # reverse-charge, 0 %


# =============================================================================
# CONFIGURATION VALUE OBJECTS
# =============================================================================


class CategoryMarkups(BaseModel):
    """Markup percentage per cost category.

    Every percentage is range-checked at construction time
    (0 <= markup <= MAX_MARKUP_PERCENTAGE).
    """

    elements: float = Field(default=22.0, ge=0, le=MAX_MARKUP_PERCENTAGE)
    trusses: float = Field(default=22.0, ge=0, le=MAX_MARKUP_PERCENTAGE)
    products: float = Field(default=18.0, ge=0, le=MAX_MARKUP_PERCENTAGE)
    installation: float = Field(default=28.0, ge=0, le=MAX_MARKUP_PERCENTAGE)
    transportation: float = Field(default=12.0, ge=0, le=MAX_MARKUP_PERCENTAGE)
    design: float = Field(default=25.0, ge=0, le=MAX_MARKUP_PERCENTAGE)
    other: float = Field(default=0.0, ge=0, le=MAX_MARKUP_PERCENTAGE)

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def map_legacy_keys(cls, data: Any) -> Any:
        """Fold legacy template keys into the current categories."""
        if not isinstance(data, dict):
            return data
        mapped: Dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            category = CATEGORY_ALIASES.get(key)
            if category is not None:
                # First legacy key wins; an explicit current key always overrides
                mapped.setdefault(category.value, value)
            else:
                mapped[key] = value
        return mapped

    def get(self, category: CostCategory) -> float:
        """Markup percentage for a category."""
        return getattr(self, CostCategory.parse(category).value)

    def with_markup(self, category: CostCategory, percentage: float) -> "CategoryMarkups":
        """Return a new validated configuration with one category changed."""
        data = self.model_dump()
        data[CostCategory.parse(category).value] = percentage
        return CategoryMarkups.model_validate(data)


class PricingSettings(BaseModel):
    """User-editable pricing configuration of a quotation or template."""

    category_markups: CategoryMarkups = Field(
        default_factory=CategoryMarkups,
        alias="categoryMarkups",
        description="Markup percentage per cost category"
    )
    commission_percentage: float = Field(
        default=4.0,
        ge=0,
        le=MAX_COMMISSION_PERCENTAGE,
        alias="commissionPercentage",
        description="Sales commission, computed on total cost"
    )
    vat_mode: VatMode = Field(
        default=VatMode.STANDARD,
        alias="vatMode",
        description="VAT treatment"
    )

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("commission_percentage", mode="before")
    @classmethod
    def none_commission_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("vat_mode", mode="before")
    @classmethod
    def resolve_vat_mode(cls, v: Any) -> VatMode:
        from services.vat_calculator import resolve_vat_mode
        return resolve_vat_mode(v)


# =============================================================================
# DERIVED RESULTS
# =============================================================================


class CategoryBreakdown(BaseModel):
    """Cost, markup and selling price of a single category."""

    cost: float = Field(default=0.0, description="Summed cost of the category")
    markup_percentage: float = Field(
        default=0.0, alias="markupPercentage", description="Configured markup %"
    )
    markup: float = Field(default=0.0, description="Markup amount")
    selling_price: float = Field(
        default=0.0, alias="sellingPrice", description="cost + markup"
    )
    profit: float = Field(default=0.0, description="Equals the markup amount")

    class Config:
        populate_by_name = True
        frozen = True


class VatResult(BaseModel):
    """Outcome of applying a VAT mode to a subtotal."""

    vat_mode: VatMode = Field(..., alias="vatMode")
    subtotal: float
    vat_percentage: float = Field(..., alias="vatPercentage")
    vat_amount: float = Field(..., alias="vatAmount")
    total_with_vat: float = Field(..., alias="totalWithVat")

    class Config:
        populate_by_name = True
        frozen = True


class PricingCalculation(BaseModel):
    """Full pricing snapshot of a quotation.

    Derived data: recomputed from line items and PricingSettings on every
    change, never edited in place. Serialized with camelCase aliases, which
    are the stable contract for the summary view and contract documents.
    """

    category_markups: CategoryMarkups = Field(..., alias="categoryMarkups")
    commission_percentage: float = Field(..., alias="commissionPercentage")
    vat_mode: VatMode = Field(..., alias="vatMode")

    breakdown: Dict[CostCategory, CategoryBreakdown] = Field(
        ..., description="Per-category cost, markup and selling price"
    )

    material_cost_total: float = Field(..., alias="materialCostTotal")
    markup_amount: float = Field(..., alias="markupAmount")
    commission_amount: float = Field(..., alias="commissionAmount")
    selling_price_ex_vat: float = Field(..., alias="sellingPriceExVat")
    subtotal: float = Field(..., description="VAT base (equals sellingPriceExVat)")
    profit_amount: float = Field(..., alias="profitAmount")
    profit_percent: float = Field(..., alias="profitPercent")
    net_profit_amount: float = Field(
        ..., alias="netProfitAmount", description="Profit after commission"
    )

    vat_percentage: float = Field(..., alias="vatPercentage")
    vat_amount: float = Field(..., alias="vatAmount")
    total_with_vat: float = Field(..., alias="totalWithVat")

    class Config:
        populate_by_name = True
        frozen = True

    def category(self, category: CostCategory) -> CategoryBreakdown:
        """Breakdown of one category (zeros when absent)."""
        return self.breakdown.get(CostCategory.parse(category), CategoryBreakdown())

    def budget(self) -> Dict[CostCategory, float]:
        """Budgeted cost per category, used by post-calculation."""
        return {cat: self.category(cat).cost for cat in CostCategory}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary for Firestore / JSON."""
        return self.model_dump(by_alias=True, mode="json")


def default_pricing_settings(commission_percentage: Optional[float] = None) -> PricingSettings:
    """PricingSettings with default markups and the configured commission."""
    if commission_percentage is None:
        from config.settings import settings
        commission_percentage = settings.default_commission_percentage
    return PricingSettings(commission_percentage=commission_percentage)
