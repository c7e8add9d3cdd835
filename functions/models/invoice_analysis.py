"""Invoice analysis models.

Structured result of AI invoice analysis, convertible into a CostEntry
suggestion that the user confirms before it is recorded.
"""

import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from models.cost_entry import CostEntry, CostType
from models.pricing import CostCategory


class InvoiceLine(BaseModel):
    """Single row of an analysed invoice."""

    description: str = ""
    amount: float = 0.0
    category: Optional[CostCategory] = None

    @field_validator("amount", mode="before")
    @classmethod
    def missing_amount_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v: Any) -> Optional[CostCategory]:
        if v is None or v == "":
            return None
        return CostCategory.parse(v)


class InvoiceAnalysis(BaseModel):
    """Invoice fields extracted by the LLM (amounts excluding VAT)."""

    supplier: Optional[str] = None
    date: Optional[dt.date] = None
    total_amount: float = Field(default=0.0, ge=0, alias="totalAmount")
    category: CostCategory = Field(default=CostCategory.OTHER)
    description: str = ""
    items: List[InvoiceLine] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @field_validator("date", mode="before")
    @classmethod
    def unparseable_date_is_none(cls, v: Any) -> Any:
        if not v:
            return None
        if isinstance(v, str):
            try:
                return dt.date.fromisoformat(v[:10])
            except ValueError:
                return None
        return v

    @field_validator("total_amount", mode="before")
    @classmethod
    def missing_total_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v: Any) -> CostCategory:
        return CostCategory.parse(v)

    def to_cost_entry(self) -> CostEntry:
        """Material cost entry suggestion; a missing date becomes today."""
        return CostEntry(
            date=self.date or dt.date.today(),
            category=self.category,
            description=self.description,
            amount=self.total_amount,
            supplier=self.supplier,
            cost_type=CostType.MATERIAL,
        )
