"""Cost entry models for post-calculation.

A cost entry is one realized expense (material purchase or labor) recorded
while the project is executed. Entries accumulate per quotation and are only
ever summed; they are removed explicitly by id.
"""

import datetime as dt
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from config.errors import InvalidInputError
from models.pricing import CostCategory


class CostType(str, Enum):
    """Kind of realized cost."""

    MATERIAL = "material"
    LABOR = "labor"


def _coerce_date(value: Any) -> Any:
    """Accept date, datetime, ISO string or epoch timestamp (s or ms)."""
    if value is None or value == "":
        return dt.date.today()
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return dt.datetime.fromtimestamp(seconds, tz=dt.timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            raise ValueError(f"Timestamp out of range: {value}")
    if isinstance(value, str) and "T" in value:
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


class CostEntry(BaseModel):
    """Realized cost recorded against a quotation.

    For labor entries with both hours and rate, amount is derived as
    labor_hours * labor_rate and any supplied amount is ignored.
    """

    id: str = Field(default_factory=lambda: uuid4().hex, description="Entry ID")
    date: dt.date = Field(default_factory=dt.date.today, description="Date of the cost")
    category: CostCategory = Field(default=CostCategory.OTHER)
    description: str = Field(default="")
    amount: float = Field(default=0.0, ge=0, description="Cost excluding VAT")
    supplier: Optional[str] = None
    cost_type: CostType = Field(default=CostType.MATERIAL, alias="costType")
    labor_hours: Optional[float] = Field(default=None, ge=0, alias="laborHours")
    labor_rate: Optional[float] = Field(default=None, ge=0, alias="laborRate")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v: Any) -> CostCategory:
        return CostCategory.parse(v)

    @field_validator("amount", mode="before")
    @classmethod
    def missing_amount_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @model_validator(mode="before")
    @classmethod
    def derive_labor_amount(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cost_type = data.get("costType", data.get("cost_type"))
        hours = data.get("laborHours", data.get("labor_hours"))
        rate = data.get("laborRate", data.get("labor_rate"))
        if str(getattr(cost_type, "value", cost_type)) == CostType.LABOR.value and hours is not None and rate is not None:
            data = {k: v for k, v in data.items() if k not in ("amount",)}
            data["amount"] = float(hours) * float(rate)
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary for Firestore / JSON."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def parse_cost_entry(data: Dict[str, Any]) -> CostEntry:
    """Parse a raw cost entry dict, raising InvalidInputError on bad input."""
    try:
        return CostEntry.model_validate(data)
    except (PydanticValidationError, ValueError) as e:
        errors = (
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            if isinstance(e, PydanticValidationError) else [str(e)]
        )
        raise InvalidInputError("Invalid cost entry", errors=errors)
