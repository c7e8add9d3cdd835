"""Quotation document models for ElementQuote.

Pydantic models for the quotation snapshot stored in /quotations/{id}.
Snapshots are immutable: every edit goes through services.quotation_state
and produces a new Quotation.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime

import structlog
from pydantic import BaseModel, Field, field_validator

from models.cost_entry import CostEntry
from models.line_items import Section
from models.pricing import PricingSettings

logger = structlog.get_logger(__name__)


class QuotationStatus(str, Enum):
    """Sales status of a quotation."""

    DRAFT = "draft"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class AssemblyLevel(str, Enum):
    """How far the delivery is assembled on site."""

    MATERIAL_ONLY = "material-only"
    SHELL_AND_ROOF = "shell-and-roof"
    EXTERIOR_COMPLETE = "exterior-complete"


# Installation cost = material base * (multiplier - 1)
ASSEMBLY_LEVEL_MULTIPLIERS: Dict[AssemblyLevel, float] = {
    AssemblyLevel.MATERIAL_ONLY: 1.0,
    AssemblyLevel.SHELL_AND_ROOF: 1.20,
    AssemblyLevel.EXTERIOR_COMPLETE: 1.45,
}


class TransportationDetails(BaseModel):
    """Truck transport from the factory to the site (round trip)."""

    distance_km: float = Field(default=0.0, ge=0, alias="distanceKm")
    truck_count: int = Field(default=1, ge=0, alias="truckCount")
    rate_per_km: Optional[float] = Field(
        default=None, ge=0, alias="ratePerKm",
        description="Defaults to settings.transport_rate_per_km"
    )

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("distance_km", mode="before")
    @classmethod
    def missing_distance_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @field_validator("truck_count", mode="before")
    @classmethod
    def missing_trucks_is_one(cls, v: Any) -> Any:
        return 1 if v is None or v == "" else v


class DeliveryScope(BaseModel):
    """Delivery and installation scope of the quotation."""

    assembly_level_id: AssemblyLevel = Field(
        default=AssemblyLevel.SHELL_AND_ROOF, alias="assemblyLevelId"
    )
    transportation: TransportationDetails = Field(default_factory=TransportationDetails)

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("assembly_level_id", mode="before")
    @classmethod
    def unknown_level_is_shell_and_roof(cls, v: Any) -> Any:
        if v is None or v == "":
            return AssemblyLevel.SHELL_AND_ROOF
        try:
            return AssemblyLevel(v)
        except ValueError:
            logger.warning(
                "invalid_assembly_level",
                assembly_level=v,
                fallback=AssemblyLevel.SHELL_AND_ROOF.value,
            )
            return AssemblyLevel.SHELL_AND_ROOF


class PaymentMilestone(BaseModel):
    """One instalment of the payment schedule."""

    id: str
    order: int
    description: str = ""
    trigger: str = Field(default="custom", description="signing, pre-production, ...")
    percentage: float = Field(..., ge=0, le=100)
    amount: float = Field(default=0.0, ge=0)

    class Config:
        populate_by_name = True
        frozen = True


class QuotationVersion(BaseModel):
    """Metadata of a saved quotation version."""

    id: str
    version_number: int = Field(..., alias="versionNumber")
    name: str
    created_at: datetime = Field(default_factory=datetime.utcnow, alias="createdAt")
    created_by: str = Field(default="", alias="createdBy")
    status: QuotationStatus = QuotationStatus.DRAFT
    is_active: bool = Field(default=False, alias="isActive")
    is_sent: bool = Field(default=False, alias="isSent")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True
        frozen = True


class Quotation(BaseModel):
    """Quotation snapshot: content, pricing configuration and realized costs."""

    id: Optional[str] = Field(default=None, description="Document ID")
    status: QuotationStatus = Field(default=QuotationStatus.DRAFT)
    building_type: str = Field(default="omakotitalo", alias="buildingType")

    sections: List[Section] = Field(default_factory=list)
    pricing_settings: PricingSettings = Field(
        default_factory=PricingSettings, alias="pricingSettings"
    )
    delivery: DeliveryScope = Field(default_factory=DeliveryScope)
    payment_schedule: List[PaymentMilestone] = Field(
        default_factory=list, alias="paymentSchedule"
    )
    cost_entries: List[CostEntry] = Field(default_factory=list, alias="costEntries")

    versions: List[QuotationVersion] = Field(default_factory=list)
    current_version_id: Optional[str] = Field(default=None, alias="currentVersionId")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def is_frozen(self) -> bool:
        """Signed quotations no longer accept pricing edits."""
        return self.status == QuotationStatus.ACCEPTED

    def section(self, section_id: str) -> Optional[Section]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary for Firestore / JSON."""
        return self.model_dump(by_alias=True, mode="json", exclude={"id"})
