"""Quantity take-off calculators.

Turn basic building dimensions into priced line items: a roof truss batch
and a batch of exterior wall elements.
"""

import math
from typing import Dict, Literal, Optional

import structlog
from pydantic import BaseModel, Field

from models.line_items import ElementItem, TrussItem

logger = structlog.get_logger(__name__)


# =============================================================================
# TRUSSES
# =============================================================================

TRUSS_BASE_PRICE = 25.0
TRUSS_SPAN_FACTOR = 12.0
TRUSS_HEIGHT_FACTOR = 15.0

TrussType = Literal["gable", "mono", "scissor", "portal"]

TRUSS_TYPE_FACTORS: Dict[str, float] = {
    "gable": 1.0,
    "mono": 1.1,
    "scissor": 1.35,
    "portal": 1.8,
}

TRUSS_TYPE_LABELS: Dict[str, str] = {
    "gable": "Harjaristikko",
    "mono": "Pulpettiristikko",
    "scissor": "Saksiristikko",
    "portal": "Kehäristikko",
}


class TrussInput(BaseModel):
    """Roof dimensions for the truss calculator."""

    truss_type: TrussType = Field(default="gable", alias="type")
    span: float = Field(default=9.6, description="Span in meters")
    length: float = Field(default=15.0, description="Building length in meters")
    pitch: float = Field(default=22.0, description="Roof pitch in degrees")
    spacing: float = Field(default=900.0, description="Truss spacing in millimeters")
    snow_load: float = Field(default=2.5, alias="snowLoad", description="kN/m2")

    class Config:
        populate_by_name = True


class TrussResult(BaseModel):
    count: int = 0
    height: float = 0.0
    unit_price: float = Field(default=0.0, alias="unitPrice")
    total_price: float = Field(default=0.0, alias="totalPrice")
    label: str = ""

    class Config:
        populate_by_name = True


def calculate_truss(inputs: TrussInput) -> TrussResult:
    """Truss count, ridge height and price.

    Non-positive span, length or spacing gives an all-zero result.
    """
    if inputs.span <= 0 or inputs.length <= 0 or inputs.spacing <= 0:
        return TrussResult()

    count = math.ceil(inputs.length / (inputs.spacing / 1000)) + 1
    height = math.tan(math.radians(inputs.pitch)) * (inputs.span / 2)
    factor = TRUSS_TYPE_FACTORS.get(inputs.truss_type, 1.0)
    unit_price = (
        TRUSS_BASE_PRICE + inputs.span * TRUSS_SPAN_FACTOR + height * TRUSS_HEIGHT_FACTOR
    ) * factor

    return TrussResult(
        count=count,
        height=height,
        unit_price=unit_price,
        total_price=unit_price * count,
        label=TRUSS_TYPE_LABELS.get(inputs.truss_type, TRUSS_TYPE_LABELS["gable"]),
    )


def truss_line_item(inputs: TrussInput) -> Optional[TrussItem]:
    """Priced truss batch, or None when the dimensions give nothing to add."""
    result = calculate_truss(inputs)
    if result.total_price <= 0:
        return None

    logger.info("truss_calculated", count=result.count, unit_price=round(result.unit_price, 2))
    return TrussItem(
        description=(
            f"{result.label} (Laskettu): Jänneväli {inputs.span:g}m, Pituus {inputs.length:g}m, "
            f"Kulma {inputs.pitch:g}°, K-jako {inputs.spacing:g}mm"
        ),
        quantity=result.count,
        unit="kpl",
        unit_price=result.unit_price,
        truss_type=inputs.truss_type,
        span_m=inputs.span,
        pitch_deg=inputs.pitch,
        spacing_mm=inputs.spacing,
    )


# =============================================================================
# WALL ELEMENTS
# =============================================================================

ELEMENT_WIDTH_M = 3.0
ELEMENT_UNIT_PRICE = 450.0
WINDOW_INSTALL_PRICE = 45.0


class WallInput(BaseModel):
    """Building footprint for the wall element calculator."""

    width: float = 8.0
    length: float = 12.0
    floors: int = 1
    height: float = Field(default=2.8, description="Wall height in meters")
    window_count: int = Field(default=5, alias="windowCount")
    window_area: float = Field(default=8.0, alias="windowArea", description="m2")
    structure_type: str = Field(default="US-198", alias="structureType")

    class Config:
        populate_by_name = True


class WallResult(BaseModel):
    perimeter: float = 0.0
    wall_area_gross: float = Field(default=0.0, alias="wallAreaGross")
    wall_area_net: float = Field(default=0.0, alias="wallAreaNet")
    floor_area: float = Field(default=0.0, alias="floorArea")
    element_count: int = Field(default=0, alias="elementCount")

    class Config:
        populate_by_name = True


def calculate_wall_elements(inputs: WallInput) -> WallResult:
    perimeter = (inputs.width + inputs.length) * 2
    gross = perimeter * inputs.height * inputs.floors
    return WallResult(
        perimeter=perimeter,
        wall_area_gross=gross,
        wall_area_net=gross - inputs.window_area,
        floor_area=inputs.width * inputs.length * inputs.floors,
        element_count=math.ceil(perimeter / ELEMENT_WIDTH_M) if perimeter > 0 else 0,
    )


def wall_element_line_item(inputs: WallInput) -> Optional[ElementItem]:
    """Exterior wall element batch, or None when the net wall area is not positive."""
    result = calculate_wall_elements(inputs)
    if result.wall_area_net <= 0 or result.element_count <= 0:
        return None

    count = result.element_count
    return ElementItem(
        element_type=f"Ulkoseinä {inputs.structure_type} (Laskettu)",
        description=(
            f"Kehä {result.perimeter:g}m, Korkeus {inputs.height:g}m, "
            f"Bruttoala {result.wall_area_gross:.1f}m², Aukot {inputs.window_area:g}m²"
        ),
        specifications={
            "height": f"{inputs.height * 1000:g} mm",
            "uValue": "0,17 W/m²K" if inputs.structure_type == "US-198" else "0,25 W/m²K",
        },
        quantity=count,
        unit="kpl",
        unit_price=ELEMENT_UNIT_PRICE,
        net_area=round(result.wall_area_net / count, 1),
        has_window_install=inputs.window_count > 0,
        window_count=math.ceil(inputs.window_count / count),
        window_install_price=WINDOW_INSTALL_PRICE,
    )
