"""Line item Pydantic models for ElementQuote.

Quotation content is organised in ordered, named sections of line items.
Each item belongs to a cost category, either explicitly or through its
section, and derives total_price from quantity and unit price.
"""

from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from config.errors import InvalidInputError
from models.pricing import CostCategory


# =============================================================================
# LINE ITEMS
# =============================================================================


class LineItem(BaseModel):
    """Base line item: quantity x unit price, tagged with a category."""

    default_category: ClassVar[CostCategory] = CostCategory.OTHER

    id: str = Field(default_factory=lambda: uuid4().hex, description="Item ID")
    description: str = Field(default="", description="Item description")
    quantity: float = Field(default=0.0, ge=0, description="Quantity")
    unit: str = Field(default="kpl", description="Unit of measurement")
    unit_price: float = Field(default=0.0, ge=0, alias="unitPrice", description="Price per unit")
    category: Optional[CostCategory] = Field(
        default=None,
        description="Explicit cost category; falls back to the section's"
    )

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def missing_number_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v: Any) -> Optional[CostCategory]:
        if v is None or v == "":
            return None
        return CostCategory.parse(v)

    @computed_field(alias="totalPrice")
    @property
    def total_price(self) -> float:
        return self._compute_total()

    def _compute_total(self) -> float:
        return self.quantity * self.unit_price

    def resolve_category(self, section_category: Optional[CostCategory] = None) -> CostCategory:
        """Item category, else the section category, else the item type's default."""
        return self.category or section_category or self.default_category


class ElementItem(LineItem):
    """Factory-built wall, floor or roof element."""

    default_category: ClassVar[CostCategory] = CostCategory.ELEMENTS

    kind: Literal["element"] = "element"
    element_type: str = Field(default="", alias="type", description="Element type, e.g. US-198")
    specifications: Dict[str, str] = Field(default_factory=dict)
    net_area: Optional[float] = Field(default=None, ge=0, alias="netArea")
    has_window_install: bool = Field(default=False, alias="hasWindowInstall")
    window_count: float = Field(default=0.0, ge=0, alias="windowCount")
    window_install_price: float = Field(default=0.0, ge=0, alias="windowInstallPrice")

    @field_validator("window_count", "window_install_price", mode="before")
    @classmethod
    def missing_window_number_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    def _compute_total(self) -> float:
        base = self.quantity * self.unit_price
        if self.has_window_install:
            base += self.window_count * self.window_install_price
        return base


class TrussItem(LineItem):
    """Roof truss batch, usually produced by the truss calculator."""

    default_category: ClassVar[CostCategory] = CostCategory.TRUSSES

    kind: Literal["truss"] = "truss"
    truss_type: str = Field(default="gable", alias="trussType")
    span_m: Optional[float] = Field(default=None, ge=0, alias="spanM")
    pitch_deg: Optional[float] = Field(default=None, ge=0, alias="pitchDeg")
    spacing_mm: Optional[float] = Field(default=None, ge=0, alias="spacingMm")


class ProductItem(LineItem):
    """Window, door or worksite delivery material."""

    default_category: ClassVar[CostCategory] = CostCategory.PRODUCTS

    kind: Literal["product"] = "product"
    code: str = Field(default="", alias="tunnus", description="Product code")
    product_type: Literal["window", "door", "material"] = Field(default="material", alias="type")
    manufacturer: Optional[str] = None


class DocumentItem(LineItem):
    """Design document (drawing, plan, certificate) with a fixed price."""

    default_category: ClassVar[CostCategory] = CostCategory.DESIGN

    kind: Literal["document"] = "document"
    quantity: float = Field(default=1.0, ge=0, description="Quantity")
    included: bool = Field(default=True, description="Included in the delivery")

    @model_validator(mode="before")
    @classmethod
    def price_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "price" in data and "unitPrice" not in data and "unit_price" not in data:
            data = {**data, "unitPrice": data["price"]}
        return data

    def _compute_total(self) -> float:
        return self.quantity * self.unit_price if self.included else 0.0


AnyLineItem = Annotated[
    Union[ElementItem, TrussItem, ProductItem, DocumentItem],
    Field(discriminator="kind"),
]

KIND_BY_CATEGORY: Dict[CostCategory, str] = {
    CostCategory.ELEMENTS: "element",
    CostCategory.TRUSSES: "truss",
    CostCategory.PRODUCTS: "product",
    CostCategory.DESIGN: "document",
}


# =============================================================================
# SECTIONS
# =============================================================================


class Section(BaseModel):
    """Ordered, named grouping of line items."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str = Field(default="")
    order: float = Field(default=0)
    category: Optional[CostCategory] = Field(
        default=None, description="Default category of the section's items"
    )
    items: List[AnyLineItem] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v: Any) -> Optional[CostCategory]:
        if v is None or v == "":
            return None
        return CostCategory.parse(v)

    @model_validator(mode="before")
    @classmethod
    def default_item_kind(cls, data: Any) -> Any:
        """Items without a kind take the kind matching the section category."""
        if not isinstance(data, dict) or not data.get("items"):
            return data
        category = data.get("category")
        kind = KIND_BY_CATEGORY.get(CostCategory.parse(category), "element") if category else "element"
        items = [
            {**item, "kind": kind} if isinstance(item, dict) and "kind" not in item else item
            for item in data["items"]
        ]
        return {**data, "items": items}

    @property
    def total(self) -> float:
        return sum(item.total_price for item in self.items)


def _raise_invalid(what: str, error: PydanticValidationError) -> None:
    errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()]
    raise InvalidInputError(f"Invalid {what}", errors=errors)


def parse_line_item(data: Dict[str, Any], default_kind: str = "element") -> LineItem:
    """Parse a raw line item dict, raising InvalidInputError on bad input.

    Args:
        data: Raw item dictionary (camelCase or snake_case keys).
        default_kind: Item kind when the dict does not specify one.

    Returns:
        Typed line item.
    """
    model_by_kind = {
        "element": ElementItem,
        "truss": TrussItem,
        "product": ProductItem,
        "document": DocumentItem,
    }
    kind = data.get("kind", default_kind)
    model = model_by_kind.get(kind)
    if model is None:
        raise InvalidInputError(f"Unknown line item kind: {kind}", errors=[f"kind: {kind}"])
    try:
        return model.model_validate({**data, "kind": kind})
    except PydanticValidationError as e:
        _raise_invalid("line item", e)


def parse_sections(data: List[Dict[str, Any]]) -> List[Section]:
    """Parse raw sections, raising InvalidInputError on bad input."""
    try:
        return [Section.model_validate(section) for section in data or []]
    except PydanticValidationError as e:
        _raise_invalid("section", e)
