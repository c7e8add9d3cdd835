"""Unit tests for pricing and line item models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from config.errors import InvalidInputError
from models.line_items import (
    DocumentItem,
    ElementItem,
    ProductItem,
    Section,
    TrussItem,
    parse_line_item,
    parse_sections,
)
from models.pricing import (
    CategoryMarkups,
    CostCategory,
    PricingSettings,
    VatMode,
    default_pricing_settings,
)


class TestCostCategory:
    """Tests for category parsing."""

    def test_known_value(self):
        assert CostCategory.parse("trusses") == CostCategory.TRUSSES

    def test_enum_passthrough(self):
        assert CostCategory.parse(CostCategory.DESIGN) == CostCategory.DESIGN

    @pytest.mark.parametrize("legacy,expected", [
        ("windowsDoors", CostCategory.PRODUCTS),
        ("worksiteDeliveries", CostCategory.PRODUCTS),
        ("logistics", CostCategory.TRANSPORTATION),
        ("documents", CostCategory.DESIGN),
    ])
    def test_legacy_aliases(self, legacy, expected):
        assert CostCategory.parse(legacy) == expected

    @pytest.mark.parametrize("raw", ["scaffolding", "", None, 42])
    def test_unknown_routes_to_other(self, raw):
        assert CostCategory.parse(raw) == CostCategory.OTHER


class TestCategoryMarkups:
    """Tests for the markup configuration value object."""

    def test_defaults(self):
        markups = CategoryMarkups()
        assert markups.elements == 22.0
        assert markups.trusses == markups.elements
        assert markups.products == 18.0
        assert markups.installation == 28.0
        assert markups.transportation == 12.0
        assert markups.design == 25.0
        assert markups.other == 0.0

    def test_negative_markup_rejected(self):
        with pytest.raises(PydanticValidationError):
            CategoryMarkups(elements=-1)

    def test_markup_above_maximum_rejected(self):
        with pytest.raises(PydanticValidationError):
            CategoryMarkups(trusses=250)

    def test_boundaries_accepted(self):
        markups = CategoryMarkups(elements=0, trusses=200)
        assert markups.elements == 0
        assert markups.trusses == 200

    def test_legacy_keys_fold_into_products(self):
        markups = CategoryMarkups.model_validate({"windowsDoors": 18, "logistics": 12})
        assert markups.products == 18
        assert markups.transportation == 12

    def test_current_key_overrides_legacy_key(self):
        markups = CategoryMarkups.model_validate({"windowsDoors": 18, "products": 22})
        assert markups.products == 22

    def test_with_markup_returns_new_object(self):
        markups = CategoryMarkups()
        changed = markups.with_markup(CostCategory.ELEMENTS, 40)
        assert changed.elements == 40
        assert markups.elements == 22

    def test_with_markup_validates(self):
        with pytest.raises(PydanticValidationError):
            CategoryMarkups().with_markup("elements", 500)

    def test_frozen(self):
        with pytest.raises(PydanticValidationError):
            CategoryMarkups().elements = 10


class TestPricingSettings:
    """Tests for PricingSettings validation."""

    def test_camel_case_input(self):
        settings = PricingSettings.model_validate({
            "categoryMarkups": {"elements": 30},
            "commissionPercentage": 5,
            "vatMode": "construction_service",
        })
        assert settings.category_markups.elements == 30
        assert settings.commission_percentage == 5
        assert settings.vat_mode == VatMode.CONSTRUCTION_SERVICE

    def test_unknown_vat_mode_falls_back_to_standard(self):
        settings = PricingSettings.model_validate({"vatMode": "reduced"})
        assert settings.vat_mode == VatMode.STANDARD

    def test_missing_commission_is_zero(self):
        assert PricingSettings(commission_percentage=None).commission_percentage == 0.0

    def test_commission_out_of_range(self):
        with pytest.raises(PydanticValidationError):
            PricingSettings(commission_percentage=101)

    def test_default_pricing_settings(self):
        assert default_pricing_settings().commission_percentage == 4.0
        assert default_pricing_settings(2.5).commission_percentage == 2.5


class TestLineItems:
    """Tests for line item totals and parsing."""

    def test_total_price(self):
        item = ProductItem(quantity=3, unit_price=250)
        assert item.total_price == 750

    def test_missing_numbers_are_zero(self):
        item = parse_line_item({"quantity": None, "unitPrice": ""}, default_kind="product")
        assert item.total_price == 0

    def test_negative_quantity_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_line_item({"quantity": -1, "unitPrice": 10})
        assert any("quantity" in err for err in exc_info.value.errors)

    def test_negative_price_rejected(self):
        with pytest.raises(InvalidInputError):
            parse_line_item({"quantity": 1, "unitPrice": -10}, default_kind="truss")

    def test_unknown_kind_rejected(self):
        with pytest.raises(InvalidInputError):
            parse_line_item({"kind": "furniture", "quantity": 1})

    def test_element_window_install_addon(self):
        item = ElementItem(
            quantity=4,
            unit_price=450,
            has_window_install=True,
            window_count=2,
            window_install_price=45,
        )
        assert item.total_price == pytest.approx(4 * 450 + 2 * 45)

    def test_element_window_install_ignored_when_disabled(self):
        item = ElementItem(quantity=4, unit_price=450, window_count=2, window_install_price=45)
        assert item.total_price == 1800

    def test_document_price_alias(self):
        item = parse_line_item({"description": "Rakennesuunnitelmat", "price": 900}, default_kind="document")
        assert isinstance(item, DocumentItem)
        assert item.total_price == 900

    def test_excluded_document_costs_nothing(self):
        item = DocumentItem(unit_price=900, included=False)
        assert item.total_price == 0

    def test_category_resolution_order(self):
        item = TrussItem(quantity=1, unit_price=1)
        assert item.resolve_category() == CostCategory.TRUSSES
        assert item.resolve_category(CostCategory.OTHER) == CostCategory.OTHER
        explicit = TrussItem(quantity=1, unit_price=1, category="installation")
        assert explicit.resolve_category(CostCategory.OTHER) == CostCategory.INSTALLATION

    def test_serialized_total_uses_alias(self):
        data = ProductItem(quantity=2, unit_price=5).model_dump(by_alias=True)
        assert data["totalPrice"] == 10
        assert data["unitPrice"] == 5


class TestSections:
    """Tests for section parsing."""

    def test_items_take_kind_from_section_category(self):
        sections = parse_sections([
            {"id": "s1", "category": "trusses", "items": [{"quantity": 2, "unitPrice": 3}]},
            {"id": "s2", "category": "worksiteDeliveries", "items": [{"quantity": 1, "unitPrice": 1}]},
        ])
        assert isinstance(sections[0].items[0], TrussItem)
        assert isinstance(sections[1].items[0], ProductItem)
        assert sections[1].category == CostCategory.PRODUCTS

    def test_section_total(self):
        section = Section.model_validate({
            "category": "elements",
            "items": [{"quantity": 2, "unitPrice": 100}, {"quantity": 1, "unitPrice": 50}],
        })
        assert section.total == 250

    def test_invalid_item_in_section(self):
        with pytest.raises(InvalidInputError):
            parse_sections([{"category": "elements", "items": [{"quantity": -5}]}])
