"""Unit tests for the truss and wall element calculators."""

import math

import pytest

from models.pricing import CostCategory
from services.quantity_calculators import (
    TrussInput,
    WallInput,
    calculate_truss,
    calculate_wall_elements,
    truss_line_item,
    wall_element_line_item,
)


class TestTrussCalculator:
    """Tests for roof truss quantities and prices."""

    def test_gable_truss(self):
        result = calculate_truss(TrussInput(type="gable", span=9.6, length=15.0, pitch=22, spacing=900))

        height = math.tan(math.radians(22)) * 4.8
        assert result.count == math.ceil(15.0 / 0.9) + 1 == 18
        assert result.height == pytest.approx(height)
        assert result.unit_price == pytest.approx(25 + 9.6 * 12 + height * 15)
        assert result.total_price == pytest.approx(result.unit_price * 18)
        assert result.label == "Harjaristikko"

    @pytest.mark.parametrize("truss_type,factor", [
        ("mono", 1.1),
        ("scissor", 1.35),
        ("portal", 1.8),
    ])
    def test_type_factor(self, truss_type, factor):
        base = calculate_truss(TrussInput(type="gable"))
        other = calculate_truss(TrussInput(type=truss_type))
        assert other.unit_price == pytest.approx(base.unit_price * factor)
        assert other.count == base.count

    @pytest.mark.parametrize("field", ["span", "length", "spacing"])
    def test_invalid_dimensions_give_zero_result(self, field):
        result = calculate_truss(TrussInput(**{field: 0}))
        assert result.count == 0
        assert result.total_price == 0

    def test_truss_line_item(self):
        item = truss_line_item(TrussInput(type="mono", span=6, length=10, pitch=10, spacing=1000))
        assert item.quantity == 11
        assert item.truss_type == "mono"
        assert item.resolve_category() == CostCategory.TRUSSES
        assert item.total_price == pytest.approx(item.quantity * item.unit_price)

    def test_no_line_item_for_invalid_dimensions(self):
        assert truss_line_item(TrussInput(span=0)) is None


class TestWallElementCalculator:
    """Tests for exterior wall element quantities."""

    def test_default_house(self):
        result = calculate_wall_elements(WallInput())
        assert result.perimeter == 40
        assert result.wall_area_gross == pytest.approx(112)
        assert result.wall_area_net == pytest.approx(104)
        assert result.floor_area == 96
        assert result.element_count == 14

    def test_two_floors(self):
        result = calculate_wall_elements(WallInput(floors=2, window_area=0))
        assert result.wall_area_gross == pytest.approx(224)
        assert result.floor_area == 192

    def test_wall_element_line_item(self):
        item = wall_element_line_item(WallInput())
        assert item.quantity == 14
        assert item.unit_price == 450
        assert item.net_area == pytest.approx(7.4)
        assert item.has_window_install
        assert item.window_count == 1
        assert item.total_price == pytest.approx(14 * 450 + 45)
        assert item.element_type == "Ulkoseinä US-198 (Laskettu)"

    def test_no_windows(self):
        item = wall_element_line_item(WallInput(window_count=0))
        assert not item.has_window_install
        assert item.total_price == pytest.approx(14 * 450)

    def test_openings_larger_than_walls(self):
        assert wall_element_line_item(WallInput(window_area=500)) is None
