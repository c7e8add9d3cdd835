"""Unit tests for the pricing demo script."""

import pytest

from demo_pricing import build_demo_quotation, run_demo
from models.pricing import CostCategory
from models.quotation import Quotation
from tests.fixtures.mock_quotation_data import SAMPLE_COST_ENTRIES, SAMPLE_QUOTATION


class TestDemoPricing:
    def test_demo_quotation_has_calculated_items(self):
        quotation = build_demo_quotation()
        assert [s.id for s in quotation.sections] == ["section-ext-walls", "section-roof"]
        assert quotation.delivery.transportation.truck_count == 2

    def test_run_demo_without_costs(self):
        result = run_demo(build_demo_quotation())
        pricing = result["pricing"]
        assert pricing["breakdown"][CostCategory.TRANSPORTATION.value]["cost"] == pytest.approx(180 * 2 * 2.2 * 2)
        assert len(result["paymentSchedule"]) == 5
        assert "reconciliation" not in result

    def test_run_demo_with_costs(self):
        result = run_demo(Quotation.model_validate(SAMPLE_QUOTATION), SAMPLE_COST_ENTRIES)
        assert result["quotationId"] == "q-123"
        assert result["reconciliation"]["realizedTotal"] == pytest.approx(15500)
