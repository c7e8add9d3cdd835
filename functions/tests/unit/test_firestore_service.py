"""Unit tests for Firestore service."""

import datetime as dt

import pytest
from unittest.mock import AsyncMock, MagicMock

from config.errors import ElementQuoteError, ErrorCode, InvalidInputError
from models.cost_entry import CostEntry
from models.pricing import PricingSettings
from models.quotation import QuotationStatus
from services.pricing_aggregator import PricingAggregator
from tests.conftest import make_doc


def quotation_ref(service):
    return service.db.collection.return_value.document.return_value


def cost_entries_ref(service):
    return quotation_ref(service).collection.return_value


class TestQuotations:
    """Tests for quotation persistence."""

    @pytest.mark.asyncio
    async def test_get_quotation_exists(self, mock_firestore_service):
        """Test getting an existing quotation with its cost entries."""
        cost_entries_ref(mock_firestore_service).stream.return_value = [
            make_doc("e1", {"category": "elements", "amount": 500, "date": "2026-03-01"}),
        ]

        result = await mock_firestore_service.get_quotation("q-123")

        assert result is not None
        assert result.id == "q-123"
        assert result.status == QuotationStatus.DRAFT
        assert result.building_type == "omakotitalo"
        assert [e.id for e in result.cost_entries] == ["e1"]

    @pytest.mark.asyncio
    async def test_get_quotation_ignores_stored_pricing(self, mock_firestore_service):
        quotation_ref(mock_firestore_service).get = AsyncMock(
            return_value=make_doc("q-9", {"status": "sent", "pricing": {"totalWithVat": 1}})
        )

        result = await mock_firestore_service.get_quotation("q-9")

        assert result.id == "q-9"
        assert result.status == QuotationStatus.SENT

    @pytest.mark.asyncio
    async def test_get_quotation_not_exists(self, mock_firestore_service):
        quotation_ref(mock_firestore_service).get = AsyncMock(
            return_value=make_doc("missing", None, exists=False)
        )

        assert await mock_firestore_service.get_quotation("missing") is None

    @pytest.mark.asyncio
    async def test_require_quotation_not_found(self, mock_firestore_service):
        quotation_ref(mock_firestore_service).get = AsyncMock(
            return_value=make_doc("missing", None, exists=False)
        )

        with pytest.raises(ElementQuoteError) as exc_info:
            await mock_firestore_service.require_quotation("missing")

        assert exc_info.value.code == ErrorCode.QUOTATION_NOT_FOUND

    @pytest.mark.asyncio
    async def test_get_quotation_firestore_failure(self, mock_firestore_service):
        quotation_ref(mock_firestore_service).get = AsyncMock(side_effect=Exception("unavailable"))

        with pytest.raises(ElementQuoteError) as exc_info:
            await mock_firestore_service.get_quotation("q-123")

        assert exc_info.value.code == ErrorCode.FIRESTORE_ERROR

    @pytest.mark.asyncio
    async def test_save_quotation(self, mock_firestore_service, sample_quotation, sample_cost_entries):
        quotation = sample_quotation.model_copy(update={"cost_entries": sample_cost_entries})
        pricing = PricingAggregator(max_entries=0).calculate(quotation)

        doc_id = await mock_firestore_service.save_quotation(quotation, pricing)

        assert doc_id == "q-123"
        args, kwargs = quotation_ref(mock_firestore_service).set.call_args
        data = args[0]
        assert kwargs == {"merge": True}
        assert "costEntries" not in data
        assert "id" not in data
        assert data["pricing"]["totalWithVat"] == pytest.approx(pricing.total_with_vat)
        assert data["pricingSettings"]["commissionPercentage"] == 4

    @pytest.mark.asyncio
    async def test_save_quotation_failure(self, mock_firestore_service, sample_quotation):
        quotation_ref(mock_firestore_service).set = AsyncMock(side_effect=Exception("denied"))

        with pytest.raises(ElementQuoteError) as exc_info:
            await mock_firestore_service.save_quotation(sample_quotation)

        assert exc_info.value.code == ErrorCode.FIRESTORE_WRITE_FAILED

    @pytest.mark.asyncio
    async def test_save_pricing(self, mock_firestore_service, sample_quotation):
        pricing = PricingAggregator(max_entries=0).calculate(sample_quotation)

        await mock_firestore_service.save_pricing("q-123", pricing)

        data = quotation_ref(mock_firestore_service).update.call_args[0][0]
        assert data["pricing"]["sellingPriceExVat"] == pytest.approx(pricing.selling_price_ex_vat)


class TestCostEntries:
    """Tests for the cost entry subcollection."""

    @pytest.mark.asyncio
    async def test_add_cost_entry(self, mock_firestore_service):
        entry = CostEntry(id="e1", category="trusses", amount=900, supplier="Ristikko Oy")

        entry_id = await mock_firestore_service.add_cost_entry("q-123", entry)

        assert entry_id == "e1"
        cost_entries_ref(mock_firestore_service).document.assert_called_with("e1")
        data = quotation_ref(mock_firestore_service).set.call_args[0][0]
        assert data["category"] == "trusses"
        assert data["supplier"] == "Ristikko Oy"
        assert "createdAt" in data

    @pytest.mark.asyncio
    async def test_update_cost_entry(self, mock_firestore_service):
        quotation_ref(mock_firestore_service).get = AsyncMock(return_value=make_doc(
            "e1",
            {"category": "trusses", "amount": 900, "date": "2026-03-01", "createdAt": "ts"},
        ))

        entry = await mock_firestore_service.update_cost_entry("q-123", "e1", {"amount": 950})

        assert entry.id == "e1"
        assert entry.amount == 950
        assert entry.date == dt.date(2026, 3, 1)
        quotation_ref(mock_firestore_service).set.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_cost_entry_not_found(self, mock_firestore_service):
        quotation_ref(mock_firestore_service).get = AsyncMock(
            return_value=make_doc("e1", None, exists=False)
        )

        with pytest.raises(ElementQuoteError) as exc_info:
            await mock_firestore_service.update_cost_entry("q-123", "e1", {"amount": 1})

        assert exc_info.value.code == ErrorCode.COST_ENTRY_NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_cost_entry_invalid(self, mock_firestore_service):
        quotation_ref(mock_firestore_service).get = AsyncMock(
            return_value=make_doc("e1", {"amount": 10})
        )

        with pytest.raises(InvalidInputError):
            await mock_firestore_service.update_cost_entry("q-123", "e1", {"amount": -5})

    @pytest.mark.asyncio
    async def test_delete_cost_entry(self, mock_firestore_service):
        await mock_firestore_service.delete_cost_entry("q-123", "e1")

        quotation_ref(mock_firestore_service).delete.assert_called_once()

    @pytest.mark.asyncio
    async def test_list_cost_entries_newest_first(self, mock_firestore_service):
        cost_entries_ref(mock_firestore_service).stream.return_value = [
            make_doc("old", {"amount": 1, "date": "2026-01-10"}),
            make_doc("new", {"amount": 2, "date": "2026-05-02", "createdAt": "ts"}),
            make_doc("mid", {"amount": 3, "date": "2026-03-15"}),
        ]

        entries = await mock_firestore_service.list_cost_entries("q-123")

        assert [e.id for e in entries] == ["new", "mid", "old"]


class TestPricingTemplates:
    """Tests for pricing template persistence."""

    @pytest.mark.asyncio
    async def test_save_template(self, mock_firestore_service):
        settings = PricingSettings(commission_percentage=3.0)

        template_id = await mock_firestore_service.save_pricing_template(
            "Perus", settings, template_id="tpl-1"
        )

        assert template_id == "q-123"
        data = quotation_ref(mock_firestore_service).set.call_args[0][0]
        assert data["name"] == "Perus"
        assert data["isDefault"] is False
        assert data["commissionPercentage"] == 3.0
        mock_firestore_service.db.batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_default_template_clears_other_defaults(self, mock_firestore_service):
        db = mock_firestore_service.db
        old_default = make_doc("tpl-old", {"isDefault": True})
        db.collection.return_value.where.return_value.stream.return_value = [old_default]
        batch = MagicMock()
        db.batch.return_value = batch

        await mock_firestore_service.save_pricing_template("Uusi", PricingSettings(), is_default=True)

        batch.update.assert_called_once_with(old_default.reference, {"isDefault": False})
        batch.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_list_templates_and_default(self, mock_firestore_service):
        mock_firestore_service.db.collection.return_value.stream.return_value = [
            make_doc("tpl-1", {"name": "Perus", "commissionPercentage": 4}),
            make_doc("tpl-2", {"name": "Kampanja", "isDefault": True, "commissionPercentage": 2}),
        ]

        templates = await mock_firestore_service.list_pricing_templates()
        default = await mock_firestore_service.get_default_pricing_template()

        assert [t["id"] for t in templates] == ["tpl-1", "tpl-2"]
        assert templates[0]["isDefault"] is False
        assert default.commission_percentage == 2

    @pytest.mark.asyncio
    async def test_no_default_template(self, mock_firestore_service):
        mock_firestore_service.db.collection.return_value.stream.return_value = []

        assert await mock_firestore_service.get_default_pricing_template() is None
