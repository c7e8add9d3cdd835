"""Cloud Function entry points for ElementQuote.

Provides HTTP endpoints for:
- Calculating (and storing) the pricing of a quotation
- Post-calculation of realized costs against the budget
- Recording and removing cost entries
- Quotation status transitions
- AI invoice analysis (cost entry suggestions)
"""

import asyncio
import json
import math
from typing import Dict, Any, Optional
from datetime import datetime, date

import structlog
from firebase_functions import https_fn, options
from firebase_admin import initialize_app
from pydantic import ValidationError as PydanticValidationError

from config.errors import ElementQuoteError, ErrorCode, InvalidInputError, ValidationError
from models.cost_entry import parse_cost_entry
from models.quotation import Quotation
from services.firestore_service import FirestoreService
from services.invoice_analysis_service import InvoiceAnalysisService
from services.payment_schedule import build_payment_schedule, recalculate_amounts
from services.pricing_aggregator import PricingAggregator
from services.quotation_state import transition_status
from services.reconciler import reconcile
from utils.pricing_logger import log_pricing_summary, log_reconciliation_summary

# Initialize Firebase Admin SDK
try:
    initialize_app()
except ValueError:
    # Already initialized
    pass

logger = structlog.get_logger()

# Shared across warm invocations of the same instance
pricing_aggregator = PricingAggregator()

ENDPOINT_CONFIG = {
    "timeout_sec": 60,
    "memory": options.MemoryOption.MB_256,
    "region": "europe-north1",
}

# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Extract JSON from request body.

    Raises:
        ValidationError: If JSON is invalid.
    """
    try:
        return req.get_json(force=True) or {}
    except Exception as e:
        raise ValidationError(
            message=f"Invalid JSON in request body: {str(e)}"
        )


def require_field(data: Dict[str, Any], field: str) -> Any:
    value = data.get(field)
    if value in (None, ""):
        raise ElementQuoteError(
            code=ErrorCode.MISSING_FIELD,
            message=f"Missing {field} in request",
            details={"field": field}
        )
    return value


def parse_threshold(value: Any) -> Optional[float]:
    """Parse an optional at-risk threshold (margin percentage points).

    Raises:
        InvalidInputError: If the value is not a finite, non-negative number.
    """
    if value is None or value == "":
        return None
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(
            "Invalid atRiskThreshold",
            errors=[f"atRiskThreshold: not a number: {value!r}"]
        )
    if isinstance(value, bool) or not math.isfinite(threshold) or threshold < 0:
        raise InvalidInputError(
            "Invalid atRiskThreshold",
            errors=[f"atRiskThreshold: must be a non-negative number: {value!r}"]
        )
    return threshold


STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.MISSING_FIELD: 400,
    ErrorCode.INVALID_FIELD: 400,
    ErrorCode.QUOTATION_FROZEN: 409,
    ErrorCode.INVALID_STATUS_TRANSITION: 409,
    ErrorCode.QUOTATION_NOT_FOUND: 404,
    ErrorCode.COST_ENTRY_NOT_FOUND: 404,
    ErrorCode.VERSION_NOT_FOUND: 404,
    ErrorCode.TEMPLATE_NOT_FOUND: 404,
    ErrorCode.LLM_RATE_LIMIT: 429,
}


def _handle(req: https_fn.Request, handler, event: str) -> https_fn.Response:
    """Run an async handler with the shared CORS, envelope and error mapping."""
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        result = asyncio.run(handler(data))
        return _json_response(success_response(result))

    except ElementQuoteError as e:
        logger.warning(f"{event}_rejected", code=e.code, message=e.message)
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=STATUS_BY_CODE.get(e.code, 500)
        )
    except Exception as e:
        logger.exception(f"{event}_error", error=str(e))
        return _json_response(
            error_response(ErrorCode.INTERNAL_ERROR, f"Internal error: {str(e)}"),
            status=500
        )


# ============================================================================
# Pricing
# ============================================================================


@https_fn.on_request(**ENDPOINT_CONFIG)
def calculate_pricing(req: https_fn.Request) -> https_fn.Response:
    """Calculate the pricing of a quotation.

    Request body (stored quotation, pricing is saved back):
    {
        "quotationId": "q-123"
    }

    or (preview, nothing is stored):
    {
        "quotation": {...}
    }

    Response:
    {
        "success": true,
        "data": {"pricing": {...}, "paymentSchedule": [...]}
    }
    """
    return _handle(req, _calculate_pricing_async, "calculate_pricing")


async def _calculate_pricing_async(data: Dict[str, Any]) -> Dict[str, Any]:
    quotation_id: Optional[str] = data.get("quotationId")
    firestore_service = FirestoreService()

    if quotation_id:
        quotation = await firestore_service.require_quotation(quotation_id)
    else:
        raw = require_field(data, "quotation")
        try:
            quotation = Quotation.model_validate(raw)
        except PydanticValidationError as e:
            errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise InvalidInputError("Invalid quotation", errors=errors)

    pricing = pricing_aggregator.calculate(quotation)
    if quotation.payment_schedule:
        schedule = recalculate_amounts(quotation.payment_schedule, pricing.total_with_vat)
    else:
        schedule = build_payment_schedule(quotation.building_type, pricing.total_with_vat)

    if quotation_id:
        await firestore_service.save_pricing(quotation_id, pricing)
    log_pricing_summary(pricing, quotation_id)

    return {
        "pricing": pricing.to_dict(),
        "paymentSchedule": [m.model_dump(by_alias=True, mode="json") for m in schedule],
    }


# ============================================================================
# Post-calculation
# ============================================================================


@https_fn.on_request(**ENDPOINT_CONFIG)
def reconcile_costs(req: https_fn.Request) -> https_fn.Response:
    """Compare realized cost entries with the quotation budget.

    Request body:
    {
        "quotationId": "q-123",
        "atRiskThreshold": 5  // Optional
    }
    """
    return _handle(req, _reconcile_costs_async, "reconcile_costs")


async def _reconcile_costs_async(data: Dict[str, Any]) -> Dict[str, Any]:
    quotation_id = require_field(data, "quotationId")
    quotation = await FirestoreService().require_quotation(quotation_id)

    pricing = pricing_aggregator.calculate(quotation)
    report = reconcile(
        pricing, quotation.cost_entries, parse_threshold(data.get("atRiskThreshold"))
    )
    log_reconciliation_summary(report, quotation_id)
    return report.to_dict()


@https_fn.on_request(**ENDPOINT_CONFIG)
def add_cost_entry(req: https_fn.Request) -> https_fn.Response:
    """Record a realized cost.

    Request body:
    {
        "quotationId": "q-123",
        "entry": {"date": "2026-03-01", "category": "elements", "amount": 1200, ...}
    }
    """
    return _handle(req, _add_cost_entry_async, "add_cost_entry")


async def _add_cost_entry_async(data: Dict[str, Any]) -> Dict[str, Any]:
    quotation_id = require_field(data, "quotationId")
    entry = parse_cost_entry(require_field(data, "entry"))

    firestore_service = FirestoreService()
    await firestore_service.require_quotation(quotation_id)
    await firestore_service.add_cost_entry(quotation_id, entry)
    return entry.to_dict()


@https_fn.on_request(**ENDPOINT_CONFIG)
def delete_cost_entry(req: https_fn.Request) -> https_fn.Response:
    """Remove a cost entry.

    Request body:
    {
        "quotationId": "q-123",
        "entryId": "abc"
    }
    """
    return _handle(req, _delete_cost_entry_async, "delete_cost_entry")


async def _delete_cost_entry_async(data: Dict[str, Any]) -> Dict[str, Any]:
    quotation_id = require_field(data, "quotationId")
    entry_id = require_field(data, "entryId")
    await FirestoreService().delete_cost_entry(quotation_id, entry_id)
    return {"quotationId": quotation_id, "entryId": entry_id, "deleted": True}


# ============================================================================
# Quotation workflow
# ============================================================================


@https_fn.on_request(**ENDPOINT_CONFIG)
def transition_quotation_status(req: https_fn.Request) -> https_fn.Response:
    """Move a quotation to a new status.

    Request body:
    {
        "quotationId": "q-123",
        "status": "sent"
    }
    """
    return _handle(req, _transition_status_async, "transition_quotation_status")


async def _transition_status_async(data: Dict[str, Any]) -> Dict[str, Any]:
    quotation_id = require_field(data, "quotationId")
    target = require_field(data, "status")

    firestore_service = FirestoreService()
    quotation = await firestore_service.require_quotation(quotation_id)
    updated = transition_status(quotation, target)
    await firestore_service.save_quotation(updated)
    return {"quotationId": quotation_id, "status": updated.status.value}


# ============================================================================
# AI invoice analysis
# ============================================================================


@https_fn.on_request(
    timeout_sec=120,
    memory=options.MemoryOption.MB_512,
    region="europe-north1"
)
def analyze_invoice(req: https_fn.Request) -> https_fn.Response:
    """Suggest a cost entry from a supplier invoice.

    Request body:
    {
        "text": "...",  // Optional: invoice text
        "images": [{"mimeType": "image/jpeg", "base64Data": "..."}]  // Optional
    }

    The suggestion is not stored; the client confirms it via add_cost_entry.
    """
    return _handle(req, _analyze_invoice_async, "analyze_invoice")


async def _analyze_invoice_async(data: Dict[str, Any]) -> Dict[str, Any]:
    service = InvoiceAnalysisService()
    analysis = await service.analyze(data.get("text") or "", data.get("images"))
    return {
        "analysis": analysis.model_dump(by_alias=True, mode="json"),
        "suggestedEntry": analysis.to_cost_entry().to_dict(),
    }


# ============================================================================
# Response helpers
# ============================================================================


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_default(o: Any):
    """Serialize Firestore timestamps and dates as ISO strings."""
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if hasattr(o, "isoformat"):
        return o.isoformat()
    return str(o)


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Return JSON response with CORS headers."""
    return https_fn.Response(
        json.dumps(data, default=_json_default),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
