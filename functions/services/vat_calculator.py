"""VAT calculator for ElementQuote.

Two modes exist: standard-rated sales and zero-rated construction services
(Finnish reverse charge for construction work, buyer accounts for the VAT).
"""

from typing import Any, Optional

import structlog

from config.settings import settings
from models.pricing import VatMode, VatResult

logger = structlog.get_logger(__name__)

CONSTRUCTION_SERVICE_VAT_PERCENTAGE = 0.0


def resolve_vat_mode(value: Any) -> VatMode:
    """Resolve a raw VAT mode.

    Unknown or missing modes fall back to STANDARD with a warning.
    """
    if isinstance(value, VatMode):
        return value
    try:
        return VatMode(value)
    except ValueError:
        logger.warning("invalid_vat_mode", vat_mode=value, fallback=VatMode.STANDARD.value)
        return VatMode.STANDARD


def vat_percentage_for(vat_mode: VatMode, standard_percentage: Optional[float] = None) -> float:
    """VAT percentage selected by mode."""
    if resolve_vat_mode(vat_mode) == VatMode.CONSTRUCTION_SERVICE:
        return CONSTRUCTION_SERVICE_VAT_PERCENTAGE
    if standard_percentage is None:
        standard_percentage = settings.vat_standard_percentage
    return standard_percentage


def calculate_vat(
    subtotal: float,
    vat_mode: Any,
    standard_percentage: Optional[float] = None,
) -> VatResult:
    """Apply VAT to a subtotal.

    Args:
        subtotal: VAT base (selling price excluding VAT).
        vat_mode: VatMode or its string value.
        standard_percentage: Override for the standard rate (default from settings).

    Returns:
        VatResult with vat_amount = subtotal * pct / 100 and
        total_with_vat = subtotal + vat_amount.
    """
    mode = resolve_vat_mode(vat_mode)
    percentage = vat_percentage_for(mode, standard_percentage)
    vat_amount = subtotal * percentage / 100

    return VatResult(
        vat_mode=mode,
        subtotal=subtotal,
        vat_percentage=percentage,
        vat_amount=vat_amount,
        total_with_vat=subtotal + vat_amount,
    )
