"""Utility modules for ElementQuote functions."""

from utils.pricing_logger import (
    format_pricing_summary,
    format_reconciliation_summary,
    log_pricing_summary,
    log_reconciliation_summary,
)

__all__ = [
    "format_pricing_summary",
    "format_reconciliation_summary",
    "log_pricing_summary",
    "log_reconciliation_summary",
]
