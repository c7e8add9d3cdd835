"""Pricing summary logger for ElementQuote.

Prints banner-framed pricing and post-calculation summaries that stand out
in function logs, and mirrors them as structured log events.
"""

from typing import List, Optional

import structlog

from models.pricing import CostCategory, PricingCalculation
from models.reconciliation import ReconciliationReport

logger = structlog.get_logger()

BANNER_WIDTH = 80
PRICING_BANNER_CHAR = "═"
RECONCILIATION_BANNER_CHAR = "─"
ALERT_BANNER_CHAR = "!"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _eur(amount: float) -> str:
    return f"{amount:>14,.2f} €"


def format_pricing_summary(pricing: PricingCalculation, quotation_id: Optional[str] = None) -> List[str]:
    """Summary lines of a pricing calculation, one row per category with cost."""
    lines = [
        PRICING_BANNER_CHAR * BANNER_WIDTH,
        _create_banner(PRICING_BANNER_CHAR, "PRICING CALCULATED"),
        PRICING_BANNER_CHAR * BANNER_WIDTH,
    ]
    if quotation_id:
        lines.append(f"║ Quotation ID      : {quotation_id}")

    for category in CostCategory:
        row = pricing.category(category)
        if row.cost:
            lines.append(
                f"║ {category.value:<16}: {_eur(row.cost)}  +{row.markup_percentage:g} %  → {_eur(row.selling_price)}"
            )

    lines += [
        PRICING_BANNER_CHAR * BANNER_WIDTH,
        f"║ Cost total        : {_eur(pricing.material_cost_total)}",
        f"║ Selling ex. VAT   : {_eur(pricing.selling_price_ex_vat)}",
        f"║ Profit            : {_eur(pricing.profit_amount)} ({pricing.profit_percent:.1f} %)",
        f"║ Commission        : {_eur(pricing.commission_amount)} ({pricing.commission_percentage:g} %)",
        f"║ VAT ({pricing.vat_mode.value}) : {_eur(pricing.vat_amount)} ({pricing.vat_percentage:g} %)",
        f"║ Total with VAT    : {_eur(pricing.total_with_vat)}",
        PRICING_BANNER_CHAR * BANNER_WIDTH,
    ]
    return lines


def log_pricing_summary(pricing: PricingCalculation, quotation_id: Optional[str] = None) -> None:
    print("\n")
    for line in format_pricing_summary(pricing, quotation_id):
        print(line)
    print("\n")

    logger.info(
        "pricing_summary_logged",
        quotation_id=quotation_id,
        selling_price_ex_vat=round(pricing.selling_price_ex_vat, 2),
        profit_percent=round(pricing.profit_percent, 2),
        total_with_vat=round(pricing.total_with_vat, 2)
    )


def format_reconciliation_summary(
    report: ReconciliationReport,
    quotation_id: Optional[str] = None
) -> List[str]:
    """Summary lines of a post-calculation, flagging overruns and risk."""
    char = ALERT_BANNER_CHAR if report.at_risk else RECONCILIATION_BANNER_CHAR
    title = "✗ POST-CALCULATION AT RISK" if report.at_risk else "POST-CALCULATION"

    lines = [char * BANNER_WIDTH, _create_banner(char, title), char * BANNER_WIDTH]
    if quotation_id:
        lines.append(f"║ Quotation ID      : {quotation_id}")

    for row in report.comparisons:
        if row.budget or row.realized:
            flag = "  OVERRUN" if row.is_overrun else ""
            lines.append(
                f"║ {row.category.value:<16}: {_eur(row.realized)} / {_eur(row.budget)} "
                f"({row.percent_used:.0f} %){flag}"
            )

    lines += [
        char * BANNER_WIDTH,
        f"║ Realized material : {_eur(report.realized_material_cost)}",
        f"║ Realized labor    : {_eur(report.realized_labor_cost)}",
        f"║ Realized profit   : {_eur(report.realized_profit)}",
        f"║ Margin            : {report.realized_margin_percent:.1f} % "
        f"(budget {report.budgeted_margin_percent:.1f} %)",
        char * BANNER_WIDTH,
    ]
    return lines


def log_reconciliation_summary(
    report: ReconciliationReport,
    quotation_id: Optional[str] = None
) -> None:
    print("\n")
    for line in format_reconciliation_summary(report, quotation_id):
        print(line)
    print("\n")

    log = logger.warning if report.at_risk else logger.info
    log(
        "reconciliation_summary_logged",
        quotation_id=quotation_id,
        realized_margin_percent=round(report.realized_margin_percent, 2),
        budgeted_margin_percent=round(report.budgeted_margin_percent, 2),
        at_risk=report.at_risk,
        overruns=[row.category.value for row in report.overruns]
    )
