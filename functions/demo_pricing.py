#!/usr/bin/env python3
"""Demo script for the ElementQuote pricing engine.

This script:
1. Loads a quotation JSON (or builds one with the quantity calculators)
2. Prices it and prints the pricing summary
3. Reconciles optional cost entries against the budget
4. Writes the result as JSON

Usage:
    cd functions
    python demo_pricing.py
    python demo_pricing.py --input quotation.json --costs cost_entries.json --output result.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from models.pricing import CostCategory
from models.quotation import Quotation
from services.payment_schedule import build_payment_schedule
from services.pricing_aggregator import PricingAggregator
from services.quantity_calculators import (
    TrussInput,
    WallInput,
    truss_line_item,
    wall_element_line_item,
)
from services.quotation_state import add_cost_entry, add_line_item, create_quotation, update_delivery
from services.reconciler import reconcile
from utils.pricing_logger import log_pricing_summary, log_reconciliation_summary

# Configure logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ]
)
logger = structlog.get_logger()


# =============================================================================
# DEMO QUOTATION
# =============================================================================


def build_demo_quotation() -> Quotation:
    """Detached house priced from basic dimensions."""
    quotation = create_quotation("demo-1", building_type="omakotitalo")

    walls = wall_element_line_item(WallInput(width=9, length=14, window_count=8, window_area=14))
    trusses = truss_line_item(TrussInput(type="gable", span=9.0, length=14.0, pitch=27))

    if walls:
        quotation = add_line_item(
            quotation, "section-ext-walls", walls,
            section_title="Ulkoseinät", section_category=CostCategory.ELEMENTS,
        )
    if trusses:
        quotation = add_line_item(
            quotation, "section-roof", trusses,
            section_title="Kattoristikot", section_category=CostCategory.TRUSSES,
        )

    return update_delivery(quotation, {
        "assemblyLevelId": "shell-and-roof",
        "transportation": {"distanceKm": 180, "truckCount": 2},
    })


def load_json(path: Optional[str]) -> Any:
    if not path:
        return None
    input_path = Path(path)
    if not input_path.exists():
        print(f"❌ Error: Could not find {input_path}")
        sys.exit(1)
    with open(input_path, "r") as f:
        return json.load(f)


def run_demo(quotation: Quotation, cost_entries: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Price the quotation and reconcile any cost entries."""
    for entry in cost_entries or []:
        quotation = add_cost_entry(quotation, entry)

    pricing = PricingAggregator().calculate(quotation)
    log_pricing_summary(pricing, quotation.id)

    result: Dict[str, Any] = {
        "quotationId": quotation.id,
        "pricing": pricing.to_dict(),
        "paymentSchedule": [
            m.model_dump(by_alias=True, mode="json")
            for m in build_payment_schedule(quotation.building_type, pricing.total_with_vat)
        ],
    }

    if quotation.cost_entries:
        report = reconcile(pricing, quotation.cost_entries)
        log_reconciliation_summary(report, quotation.id)
        result["reconciliation"] = report.to_dict()

    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Price an ElementQuote quotation")
    parser.add_argument("--input", type=str, help="Path to quotation JSON")
    parser.add_argument("--costs", type=str, help="Path to cost entries JSON list")
    parser.add_argument("--output", type=str, help="Write the result JSON here")
    args = parser.parse_args()

    raw = load_json(args.input)
    quotation = Quotation.model_validate(raw) if raw else build_demo_quotation()
    result = run_demo(quotation, load_json(args.costs))

    output = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info("demo_result_written", path=args.output)
    else:
        print(output)


if __name__ == "__main__":
    main()
