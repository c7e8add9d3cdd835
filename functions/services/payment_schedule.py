"""Payment schedule service.

Milestone templates per building type and instalment amounts derived from
the quotation's total including VAT.
"""

from typing import Dict, List, Sequence, Tuple

import structlog

from config.errors import InvalidInputError
from models.quotation import PaymentMilestone

logger = structlog.get_logger(__name__)

SIGNING = "Erääntyy kun toimitussopimus on allekirjoitettu"
PRE_PRODUCTION = "Erääntyy 7 vrk. ennen kuin valmistus alkaa tehtaalla"
FACTORY_READY = "Erääntyy kun elementit valmiina tehtaalla"
INSTALLATION_START = "Erääntyy kun asennus alkaa työmaalla"
COMPLETION = "Erääntyy kun kohde toimitussopimuksen mukaisesti valmiina"

# (description, trigger, percentage)
MilestoneTemplate = Tuple[str, str, float]

PAYMENT_SCHEDULE_TEMPLATES: Dict[str, List[MilestoneTemplate]] = {
    "loma-asunto": [
        (SIGNING, "signing", 10),
        ("Erääntyy 7 vrk. ennen kuin loma-asunnon valmistus alkaa tehtaalla", "pre-production", 30),
        ("Erääntyy 7 vrk. ennen kuin talousrakennuksen valmistus alkaa tehtaalla", "pre-production", 20),
        ("Erääntyy kun loma-asunnon asennus alkaa työmaalla", "installation-start", 20),
        ("Erääntyy kun talousrakennuksen asennus alkaa työmaalla", "installation-start", 10),
        (COMPLETION, "completion", 10),
    ],
    "omakotitalo": [
        (SIGNING, "signing", 25),
        (PRE_PRODUCTION, "pre-production", 25),
        (FACTORY_READY, "factory-ready", 20),
        (INSTALLATION_START, "installation-start", 20),
        (COMPLETION, "completion", 10),
    ],
    "varastohalli": [
        (SIGNING, "signing", 15),
        (PRE_PRODUCTION, "pre-production", 30),
        (FACTORY_READY, "factory-ready", 30),
        (INSTALLATION_START, "installation-start", 15),
        (COMPLETION, "completion", 10),
    ],
    "sauna": [
        (SIGNING, "signing", 10),
        (PRE_PRODUCTION, "pre-production", 40),
        (FACTORY_READY, "factory-ready", 40),
        (COMPLETION, "completion", 10),
    ],
    # Row houses are scheduled per project
    "rivitalo": [],
}

PERCENTAGE_TOLERANCE = 0.01


def milestone_amount(total_with_vat: float, percentage: float) -> float:
    return round(total_with_vat * percentage / 100, 2)


def build_payment_schedule(building_type: str, total_with_vat: float) -> List[PaymentMilestone]:
    """Milestones of the building type's template with amounts filled in.

    Unknown building types get an empty schedule.
    """
    template = PAYMENT_SCHEDULE_TEMPLATES.get(building_type)
    if template is None:
        logger.warning("unknown_payment_schedule_template", building_type=building_type)
        return []

    return [
        PaymentMilestone(
            id=f"milestone-{order}",
            order=order,
            description=description,
            trigger=trigger,
            percentage=percentage,
            amount=milestone_amount(total_with_vat, percentage),
        )
        for order, (description, trigger, percentage) in enumerate(template, start=1)
    ]


def validate_percentages(milestones: Sequence[PaymentMilestone]) -> None:
    """Raise InvalidInputError unless a non-empty schedule sums to 100 %."""
    if not milestones:
        return
    total = sum(m.percentage for m in milestones)
    if abs(total - 100) > PERCENTAGE_TOLERANCE:
        raise InvalidInputError(
            "Payment schedule percentages must sum to 100",
            errors=[f"percentage: sum is {total:g}"],
        )


def recalculate_amounts(
    milestones: Sequence[PaymentMilestone],
    total_with_vat: float,
) -> List[PaymentMilestone]:
    """Recompute milestone amounts after a price change.

    Raises:
        InvalidInputError: If percentages do not sum to 100.
    """
    validate_percentages(milestones)
    ordered = sorted(milestones, key=lambda m: m.order)
    return [
        m.model_copy(update={"amount": milestone_amount(total_with_vat, m.percentage)})
        for m in ordered
    ]
