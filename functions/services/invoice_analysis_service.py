"""AI invoice analysis for post-calculation.

Sends an invoice (text or images) to the LLM and turns the extracted
fields into a CostEntry suggestion.
"""

from typing import Dict, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config.errors import ElementQuoteError, ErrorCode
from models.cost_entry import CostEntry
from models.invoice_analysis import InvoiceAnalysis
from services.llm_service import LLMService

logger = structlog.get_logger(__name__)


INVOICE_SYSTEM_PROMPT = """Olet rakennusalan kirjanpitäjä. Analysoi annettu lasku ja palauta JSON-muodossa seuraavat tiedot:
{
  "supplier": "Toimittajan nimi",
  "date": "YYYY-MM-DD",
  "totalAmount": kokonaissumma numeroina (ilman €-merkkiä, ALV 0%),
  "category": "Yksi seuraavista: elements, trusses, products, installation, transportation, design, other",
  "description": "Lyhyt kuvaus laskun sisällöstä",
  "items": [
    {"description": "Tuotteen/työn kuvaus", "amount": summa numeroina, "category": "vapaaehtoinen kategoria"}
  ]
}

Kategorisoi lasku seuraavasti:
- elements: Puuelementit, seinät, lattiat (tehdastuotanto)
- trusses: Ristikot
- products: Ikkunat, ovet, materiaalit
- installation: Asennustyöt, työvoima
- transportation: Kuljetus, logistiikka
- design: Suunnittelu, piirustukset
- other: Muut kulut"""


class InvoiceAnalysisService:
    """Extracts cost entry suggestions from supplier invoices."""

    def __init__(self, llm_service: Optional[LLMService] = None):
        self.llm = llm_service or LLMService()

    async def analyze(
        self,
        invoice_text: str = "",
        images: Optional[List[Dict[str, str]]] = None,
    ) -> InvoiceAnalysis:
        """Analyse an invoice.

        Args:
            invoice_text: Invoice text (OCR output or pasted content).
            images: Invoice images as {"mimeType", "base64Data"} dicts.

        Returns:
            Validated InvoiceAnalysis.

        Raises:
            ElementQuoteError: On LLM failure or an unusable response.
        """
        if not invoice_text and not images:
            raise ElementQuoteError(
                code=ErrorCode.MISSING_FIELD,
                message="Invoice text or image is required",
            )

        user_message = invoice_text or "Analysoi liitteenä oleva lasku."
        result = await self.llm.generate_json(INVOICE_SYSTEM_PROMPT, user_message, images=images)

        try:
            analysis = InvoiceAnalysis.model_validate(result["content"])
        except PydanticValidationError as e:
            raise ElementQuoteError(
                code=ErrorCode.LLM_INVALID_JSON,
                message="Invoice analysis has invalid fields",
                details={"errors": [err["msg"] for err in e.errors()]},
            )

        logger.info(
            "invoice_analyzed",
            supplier=analysis.supplier,
            category=analysis.category.value,
            total_amount=analysis.total_amount,
            tokens_used=result["tokens_used"],
        )
        return analysis

    async def suggest_cost_entry(
        self,
        invoice_text: str = "",
        images: Optional[List[Dict[str, str]]] = None,
    ) -> CostEntry:
        """Analyse an invoice and return the CostEntry to confirm."""
        analysis = await self.analyze(invoice_text, images)
        return analysis.to_cost_entry()
