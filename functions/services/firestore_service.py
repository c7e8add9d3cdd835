"""Firestore service for ElementQuote.

Persistence of quotations, their cost entries and pricing templates.

Data layout:
  /quotations/{quotationId}
  /quotations/{quotationId}/costEntries/{entryId}
  /pricingTemplates/{templateId}
"""

from typing import Dict, Any, Optional, List
import inspect
import structlog

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from config.errors import ElementQuoteError, ErrorCode
from models.cost_entry import CostEntry, parse_cost_entry
from models.pricing import PricingCalculation, PricingSettings
from models.quotation import Quotation

logger = structlog.get_logger()


class FirestoreService:
    """Service for Firestore operations.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    COLLECTION_QUOTATIONS = "quotations"
    COLLECTION_PRICING_TEMPLATES = "pricingTemplates"
    SUBCOLLECTION_COST_ENTRIES = "costEntries"

    def __init__(self, db=None):
        """Initialize FirestoreService.

        Args:
            db: Optional Firestore client. If not provided, uses default.
        """
        self._db = db

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    def _quotation_ref(self, quotation_id: str):
        return self.db.collection(self.COLLECTION_QUOTATIONS).document(quotation_id)

    def _cost_entries_ref(self, quotation_id: str):
        return self._quotation_ref(quotation_id).collection(self.SUBCOLLECTION_COST_ENTRIES)

    # =========================================================================
    # QUOTATIONS
    # =========================================================================

    async def get_quotation(self, quotation_id: str) -> Optional[Quotation]:
        """Fetch a quotation with its cost entries.

        Returns:
            Quotation or None if not found.

        Raises:
            ElementQuoteError: If Firestore operation fails.
        """
        try:
            doc = await self._maybe_await(self._quotation_ref(quotation_id).get())
            if not doc.exists:
                return None
            data = doc.to_dict() or {}
        except Exception as e:
            logger.error("firestore_get_failed", quotation_id=quotation_id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to get quotation: {str(e)}",
                details={"quotation_id": quotation_id}
            )

        entries = await self.list_cost_entries(quotation_id)
        data.pop("pricing", None)
        return Quotation.model_validate({**data, "id": doc.id, "costEntries": entries})

    async def require_quotation(self, quotation_id: str) -> Quotation:
        """Fetch a quotation, raising QUOTATION_NOT_FOUND if it does not exist."""
        quotation = await self.get_quotation(quotation_id)
        if quotation is None:
            raise ElementQuoteError(
                code=ErrorCode.QUOTATION_NOT_FOUND,
                message=f"Quotation not found: {quotation_id}",
                details={"quotation_id": quotation_id}
            )
        return quotation

    async def save_quotation(
        self,
        quotation: Quotation,
        pricing: Optional[PricingCalculation] = None
    ) -> str:
        """Create or overwrite a quotation document (last write wins).

        Cost entries live in their own subcollection and are not written here.

        Returns:
            The quotation document ID.
        """
        try:
            collection = self.db.collection(self.COLLECTION_QUOTATIONS)
            doc_ref = collection.document(quotation.id) if quotation.id else collection.document()

            data = quotation.to_dict()
            data.pop("costEntries", None)
            if pricing is not None:
                data["pricing"] = pricing.to_dict()
            data["updatedAt"] = firestore.SERVER_TIMESTAMP

            await self._maybe_await(doc_ref.set(data, merge=True))
            logger.info("quotation_saved", quotation_id=doc_ref.id, status=quotation.status.value)
            return doc_ref.id

        except Exception as e:
            logger.error("firestore_save_failed", quotation_id=quotation.id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save quotation: {str(e)}",
                details={"quotation_id": quotation.id}
            )

    async def save_pricing(self, quotation_id: str, pricing: PricingCalculation) -> None:
        """Store the derived pricing alongside the quotation."""
        try:
            await self._maybe_await(self._quotation_ref(quotation_id).update({
                "pricing": pricing.to_dict(),
                "updatedAt": firestore.SERVER_TIMESTAMP,
            }))
            logger.info(
                "pricing_saved",
                quotation_id=quotation_id,
                total_with_vat=round(pricing.total_with_vat, 2)
            )
        except Exception as e:
            logger.error("pricing_save_failed", quotation_id=quotation_id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save pricing: {str(e)}",
                details={"quotation_id": quotation_id}
            )

    # =========================================================================
    # COST ENTRIES
    # =========================================================================

    async def add_cost_entry(self, quotation_id: str, entry: CostEntry) -> str:
        """Store a realized cost entry.

        Returns:
            The entry document ID.
        """
        try:
            doc_ref = self._cost_entries_ref(quotation_id).document(entry.id)
            data = entry.to_dict()
            data["createdAt"] = firestore.SERVER_TIMESTAMP
            await self._maybe_await(doc_ref.set(data))
            logger.info(
                "cost_entry_added",
                quotation_id=quotation_id,
                entry_id=entry.id,
                category=entry.category.value,
                amount=entry.amount
            )
            return entry.id
        except Exception as e:
            logger.error("cost_entry_add_failed", quotation_id=quotation_id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to add cost entry: {str(e)}",
                details={"quotation_id": quotation_id}
            )

    async def update_cost_entry(
        self,
        quotation_id: str,
        entry_id: str,
        changes: Dict[str, Any]
    ) -> CostEntry:
        """Apply changes to a cost entry.

        Returns:
            The re-validated entry.

        Raises:
            ElementQuoteError: COST_ENTRY_NOT_FOUND if the entry does not exist.
            InvalidInputError: If the changed entry is invalid.
        """
        doc_ref = self._cost_entries_ref(quotation_id).document(entry_id)
        try:
            doc = await self._maybe_await(doc_ref.get())
        except Exception as e:
            logger.error("cost_entry_get_failed", quotation_id=quotation_id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to get cost entry: {str(e)}",
                details={"quotation_id": quotation_id, "entry_id": entry_id}
            )

        if not doc.exists:
            raise ElementQuoteError(
                code=ErrorCode.COST_ENTRY_NOT_FOUND,
                message=f"Cost entry not found: {entry_id}",
                details={"quotation_id": quotation_id, "entry_id": entry_id}
            )

        existing = doc.to_dict() or {}
        existing.pop("createdAt", None)
        entry = parse_cost_entry({**existing, **changes, "id": entry_id})

        try:
            await self._maybe_await(doc_ref.set(entry.to_dict(), merge=True))
        except Exception as e:
            logger.error("cost_entry_update_failed", quotation_id=quotation_id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to update cost entry: {str(e)}",
                details={"quotation_id": quotation_id, "entry_id": entry_id}
            )
        logger.info("cost_entry_updated", quotation_id=quotation_id, entry_id=entry_id)
        return entry

    async def delete_cost_entry(self, quotation_id: str, entry_id: str) -> None:
        try:
            await self._maybe_await(self._cost_entries_ref(quotation_id).document(entry_id).delete())
            logger.info("cost_entry_deleted", quotation_id=quotation_id, entry_id=entry_id)
        except Exception as e:
            logger.error("cost_entry_delete_failed", quotation_id=quotation_id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to delete cost entry: {str(e)}",
                details={"quotation_id": quotation_id, "entry_id": entry_id}
            )

    async def list_cost_entries(self, quotation_id: str) -> List[CostEntry]:
        """All cost entries of a quotation, newest first."""
        try:
            docs = self._cost_entries_ref(quotation_id).stream()
            entries = []
            for doc in docs:
                data = doc.to_dict() or {}
                data.pop("createdAt", None)
                entries.append(parse_cost_entry({**data, "id": doc.id}))
        except ElementQuoteError:
            raise
        except Exception as e:
            logger.error("cost_entries_list_failed", quotation_id=quotation_id, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list cost entries: {str(e)}",
                details={"quotation_id": quotation_id}
            )
        return sorted(entries, key=lambda e: e.date, reverse=True)

    # =========================================================================
    # PRICING TEMPLATES
    # =========================================================================

    async def _unset_default_templates(self, keep_id: Optional[str] = None) -> None:
        query = self.db.collection(self.COLLECTION_PRICING_TEMPLATES).where(
            filter=FieldFilter("isDefault", "==", True)
        )
        batch = self.db.batch()
        changed = 0
        for doc in query.stream():
            if doc.id == keep_id:
                continue
            batch.update(doc.reference, {"isDefault": False})
            changed += 1
        if changed:
            await self._maybe_await(batch.commit())

    async def save_pricing_template(
        self,
        name: str,
        pricing_settings: PricingSettings,
        is_default: bool = False,
        template_id: Optional[str] = None,
        description: Optional[str] = None
    ) -> str:
        """Create or update a pricing template.

        Saving a default template clears the default flag of all others.

        Returns:
            The template document ID.
        """
        try:
            collection = self.db.collection(self.COLLECTION_PRICING_TEMPLATES)
            doc_ref = collection.document(template_id) if template_id else collection.document()

            if is_default:
                await self._unset_default_templates(keep_id=doc_ref.id)

            data = {
                "name": name,
                "description": description,
                "isDefault": is_default,
                **pricing_settings.model_dump(by_alias=True, mode="json"),
                "updatedAt": firestore.SERVER_TIMESTAMP,
            }
            await self._maybe_await(doc_ref.set(data, merge=True))
            logger.info("pricing_template_saved", template_id=doc_ref.id, is_default=is_default)
            return doc_ref.id

        except Exception as e:
            logger.error("pricing_template_save_failed", name=name, error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save pricing template: {str(e)}",
                details={"template_id": template_id}
            )

    async def list_pricing_templates(self) -> List[Dict[str, Any]]:
        """All templates as dicts with "id", "name", "isDefault" and "settings"."""
        try:
            docs = self.db.collection(self.COLLECTION_PRICING_TEMPLATES).stream()
            templates = []
            for doc in docs:
                data = doc.to_dict() or {}
                templates.append({
                    "id": doc.id,
                    "name": data.get("name", ""),
                    "isDefault": bool(data.get("isDefault")),
                    "settings": PricingSettings.model_validate(data),
                })
            return templates
        except Exception as e:
            logger.error("pricing_templates_list_failed", error=str(e))
            raise ElementQuoteError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list pricing templates: {str(e)}"
            )

    async def get_default_pricing_template(self) -> Optional[PricingSettings]:
        """Settings of the default template, or None when no default exists."""
        for template in await self.list_pricing_templates():
            if template["isDefault"]:
                return template["settings"]
        return None
