"""Read-only aggregates across collections.

Reports never fail a request: a missing store or a store error degrades to a
zero count or an empty list.
"""

import logging
from collections import defaultdict

from records_api.database import Collection, DocumentStore
from records_api.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(
        self,
        store: DocumentStore | None,
        appointments_collection: str = "appointments",
        billing_collection: str = "billing",
    ) -> None:
        self.store = store
        self.appointments_collection = appointments_collection
        self.billing_collection = billing_collection

    def _collection(self, name: str) -> Collection | None:
        if self.store is None:
            return None
        return self.store.collection(name)

    async def appointments_summary(self) -> dict:
        appointments = self._collection(self.appointments_collection)
        if appointments is None:
            return {"total": 0}
        try:
            return {"total": await appointments.count({})}
        except StoreUnavailable as exc:
            logger.warning("Appointment report degraded: %s", exc)
            return {"total": 0}

    async def billing_by_status(self) -> list[dict]:
        """Sum invoice amounts per status, in first-seen status order."""
        billing = self._collection(self.billing_collection)
        if billing is None:
            return []
        try:
            invoices = await billing.find({})
        except StoreUnavailable as exc:
            logger.warning("Billing report degraded: %s", exc)
            return []

        totals: dict[str, float] = defaultdict(float)
        for invoice in invoices:
            totals[invoice.get("status")] += invoice.get("amount") or 0
        return [{"_id": status, "total": total} for status, total in totals.items()]

    async def provider_productivity(self) -> list:
        return []

    async def lab_turnaround(self) -> list:
        return []

    async def patient_growth(self) -> list:
        return []
