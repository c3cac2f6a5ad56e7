from __future__ import annotations

import logging

from invoicer.clients.backend import BackendClient
from invoicer.schemas.billing import (
    InvoiceDraft,
    InvoiceListRequest,
    InvoiceListResponse,
    InvoiceResponse,
)
from invoicer.services.exceptions import InvoiceNotFound, ServiceError
from invoicer.services.mock_store import InvoiceRepository, get_mock_store, invoice_total

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(
        self,
        client: BackendClient,
        *,
        repository: InvoiceRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().invoices

    async def create(self, draft: InvoiceDraft) -> InvoiceResponse:
        logger.info("Creating invoice for client %s", draft.client_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock invoice repository not configured")
            return await self._repository.create(draft)

        try:
            payload = draft.model_dump(mode="json")
            data = await self._client.call("create_invoice", payload)
            return InvoiceResponse(**{**self._draft_defaults(draft), **(data or {})})
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while creating invoice")
            raise ServiceError("Failed to create invoice", cause=exc)

    async def list(self, request: InvoiceListRequest) -> InvoiceListResponse:
        logger.info("Listing invoices for client %s", request.client_id or "<all>")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock invoice repository not configured")
            invoices = await self._repository.list(request.client_id)
            items = [InvoiceResponse(**invoice) for invoice in invoices]
            return InvoiceListResponse(total=len(items), items=items)

        try:
            filters = request.model_dump(exclude_none=True)
            data = await self._client.call("get_invoices", filters)
            items = [InvoiceResponse(**row) for row in data or []]
            return InvoiceListResponse(total=len(items), items=items)
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while listing invoices")
            raise ServiceError("Failed to list invoices", cause=exc)

    async def get(self, invoice_id: str) -> InvoiceResponse:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock invoice repository not configured")
            return InvoiceResponse(**await self._repository.get(invoice_id))

        try:
            data = await self._client.call("get_invoice", {"id": invoice_id})
            if not data:
                raise InvoiceNotFound(f"Invoice {invoice_id} not found")
            return InvoiceResponse(**data)
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while fetching invoice %s", invoice_id)
            raise ServiceError("Failed to fetch invoice", cause=exc)

    @staticmethod
    def _draft_defaults(draft: InvoiceDraft) -> dict:
        # The backend only echoes identifiers; fill the rest from what was sent.
        return {
            "client_id": draft.client_id,
            "currency": draft.currency,
            "total": invoice_total(draft),
            "date": draft.date,
            "due_date": draft.due_date,
            "schedule_id": draft.schedule_id,
        }
