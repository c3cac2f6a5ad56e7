from fastapi import APIRouter, Depends

from invoicer.dependencies.services import get_invoice_service
from invoicer.schemas.billing import (
    InvoiceListRequest,
    InvoiceListResponse,
    InvoiceLookupRequest,
    InvoiceResponse,
)
from invoicer.services import InvoiceService
from invoicer.services.exceptions import ServiceError
from invoicer.tools.errors import to_http_error

router = APIRouter()


@router.post("/list", response_model=InvoiceListResponse)
async def list_invoices(
    req: InvoiceListRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.list(req)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/get", response_model=InvoiceResponse)
async def get_invoice(
    req: InvoiceLookupRequest,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.get(req.invoice_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
