from fastapi import APIRouter, Depends

from invoicer.dependencies.services import get_advancer, get_schedule_service
from invoicer.schemas.schedule import (
    BillingSchedule,
    GenerateInvoiceResponse,
    NextBillingDateRequest,
    NextBillingDateResponse,
    RecurringRevenueResponse,
    ScheduleAdvance,
    ScheduleListRequest,
    ScheduleListResponse,
    ScheduleLookupRequest,
    UpcomingInvoicesRequest,
    UpcomingInvoicesResponse,
)
from invoicer.services import BillingScheduleAdvancer, BillingScheduleService
from invoicer.services.exceptions import ServiceError
from invoicer.tools.errors import to_http_error

router = APIRouter()


@router.post("/list", response_model=ScheduleListResponse)
async def list_schedules(
    req: ScheduleListRequest,
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.list(req)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/get", response_model=BillingSchedule)
async def get_schedule(
    req: ScheduleLookupRequest,
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.get(req.schedule_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/pause", response_model=BillingSchedule)
async def pause_schedule(
    req: ScheduleLookupRequest,
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.pause(req.schedule_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/resume", response_model=BillingSchedule)
async def resume_schedule(
    req: ScheduleLookupRequest,
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.resume(req.schedule_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/upcoming", response_model=UpcomingInvoicesResponse)
async def upcoming_invoices(
    req: UpcomingInvoicesRequest,
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.upcoming(req.days)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.get("/revenue", response_model=RecurringRevenueResponse)
async def recurring_revenue(
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.recurring_revenue()
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/advance", response_model=ScheduleAdvance)
async def advance_schedule(
    req: ScheduleLookupRequest,
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.advance(req.schedule_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/generate-invoice", response_model=GenerateInvoiceResponse)
async def generate_invoice(
    req: ScheduleLookupRequest,
    service: BillingScheduleService = Depends(get_schedule_service),
):
    try:
        return await service.generate_invoice(req.schedule_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/next-date", response_model=NextBillingDateResponse)
async def preview_next_date(
    req: NextBillingDateRequest,
    advancer: BillingScheduleAdvancer = Depends(get_advancer),
):
    from_date = req.from_date or advancer.today()
    try:
        next_date = advancer.compute_next_billing_date(
            req.frequency, req.billing_day, req.billing_cycle, from_date
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return NextBillingDateResponse(
        frequency=req.frequency, from_date=from_date, next_billing_date=next_date
    )
