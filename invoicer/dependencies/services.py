from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from invoicer.clients.backend import BackendClient
from invoicer.config import Settings, get_settings
from invoicer.services import (
    BillingScheduleAdvancer,
    BillingScheduleService,
    ClientService,
    InvoiceService,
)


@lru_cache(maxsize=1)
def get_backend_client_cached() -> BackendClient:
    settings = get_settings()
    return BackendClient(
        str(settings.backend_base_url) if settings.backend_base_url else None,
        timeout=settings.backend_timeout,
        use_mock_data=settings.use_mock_data,
        token=settings.backend_token,
    )


def get_backend_client(settings: Settings = Depends(get_settings)) -> BackendClient:
    return get_backend_client_cached()


def get_advancer(settings: Settings = Depends(get_settings)) -> BillingScheduleAdvancer:
    return BillingScheduleAdvancer(
        fallback_interval_days=settings.custom_interval_fallback_days,
        default_payment_terms=settings.default_payment_terms,
        default_currency=settings.default_currency,
    )


def get_client_service(
    client: BackendClient = Depends(get_backend_client),
) -> ClientService:
    return ClientService(client)


def get_invoice_service(
    client: BackendClient = Depends(get_backend_client),
) -> InvoiceService:
    return InvoiceService(client)


def get_schedule_service(
    client: BackendClient = Depends(get_backend_client),
    advancer: BillingScheduleAdvancer = Depends(get_advancer),
    invoices: InvoiceService = Depends(get_invoice_service),
    clients: ClientService = Depends(get_client_service),
    settings: Settings = Depends(get_settings),
) -> BillingScheduleService:
    return BillingScheduleService(
        client,
        advancer,
        invoices=invoices,
        clients=clients,
        upcoming_window_days=settings.upcoming_window_days,
        currency=settings.default_currency,
    )
