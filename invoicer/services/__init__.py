"""Service package public API definitions.

Service implementations are imported lazily. ``invoicer.clients.backend``
imports ``invoicer.services.exceptions``, which executes this module first;
importing the services eagerly here would then import the backend client
again before it finished loading.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "BillingScheduleAdvancer",
    "BillingScheduleService",
    "ClientService",
    "InvoiceService",
]

_SERVICE_MODULES = {
    "BillingScheduleAdvancer": "advancer",
    "BillingScheduleService": "schedules",
    "ClientService": "clients",
    "InvoiceService": "invoice",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .advancer import BillingScheduleAdvancer as BillingScheduleAdvancer
    from .clients import ClientService as ClientService
    from .invoice import InvoiceService as InvoiceService
    from .schedules import BillingScheduleService as BillingScheduleService
