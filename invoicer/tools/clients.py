from fastapi import APIRouter, Depends

from invoicer.dependencies.services import get_client_service
from invoicer.schemas.client import Client, ClientListResponse, ClientLookupRequest
from invoicer.services import ClientService
from invoicer.services.exceptions import ServiceError
from invoicer.tools.errors import to_http_error

router = APIRouter()


@router.post("/list", response_model=ClientListResponse)
async def list_clients(
    service: ClientService = Depends(get_client_service),
):
    try:
        return await service.list()
    except ServiceError as exc:
        raise to_http_error(exc) from exc


@router.post("/get", response_model=Client)
async def get_client(
    req: ClientLookupRequest,
    service: ClientService = Depends(get_client_service),
):
    try:
        return await service.get(req.client_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
