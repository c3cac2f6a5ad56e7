# invoicer/health.py
from fastapi import APIRouter, Depends

from invoicer.clients.backend import BackendClient
from invoicer.dependencies.services import get_backend_client

router = APIRouter()


@router.get("/health")
def health(client: BackendClient = Depends(get_backend_client)):
    return {"ok": True, "mock_data": client.use_mock_data}
