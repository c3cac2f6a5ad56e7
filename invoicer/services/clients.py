from __future__ import annotations

import logging

from invoicer.clients.backend import BackendClient
from invoicer.schemas.client import Client, ClientListResponse
from invoicer.services.exceptions import ClientNotFound, ServiceError
from invoicer.services.mock_store import ClientRepository, get_mock_store

logger = logging.getLogger(__name__)


class ClientService:
    def __init__(
        self,
        client: BackendClient,
        *,
        repository: ClientRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().clients

    async def get(self, client_id: str) -> Client:
        logger.debug("Fetching client %s", client_id)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock client repository not configured")
            return await self._repository.get(client_id)

        try:
            data = await self._client.call("get_client", {"id": client_id})
            if not data:
                raise ClientNotFound(f"Client {client_id} not found")
            return Client(**data)
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while fetching client %s", client_id)
            raise ServiceError("Failed to fetch client", cause=exc)

    async def list(self) -> ClientListResponse:
        logger.info("Listing clients")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock client repository not configured")
            items = await self._repository.list()
            return ClientListResponse(total=len(items), items=items)

        try:
            data = await self._client.call("get_clients")
            items = [Client(**row) for row in data or []]
            return ClientListResponse(total=len(items), items=items)
        except ServiceError:
            raise
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Unexpected error while listing clients")
            raise ServiceError("Failed to list clients", cause=exc)
