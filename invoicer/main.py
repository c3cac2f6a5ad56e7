from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from invoicer.config import get_settings
from invoicer.dependencies.services import get_backend_client_cached
from invoicer.health import router as health_router
from invoicer.tools.clients import router as clients_router
from invoicer.tools.invoice import router as invoice_router
from invoicer.tools.schedules import router as schedules_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    settings_snapshot = settings.model_dump(exclude={"backend_token"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    client = get_backend_client_cached()
    logger.info(
        "Application startup complete (mock data: %s).", client.use_mock_data
    )

    try:
        yield
    finally:
        logger.info("Closing billing backend connection.")
        await client.close()
        logger.info("Application shutdown complete.")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(schedules_router, prefix="/tools/schedules")
app.include_router(invoice_router, prefix="/tools/invoice")
app.include_router(clients_router, prefix="/tools/clients")
app.include_router(health_router)
