"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI

from src.core.config import settings
from src.core.exceptions import register_exception_handlers
from src.modules.appointments.router import router as appointments_router
from src.modules.ledger.router import router as ledger_router
from src.modules.schedule.router import router as schedule_router
from src.modules.users.admin_router import router as admin_users_router
from src.modules.users.router import router as users_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version="0.1.0",
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(users_router)
    app.include_router(admin_users_router)
    app.include_router(schedule_router)
    app.include_router(appointments_router)
    app.include_router(ledger_router)

    logger.info("%s ready", settings.app_name)
    return app


app = create_app()
