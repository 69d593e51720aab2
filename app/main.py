import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import system
from app.api.router import api_router
from app.core.config import get_settings
from app.core.crypto import PayloadCodec
from app.core.errors import register_error_handlers
from app.core.security import TokenService
from app.db.base import Base
from app.db.session import get_engine
from app.models import Company, Device, Location  # noqa: F401
from app.services.abuse import AntiAbuseGuard
from app.services.registry import TenantPolicy

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if settings.auto_create_schema:
            Base.metadata.create_all(bind=get_engine())
            logger.info("Database schema ensured")
        logger.info("%s %s started (env=%s)", settings.app_name, settings.app_version, settings.app_env)
        yield

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    app.state.settings = settings
    app.state.token_service = TokenService.from_settings(settings)
    app.state.payload_codec = PayloadCodec.from_settings(settings)
    app.state.abuse_guard = AntiAbuseGuard.from_settings(settings)
    app.state.tenant_policy = TenantPolicy.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(system.router)
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()
