from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import get_session_factory

router = APIRouter(tags=["system"])


@router.get("/health")
def health(request: Request):
    settings = request.app.state.settings
    database = "ok"
    try:
        with get_session_factory()() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        database = "unavailable"
    return {"status": "ok", "version": settings.app_version, "database": database}


@router.get("/system/info")
def system_info(request: Request):
    settings = request.app.state.settings
    return {
        "app_name": settings.app_name,
        "app_env": settings.app_env,
        "app_version": settings.app_version,
        "token_expires": request.app.state.token_service.expires_in,
    }
