from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.crypto import PayloadCodec
from app.core.errors import ServiceError
from app.core.security import DeviceClaims, TokenService
from app.db.session import get_db
from app.models.device import Device
from app.services.abuse import AntiAbuseGuard
from app.services.locations import LocationService
from app.services.registry import DeviceRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_payload_codec(request: Request) -> PayloadCodec:
    return request.app.state.payload_codec


def get_abuse_guard(request: Request) -> AntiAbuseGuard:
    return request.app.state.abuse_guard


def get_registry(request: Request, db: Session = Depends(get_db)) -> DeviceRegistry:
    return DeviceRegistry(db, request.app.state.tenant_policy)


def get_location_service(db: Session = Depends(get_db)) -> LocationService:
    return LocationService(db)


def get_current_claims(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> DeviceClaims:
    if credentials is None:
        raise ServiceError.access_denied()

    claims = tokens.verify(credentials.credentials)
    request.state.claims = claims
    return claims


def get_current_device(
    claims: DeviceClaims = Depends(get_current_claims),
    registry: DeviceRegistry = Depends(get_registry),
) -> Device | None:
    """The token's device as currently registered, or None once it was deleted."""
    return registry.get(claims.deviceId, claims.org)


def current_company_id(device: Device | None) -> int | None:
    return device.company_id if device is not None else None


def _too_large() -> HTTPException:
    return HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Payload too large")


async def read_body(request: Request) -> bytes:
    """Buffer the request body, refusing anything above ``parser_limit`` bytes."""
    limit = request.app.state.settings.parser_limit
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise _too_large()

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise _too_large()
    return bytes(body)
