import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from app.api.deps import get_current_claims, get_registry, get_token_service, read_body
from app.core.errors import ServiceError
from app.core.security import DeviceClaims, TokenService
from app.schemas.auth import RegisterRequest, TokenResponse
from app.services.registry import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

INVALID_REGISTRATION_MESSAGE = "Invalid registration payload"


def _token_response(tokens: TokenService, claims: DeviceClaims) -> TokenResponse:
    access_token = tokens.issue(claims)
    return TokenResponse(
        accessToken=access_token,
        refreshToken=tokens.derive_refresh(access_token),
        expires=tokens.expires_in,
    )


def _parse_registration(raw: bytes) -> RegisterRequest:
    if not raw.strip():
        return RegisterRequest()
    try:
        return RegisterRequest.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        raise ServiceError.bad_input(INVALID_REGISTRATION_MESSAGE) from exc


def _register(payload: RegisterRequest, registry: DeviceRegistry, tokens: TokenService) -> TokenResponse:
    device = registry.find_or_create(payload.org, payload)
    claims = DeviceClaims(
        companyId=device.company_id,
        deviceId=device.id,
        org=payload.org,
        model=device.model,
        uuid=device.uuid,
    )
    return _token_response(tokens, claims)


@router.post("/register", response_model=TokenResponse)
async def register(
    request: Request,
    registry: DeviceRegistry = Depends(get_registry),
    tokens: TokenService = Depends(get_token_service),
):
    payload = _parse_registration(await read_body(request))
    logger.info(
        "POST /register org=%s uuid=%s model=%s manufacturer=%s version=%s framework=%s",
        payload.org,
        payload.uuid,
        payload.model,
        payload.manufacturer,
        payload.version,
        payload.framework,
    )
    if not payload.org:
        raise ServiceError.bad_input("Organization identifier empty")
    if payload.missing_device_info():
        raise ServiceError.bad_input("Device info is missing")

    return await run_in_threadpool(_register, payload, registry, tokens)


@router.api_route("/refresh_token", methods=["GET", "POST", "PUT", "PATCH", "DELETE"], response_model=TokenResponse)
def refresh_token(
    claims: DeviceClaims = Depends(get_current_claims),
    tokens: TokenService = Depends(get_token_service),
):
    logger.info("auth:refresh org=%s device=%s", claims.org, claims.deviceId)
    return _token_response(tokens, claims)
