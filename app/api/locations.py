import logging
from collections.abc import Mapping
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.api.deps import (
    current_company_id,
    get_abuse_guard,
    get_current_claims,
    get_current_device,
    get_location_service,
    get_payload_codec,
    get_registry,
    read_body,
)
from app.core.crypto import PayloadCodec
from app.core.security import DeviceClaims
from app.models.device import Device
from app.schemas.devices import SuccessResponse
from app.services.abuse import AntiAbuseGuard
from app.services.locations import LocationService, location_payload, normalize_batch
from app.services.registry import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["locations"])

DEVICE_GONE_BODY = {"error": "DEVICE_ID_NOT_FOUND", "background_geolocation": ["stop"]}


@router.get("/stats")
def stats(
    _: DeviceClaims = Depends(get_current_claims),
    locations: LocationService = Depends(get_location_service),
):
    return locations.stats()


@router.get("/locations/latest")
def latest_location(
    claims: DeviceClaims = Depends(get_current_claims),
    device: Device | None = Depends(get_current_device),
    locations: LocationService = Depends(get_location_service),
):
    logger.info("locations:latest org=%s device=%s", claims.org, claims.deviceId)
    latest = locations.latest(current_company_id(device), claims.deviceId)
    return location_payload(latest) if latest is not None else None


@router.get("/locations")
def list_locations(
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    device_id: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    claims: DeviceClaims = Depends(get_current_claims),
    device: Device | None = Depends(get_current_device),
    locations: LocationService = Depends(get_location_service),
):
    logger.info(
        "locations:get org=%s device=%s start_date=%s end_date=%s",
        claims.org,
        claims.deviceId,
        start_date,
        end_date,
    )
    rows = locations.list_locations(
        current_company_id(device),
        start_date=start_date,
        end_date=end_date,
        device_id=device_id,
        limit=limit,
    )
    return [location_payload(row) for row in rows]


def _decode(codec: PayloadCodec, headers: Mapping[str, str], raw: bytes) -> list[dict]:
    return normalize_batch(codec.decode(headers, raw))


def _store(
    claims: DeviceClaims,
    device: Device,
    registry: DeviceRegistry,
    locations: LocationService,
    records: list[dict],
) -> SuccessResponse:
    registry.check_company(claims.org, device.model)
    locations.create(records, device)
    return SuccessResponse()


async def _post_locations(
    request: Request,
    claims: DeviceClaims,
    guard: AntiAbuseGuard,
    codec: PayloadCodec,
    registry: DeviceRegistry,
    locations: LocationService,
):
    logger.info("locations:post org=%s device=%s", claims.org, claims.deviceId)
    if guard.is_flagged(claims.org):
        return guard.deterrent_response(claims.org)

    device = await run_in_threadpool(registry.get, claims.deviceId, claims.org)
    if device is None:
        # deleted from the dashboard while the client still holds a token
        logger.error("Device ID %s not found. Was it deleted from dashboard?", claims.deviceId)
        return JSONResponse(status_code=status.HTTP_410_GONE, content=DEVICE_GONE_BODY)

    raw = await read_body(request)
    records = await run_in_threadpool(_decode, codec, request.headers, raw)
    return await run_in_threadpool(_store, claims, device, registry, locations, records)


@router.post("/locations", response_model=None)
async def post_locations(
    request: Request,
    claims: DeviceClaims = Depends(get_current_claims),
    guard: AntiAbuseGuard = Depends(get_abuse_guard),
    codec: PayloadCodec = Depends(get_payload_codec),
    registry: DeviceRegistry = Depends(get_registry),
    locations: LocationService = Depends(get_location_service),
):
    return await _post_locations(request, claims, guard, codec, registry, locations)


@router.post("/locations/{company_token}", response_model=None)
async def post_company_locations(
    company_token: str,
    request: Request,
    claims: DeviceClaims = Depends(get_current_claims),
    guard: AntiAbuseGuard = Depends(get_abuse_guard),
    codec: PayloadCodec = Depends(get_payload_codec),
    registry: DeviceRegistry = Depends(get_registry),
    locations: LocationService = Depends(get_location_service),
):
    if company_token != claims.org:
        logger.info("locations:post path token %s differs from token org %s", company_token, claims.org)
    return await _post_locations(request, claims, guard, codec, registry, locations)


@router.delete("/locations", response_model=SuccessResponse)
def delete_locations(
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    claims: DeviceClaims = Depends(get_current_claims),
    device: Device | None = Depends(get_current_device),
    locations: LocationService = Depends(get_location_service),
):
    logger.info(
        "locations:delete org=%s device=%s start_date=%s end_date=%s",
        claims.org,
        claims.deviceId,
        start_date,
        end_date,
    )
    locations.delete(current_company_id(device), claims.deviceId, start_date=start_date, end_date=end_date)
    return SuccessResponse()
