import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.api.deps import current_company_id, get_current_claims, get_current_device, get_registry
from app.core.security import DeviceClaims
from app.models.device import Device
from app.schemas.devices import CompanyTokenOut, DeviceOut, SuccessResponse
from app.services.registry import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["devices"])


@router.get("/company_tokens", response_model=list[CompanyTokenOut])
def list_company_tokens(
    claims: DeviceClaims = Depends(get_current_claims),
    registry: DeviceRegistry = Depends(get_registry),
):
    return registry.company_tokens(claims.org)


@router.get("/devices", response_model=list[DeviceOut])
def list_devices(
    claims: DeviceClaims = Depends(get_current_claims),
    device: Device | None = Depends(get_current_device),
    registry: DeviceRegistry = Depends(get_registry),
):
    return registry.list_devices(current_company_id(device), claims.org)


@router.delete("/devices/{device_id}", response_model=SuccessResponse)
def delete_device(
    device_id: str,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    claims: DeviceClaims = Depends(get_current_claims),
    device: Device | None = Depends(get_current_device),
    registry: DeviceRegistry = Depends(get_registry),
):
    logger.info(
        "devices:delete device=%s requested_by=%s start_date=%s end_date=%s",
        device_id,
        claims.deviceId,
        start_date,
        end_date,
    )
    registry.delete(
        device_id,
        claims.org,
        current_company_id(device),
        start_date=start_date,
        end_date=end_date,
    )
    return SuccessResponse()
