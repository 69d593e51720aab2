from datetime import datetime

from pydantic import BaseModel


class DeviceOut(BaseModel):
    id: str
    uuid: str
    company_id: int | None
    company_token: str
    model: str
    manufacturer: str | None
    framework: str | None
    version: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CompanyTokenOut(BaseModel):
    id: int
    company_token: str

    model_config = {"from_attributes": True}


class SuccessResponse(BaseModel):
    success: bool = True
