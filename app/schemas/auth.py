from pydantic import BaseModel, ConfigDict, field_validator


class RegisterRequest(BaseModel):
    """Registration body sent by the mobile SDK.

    Every field is optional here so that missing values are reported by the
    registration handler itself rather than by request validation.
    """

    model_config = ConfigDict(extra="ignore")

    org: str | None = None
    uuid: str | None = None
    model: str | None = None
    manufacturer: str | None = None
    framework: str | None = None
    version: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def stringify_scalars(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def missing_device_info(self) -> bool:
        return not (self.uuid and self.model and self.manufacturer and self.version)


class TokenResponse(BaseModel):
    accessToken: str
    refreshToken: str
    expires: int
