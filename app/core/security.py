import hashlib
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta

import jwt

from app.core.config import Settings
from app.core.errors import ServiceError


@dataclass(frozen=True)
class DeviceClaims:
    companyId: int
    deviceId: str
    org: str
    model: str
    uuid: str

    def to_dict(self) -> dict:
        return asdict(self)


_CLAIM_TYPES = {
    "companyId": int,
    "deviceId": str,
    "org": str,
    "model": str,
    "uuid": str,
}


class TokenService:
    """Issues and verifies device bearer tokens.

    Tokens are HMAC-signed JWTs carrying the device identity. They do not
    expire unless ``expire_minutes`` is set.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int | None = None) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.jwt_expire_minutes,
        )

    @property
    def expires_in(self) -> int:
        if self.expire_minutes is None:
            return -1
        return self.expire_minutes * 60

    def issue(self, claims: DeviceClaims) -> str:
        now = datetime.now(UTC)
        payload = claims.to_dict()
        payload["iat"] = int(now.timestamp())
        if self.expire_minutes is not None:
            payload["exp"] = int((now + timedelta(minutes=self.expire_minutes)).timestamp())
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> DeviceClaims:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as exc:
            raise ServiceError.access_denied() from exc

        for name, expected in _CLAIM_TYPES.items():
            value = payload.get(name)
            # bool is an int subclass; reject it explicitly
            if not isinstance(value, expected) or isinstance(value, bool):
                raise ServiceError.access_denied()
        return DeviceClaims(**{name: payload[name] for name in _CLAIM_TYPES})

    @staticmethod
    def derive_refresh(token: str) -> str:
        return hashlib.md5(token.encode("utf-8")).hexdigest()
