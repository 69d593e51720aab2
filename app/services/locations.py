import logging
from datetime import UTC, datetime

from sqlalchemy import ColumnElement, delete, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from app.core.errors import ServiceError
from app.db.session import commit_or_fail
from app.models.common import utcnow
from app.models.company import Company
from app.models.device import Device
from app.models.location import Location

logger = logging.getLogger(__name__)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def in_date_range(
    column: InstrumentedAttribute,
    start_date: datetime | None,
    end_date: datetime | None,
) -> list[ColumnElement[bool]]:
    """Inclusive bounds on ``column``; a missing bound leaves that side open."""
    clauses = []
    if start_date is not None:
        clauses.append(column >= as_utc(start_date))
    if end_date is not None:
        clauses.append(column <= as_utc(end_date))
    return clauses


def normalize_batch(data) -> list[dict]:
    """Coerce a decoded body into a list of location records.

    A single object is a batch of one, a missing body is an empty batch.
    """
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return data
    raise ServiceError.bad_input("Location payload must be an object or a list of objects")


def _as_float(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_timestamp(value) -> datetime | None:
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # epoch milliseconds, as sent by the mobile SDKs
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def _build_row(record: dict) -> Location:
    source = record["location"] if isinstance(record.get("location"), dict) else record
    coords = source["coords"] if isinstance(source.get("coords"), dict) else source
    uuid = source.get("uuid")
    return Location(
        company_id=record["company_id"],
        company_token=record["company_token"],
        device_id=record["device_id"],
        uuid=str(uuid) if uuid is not None else None,
        latitude=_as_float(coords.get("latitude")),
        longitude=_as_float(coords.get("longitude")),
        accuracy=_as_float(coords.get("accuracy")),
        recorded_at=_parse_timestamp(source.get("timestamp")) or utcnow(),
        data=record,
    )


def location_payload(location: Location) -> dict:
    payload = dict(location.data)
    payload["id"] = location.id
    payload["recorded_at"] = location.recorded_at.isoformat()
    payload["created_at"] = location.created_at.isoformat()
    return payload


class LocationService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, records: list[dict], device: Device) -> list[Location]:
        """Stamp every record with the device's binding and store the batch atomically."""
        if device.company_id is None:
            raise ServiceError.registration_required(f"Device {device.id} has no company, register again")

        rows = []
        for record in records:
            stamped = {
                **record,
                "company_id": device.company_id,
                "device_id": device.id,
                "company_token": device.company_token,
            }
            rows.append(_build_row(stamped))

        if not rows:
            return []

        self.db.add_all(rows)
        commit_or_fail(self.db)
        logger.info("Stored %d locations for device %s (%s)", len(rows), device.id, device.company_token)
        return rows

    def latest(self, company_id: int | None, device_id: str) -> Location | None:
        if company_id is None:
            return None
        return self.db.scalar(
            select(Location)
            .where(Location.company_id == company_id, Location.device_id == device_id)
            .order_by(Location.recorded_at.desc(), Location.id.desc())
            .limit(1)
        )

    def list_locations(
        self,
        company_id: int | None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        device_id: str | None = None,
        limit: int | None = None,
    ) -> list[Location]:
        if company_id is None:
            return []
        stmt = (
            select(Location)
            .where(Location.company_id == company_id, *in_date_range(Location.recorded_at, start_date, end_date))
            .order_by(Location.recorded_at.asc(), Location.id.asc())
        )
        if device_id:
            stmt = stmt.where(Location.device_id == device_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt).all())

    def delete(
        self,
        company_id: int | None,
        device_id: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> int:
        if company_id is None:
            return 0
        result = self.db.execute(
            delete(Location)
            .where(
                Location.company_id == company_id,
                Location.device_id == device_id,
                *in_date_range(Location.recorded_at, start_date, end_date),
            )
            .execution_options(synchronize_session=False)
        )
        commit_or_fail(self.db)
        logger.info("Deleted %d locations for device %s", result.rowcount, device_id)
        return result.rowcount

    def stats(self) -> dict:
        return {
            "companies": self.db.scalar(select(func.count()).select_from(Company)) or 0,
            "devices": self.db.scalar(select(func.count()).select_from(Device)) or 0,
            "locations": self.db.scalar(select(func.count()).select_from(Location)) or 0,
        }
