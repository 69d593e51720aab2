import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import ServiceError
from app.db.session import commit_or_fail
from app.models.company import Company
from app.models.device import Device
from app.models.location import Location
from app.schemas.auth import RegisterRequest
from app.services.locations import in_date_range

logger = logging.getLogger(__name__)

DENIED_MESSAGE = "Organization is not allowed to use this server"


class TenantPolicy:
    """Static allow/deny rules for organizations and device models."""

    def __init__(self, denied_companies: frozenset[str], denied_models: frozenset[str]) -> None:
        self.denied_companies = denied_companies
        self.denied_models = denied_models

    @classmethod
    def from_settings(cls, settings: Settings) -> "TenantPolicy":
        return cls(denied_companies=settings.denied_companies, denied_models=settings.denied_models)

    def check(self, org: str, model: str | None = None) -> None:
        if org in self.denied_companies:
            logger.warning("Denied organization %s", org)
            raise ServiceError.access_denied(DENIED_MESSAGE)
        if model and model in self.denied_models:
            logger.warning("Denied device model %s for organization %s", model, org)
            raise ServiceError.access_denied(DENIED_MESSAGE)


class DeviceRegistry:
    def __init__(self, db: Session, policy: TenantPolicy) -> None:
        self.db = db
        self.policy = policy

    def check_company(self, org: str, model: str | None = None) -> Company | None:
        self.policy.check(org, model)
        company = self.db.scalar(select(Company).where(Company.company_token == org))
        if company is not None and company.disabled:
            logger.warning("Organization %s is disabled", org)
            raise ServiceError.access_denied(DENIED_MESSAGE)
        return company

    def resolve_company(self, org: str, model: str | None = None) -> Company:
        company = self.check_company(org, model)
        if company is not None:
            return company

        self.db.add(Company(company_token=org))
        try:
            self.db.commit()
        except IntegrityError:
            # created concurrently by another registration
            self.db.rollback()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ServiceError.internal(str(exc)) from exc

        company = self.db.scalar(select(Company).where(Company.company_token == org))
        if company is None:
            raise ServiceError.internal(f"Unable to create company {org}")
        logger.info("Company %s registered with id %s", org, company.id)
        return company

    def find_or_create(self, org: str, info: RegisterRequest) -> Device:
        company = self.resolve_company(org, info.model)

        device = self._find_by_uuid(info.uuid, org)
        if device is None:
            device = Device(
                uuid=info.uuid,
                company_id=company.id,
                company_token=org,
                model=info.model,
                manufacturer=info.manufacturer,
                framework=info.framework,
                version=info.version,
            )
            self.db.add(device)
            try:
                self.db.commit()
                logger.info("Device %s created for %s", device.id, org)
            except IntegrityError:
                self.db.rollback()
                device = self._find_by_uuid(info.uuid, org)
                if device is None:
                    raise ServiceError.internal(f"Unable to register device {info.uuid}")
                self._update_metadata(device, info, company)
        else:
            self._update_metadata(device, info, company)

        self.db.refresh(device)
        return device

    def get(self, device_id: str, org: str) -> Device | None:
        return self.db.scalar(select(Device).where(Device.id == device_id, Device.company_token == org))

    def list_devices(self, company_id: int | None, org: str) -> list[Device]:
        if company_id is None:
            return []
        rows = self.db.scalars(
            select(Device)
            .where(Device.company_id == company_id, Device.company_token == org)
            .order_by(Device.updated_at.desc(), Device.id)
        ).all()
        return list(rows)

    def delete(
        self,
        device_id: str,
        org: str,
        company_id: int | None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> None:
        if company_id is None:
            return

        self.db.execute(
            delete(Location)
            .where(
                Location.company_id == company_id,
                Location.device_id == device_id,
                *in_date_range(Location.recorded_at, start_date, end_date),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(Device)
            .where(Device.id == device_id, Device.company_token == org, Device.company_id == company_id)
            .execution_options(synchronize_session=False)
        )
        commit_or_fail(self.db)

    def company_tokens(self, org: str) -> list[Company]:
        rows = self.db.scalars(select(Company).where(Company.company_token == org).order_by(Company.id)).all()
        return list(rows)

    def _find_by_uuid(self, uuid: str, org: str) -> Device | None:
        return self.db.scalar(select(Device).where(Device.uuid == uuid, Device.company_token == org))

    def _update_metadata(self, device: Device, info: RegisterRequest, company: Company) -> None:
        device.model = info.model
        device.manufacturer = info.manufacturer
        device.version = info.version
        if info.framework:
            device.framework = info.framework
        if device.company_id is None:
            device.company_id = company.id
        self.db.add(device)
        commit_or_fail(self.db)
