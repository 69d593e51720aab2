from sqlalchemy import func, select

from app.db.session import get_session_factory
from app.models.company import Company
from app.models.device import Device
from app.schemas.auth import RegisterRequest
from app.services.registry import DeviceRegistry, TenantPolicy
from tests.conftest import device_info


def _open_policy() -> TenantPolicy:
    return TenantPolicy(denied_companies=frozenset(), denied_models=frozenset())


def _stale_once(lookup):
    """Return None on the first call, as if another writer had not committed yet."""
    calls = []

    def wrapper(*args):
        calls.append(args)
        if len(calls) == 1:
            return None
        return lookup(*args)

    return wrapper


def test_concurrent_registration_returns_existing_device(app_client):
    info = RegisterRequest(**device_info())
    session_factory = get_session_factory()

    with session_factory() as db:
        first = DeviceRegistry(db, _open_policy()).find_or_create("acme", info)
        first_id, first_company = first.id, first.company_id

    with session_factory() as db:
        late = DeviceRegistry(db, _open_policy())
        late.check_company = _stale_once(late.check_company)
        late._find_by_uuid = _stale_once(late._find_by_uuid)

        second = late.find_or_create("acme", RegisterRequest(**device_info(model="Pixel 8")))
        assert second.id == first_id
        assert second.company_id == first_company
        assert second.model == "Pixel 8"

        assert db.scalar(select(func.count()).select_from(Company)) == 1
        assert db.scalar(select(func.count()).select_from(Device)) == 1
