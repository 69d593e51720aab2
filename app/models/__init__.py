from app.models.company import Company
from app.models.device import Device
from app.models.location import Location

__all__ = [
    "Company",
    "Device",
    "Location",
]
