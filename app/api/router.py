from fastapi import APIRouter

from app.api import auth, devices, locations

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(devices.router)
api_router.include_router(locations.router)
