from fastapi import APIRouter

from .health import router as health_router
from .patients import router as patients_router
from .simulation import router as simulation_router

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(simulation_router, prefix="/simulation", tags=["simulation"])
api_router.include_router(patients_router, prefix="/patients", tags=["patients"])

__all__ = ["api_router"]
