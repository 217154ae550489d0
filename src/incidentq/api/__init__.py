from fastapi import APIRouter

from . import incidents, system

router = APIRouter()
router.include_router(system.router)
router.include_router(incidents.router)

__all__ = ["router"]
