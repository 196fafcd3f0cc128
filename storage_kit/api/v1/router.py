from fastapi import APIRouter

from storage_kit.api.v1.storage import router as storage_router

router = APIRouter()
router.include_router(storage_router)
