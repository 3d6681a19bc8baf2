from fastapi import APIRouter

from app.features.health.routes.health import router as health_router
from app.features.scan.routes.batch import router as batch_router
from app.features.scan.routes.scan import router as scan_router
from app.features.websites.routes.websites import router as websites_router

api_router = APIRouter()

# Register all feature routes
api_router.include_router(websites_router)
api_router.include_router(scan_router)
api_router.include_router(batch_router)
api_router.include_router(health_router)
