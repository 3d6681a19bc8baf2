from fastapi import APIRouter, Request, status

from app.platform.config import settings
from app.platform.response import api_response


router = APIRouter()

@router.get("/health", tags=["health"])
async def health_check(request: Request):
    controller = getattr(request.app.state, "job_controller", None)
    pool = getattr(request.app.state, "browser_pool", None)
    data = {
        "status": "ok",
        "service": settings.APP_NAME,
        "draining": bool(controller and controller.tracker.draining),
        "in_flight_scans": controller.in_flight if controller else 0,
        "queued_scans": controller.queue_depth if controller else 0,
    }
    if pool is not None:
        data["browser_pool"] = {"size": pool.size, "live": pool.live_count, "idle": pool.idle_count}

    return api_response(
        data=data,
        message="Service is healthy",
        status_code=status.HTTP_200_OK,
    )
