from fastapi import APIRouter, Depends, status

from app.features.scan.dependencies.scan import get_job_controller, get_scan_store
from app.features.scan.schemas.scan import ScanCreateRequest
from app.features.scan.services.scan.scan import get_batch_progress, start_batch
from app.platform.response import api_response

router = APIRouter(prefix="/batch", tags=["batch"])


@router.post(
    "",
    response_model=dict,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a scan of every page listed in the website's sitemap",
)
async def create_batch(
    request: ScanCreateRequest,
    store=Depends(get_scan_store),
    controller=Depends(get_job_controller),
):
    parent = await start_batch(store, controller, request.website_id)
    return api_response(
        data={"scan_id": parent.id, "status": parent.status.value, "total_pages": parent.total_pages},
        message=f"Queued {parent.total_pages} pages for scanning",
        status_code=status.HTTP_202_ACCEPTED,
    )


@router.get("/{batch_id}/progress", response_model=dict, summary="Get batch scan progress")
async def batch_progress(batch_id: str, store=Depends(get_scan_store)):
    progress = await get_batch_progress(store, batch_id)
    return api_response(
        data=progress,
        message="Batch progress retrieved successfully",
    )
