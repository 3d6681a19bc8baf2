from fastapi import APIRouter, Depends, status

from app.features.scan.dependencies.scan import get_job_controller, get_scan_store
from app.features.scan.schemas.scan import ScanCreateRequest, ScanResponse
from app.features.scan.services.scan.scan import get_scan_or_404, get_scan_report, start_scan
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])


@router.post(
    "",
    response_model=dict,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue an accessibility scan of a website",
)
async def create_scan(
    request: ScanCreateRequest,
    store=Depends(get_scan_store),
    controller=Depends(get_job_controller),
):
    scan = await start_scan(store, controller, request.website_id)
    return api_response(
        data={"scan_id": scan.id, "status": scan.status.value},
        message="Scan queued",
        status_code=status.HTTP_202_ACCEPTED,
    )


@router.get("/{scan_id}", response_model=dict, summary="Get scan status")
async def get_scan(scan_id: str, store=Depends(get_scan_store)):
    scan = await get_scan_or_404(store, scan_id)
    return api_response(
        data=ScanResponse.from_scan(scan),
        message="Scan retrieved successfully",
    )


@router.get("/{scan_id}/report", response_model=dict, summary="Get the aggregated report of a completed scan")
async def get_report(scan_id: str, store=Depends(get_scan_store)):
    report = await get_scan_report(store, scan_id)
    return api_response(
        data=report,
        message="Report generated successfully",
    )
