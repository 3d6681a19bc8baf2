from fastapi import Request

from app.features.scan.services.orchestration.job_controller import ScanJobController
from app.features.scan.services.persistence.scan_store import SqlScanStore


def get_scan_store(request: Request) -> SqlScanStore:
    return request.app.state.scan_store


def get_job_controller(request: Request) -> ScanJobController:
    return request.app.state.job_controller
