"""
Scan models package.
"""
from app.features.scan.models.scan import Scan, ScanStatus
from app.features.scan.models.scan_issue import ScanIssue

__all__ = ["Scan", "ScanStatus", "ScanIssue"]
