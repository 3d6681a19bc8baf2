from sqlalchemy import Column, String, Integer, Text, ForeignKey, Index, Enum, JSON
from sqlalchemy.orm import relationship
import enum

from app.platform.db.base import BaseModel
from app.features.websites.models.website import Website  # noqa: F401  (registers the mapper)


class ScanStatus(enum.Enum):
    """Scan status state machine: queued -> processing -> completed | failed"""
    queued = "queued"
    processing = "processing"
    completed = "completed"
    failed = "failed"


TERMINAL_STATUSES = frozenset({ScanStatus.completed, ScanStatus.failed})

_STATUS_RANK = {
    ScanStatus.queued: 0,
    ScanStatus.processing: 1,
    ScanStatus.completed: 2,
    ScanStatus.failed: 2,
}


def is_forward_transition(current: ScanStatus, target: ScanStatus) -> bool:
    """Statuses only move forward; a terminal scan never changes again."""
    if current in TERMINAL_STATUSES:
        return False
    return _STATUS_RANK[target] >= _STATUS_RANK[current]


class Scan(BaseModel):
    """
    One accessibility scan of a website or of a single page of it.

    A batch (sitemap) scan is a parent record with total_pages set and one
    child record per page; children point back through parent_scan_id and
    the parent's completed_pages is rolled up from them.
    """
    __tablename__ = "scans"

    website_id = Column(String, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False, index=True)
    website = relationship("Website", lazy="joined")

    # Page scanned by a batch child; None means the website's base URL
    page_url = Column(Text, nullable=True)

    status = Column(Enum(ScanStatus), default=ScanStatus.queued, nullable=False, index=True)

    # Lighthouse accessibility score, 0-100, None when unavailable
    score = Column(Integer, nullable=True)

    # {"axe": [...raw violations], "gigw": {...}} on success,
    # {"error": ..., "error_type": ...} on failure
    diagnostics = Column(JSON, nullable=True)

    # Batch progress
    total_pages = Column(Integer, nullable=True)
    completed_pages = Column(Integer, default=0, nullable=True)
    parent_scan_id = Column(String, ForeignKey("scans.id", ondelete="SET NULL"), nullable=True, index=True)

    issues = relationship("ScanIssue", back_populates="scan", lazy="select", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_scans_website_status', 'website_id', 'status'),
    )
