from sqlalchemy import Column, String, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.platform.db.base import BaseModel


class ScanIssue(BaseModel):
    """
    One structural accessibility finding: a single (axe rule, DOM node) pair.
    """
    __tablename__ = "scan_issues"

    scan_id = Column(String, ForeignKey("scans.id", ondelete="CASCADE"), nullable=False, index=True)

    rule_id = Column(String(255), nullable=False, index=True)
    severity = Column(String(32), nullable=False)  # critical, serious, moderate, minor

    selector = Column(Text, nullable=True)  # CSS selector of the first target
    snippet = Column(Text, nullable=True)  # outer HTML of the offending node
    description = Column(Text, nullable=False)

    scan = relationship("Scan", back_populates="issues", lazy="select")

    __table_args__ = (
        Index('idx_scan_issues_scan_rule', 'scan_id', 'rule_id'),
    )
