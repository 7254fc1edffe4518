"""
Store reports filed by users
"""
import enum
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class ReportReason(str, enum.Enum):
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    FRAUDULENT_ACTIVITY = "fraudulent_activity"
    POOR_QUALITY = "poor_quality"
    FAKE_PRODUCTS = "fake_products"
    MISLEADING_INFORMATION = "misleading_information"
    UNPROFESSIONAL_BEHAVIOR = "unprofessional_behavior"
    SCAM = "scam"
    OTHER = "other"


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


def _values(enum_cls):
    return [m.value for m in enum_cls]


class StoreReport(Base):
    """Store reports table"""
    __tablename__ = "store_reports"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    reported_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reason = Column(SQLEnum(ReportReason, values_callable=_values, native_enum=False), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(ReportStatus, values_callable=_values, native_enum=False), default=ReportStatus.PENDING, nullable=False, index=True)
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    store = relationship("Store", lazy="selectin")
    reporter = relationship("User", foreign_keys=[reported_by], lazy="selectin")
