"""Final submission model."""
from uuid import uuid4

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, JSON, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from goldworks.database import Base

QUALITY_GRADES = ("A+", "A", "B+", "B", "C", "D")


class FinalSubmission(Base):
    """Factory-to-office handoff of a finished order.

    At most one per order. A rejected submission can be withdrawn and
    replaced; approval decisions overwrite each other.
    """
    __tablename__ = "final_submissions"

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    order_id = Column(String(32), ForeignKey("orders.id"), unique=True, nullable=False)

    final_gold_weight = Column(Float, nullable=False)
    final_stone_weight = Column(Float, default=0.0, nullable=False)
    final_purity = Column(Float, nullable=False)
    number_of_pieces = Column(Integer, default=1, nullable=False)
    total_weight = Column(Float, nullable=True)

    quality_grade = Column(String(5), nullable=True)
    quality_notes = Column(Text, nullable=True)
    completion_photos = Column(JSON, nullable=False, default=list)
    certificate_url = Column(String(500), nullable=True)

    submitted_by_id = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    # Approval sub-record (latest decision only)
    customer_approved = Column(Boolean, default=False, nullable=False)
    approval_notes = Column(Text, nullable=True)
    approval_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    order = relationship("Order", back_populates="final_submission")
    submitted_by = relationship("User")
