"""Order activity log and notification models."""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from goldworks.database import Base


class ActivityAction(str, enum.Enum):
    """Activity log action types."""
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_UPDATED = "ORDER_UPDATED"
    STATUS_CHANGE = "STATUS_CHANGE"
    WORKER_ASSIGNED = "WORKER_ASSIGNED"
    WORKER_UNASSIGNED = "WORKER_UNASSIGNED"
    DEPT_STARTED = "DEPT_STARTED"
    DEPT_ON_HOLD = "DEPT_ON_HOLD"
    DEPT_RESUMED = "DEPT_RESUMED"
    DEPT_COMPLETED = "DEPT_COMPLETED"
    FILE_UPLOADED = "FILE_UPLOADED"
    ORDER_SUBMITTED = "ORDER_SUBMITTED"
    SUBMISSION_APPROVAL = "SUBMISSION_APPROVAL"
    SUBMISSION_WITHDRAWN = "SUBMISSION_WITHDRAWN"


class OrderActivity(Base):
    """Append-only activity entry for an order."""
    __tablename__ = "order_activities"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(30), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    order = relationship("Order", back_populates="activities")


class NotificationType(str, enum.Enum):
    ASSIGNMENT = "ASSIGNMENT"
    ORDER_SUBMITTED = "ORDER_SUBMITTED"
    HIGH_VARIANCE_ALERT = "HIGH_VARIANCE_ALERT"


class Notification(Base):
    """Notification for one user. Not tied to the order lifecycle."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(30), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    related_order_id = Column(String(32), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
