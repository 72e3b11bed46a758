"""Order, order details and stone models."""
from uuid import uuid4
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Date, ForeignKey, Float, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from goldworks.database import Base


class OrderStatus(str, enum.Enum):
    """Order lifecycle status."""
    DRAFT = "DRAFT"
    IN_FACTORY = "IN_FACTORY"
    COMPLETED = "COMPLETED"


class Order(Base):
    """Order model - one jewelry piece moving through the factory."""
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    order_number = Column(String(40), unique=True, index=True, nullable=False)

    # Customer info is only shown to roles with VIEW_CUSTOMER_INFO
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    customer_email = Column(String(100), nullable=True)

    product_photo_url = Column(String(500), nullable=True)
    priority = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=OrderStatus.DRAFT.value, nullable=False, index=True)
    created_by_id = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    details = relationship("OrderDetails", back_populates="order", uselist=False, cascade="all, delete-orphan")
    stones = relationship("Stone", back_populates="order", cascade="all, delete-orphan")
    department_tracking = relationship(
        "DepartmentTracking",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="DepartmentTracking.sequence_order",
    )
    final_submission = relationship("FinalSubmission", back_populates="order", uselist=False, cascade="all, delete-orphan")
    activities = relationship("OrderActivity", back_populates="order", cascade="all, delete-orphan")
    created_by = relationship("User")


class OrderDetails(Base):
    """Product and material details, created together with the order."""
    __tablename__ = "order_details"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(32), ForeignKey("orders.id"), unique=True, nullable=False)
    gold_weight_initial = Column(Float, nullable=False)  # grams
    purity = Column(Float, nullable=False)  # karat, 1-24
    gold_color = Column(String(30), nullable=True)
    metal_type = Column(String(30), default="GOLD", nullable=False)
    size = Column(String(30), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    product_type = Column(String(50), nullable=True)
    due_date = Column(Date, nullable=True)
    additional_description = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    reference_images = Column(JSON, nullable=False, default=list)

    order = relationship("Order", back_populates="details")


class Stone(Base):
    """Stone used in an order. Independent of workflow state."""
    __tablename__ = "stones"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    stone_type = Column(String(50), nullable=False)
    stone_name = Column(String(100), nullable=True)
    weight = Column(Float, nullable=False)  # carats
    quantity = Column(Integer, default=1, nullable=False)
    color = Column(String(30), nullable=True)
    clarity = Column(String(30), nullable=True)
    cut = Column(String(30), nullable=True)
    shape = Column(String(30), nullable=True)
    setting = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    order = relationship("Order", back_populates="stones")
