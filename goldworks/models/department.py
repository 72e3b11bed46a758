"""Department sequence table and department tracking model."""
from typing import List, Optional
from uuid import uuid4
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from goldworks.database import Base
from goldworks.exceptions import NotFoundError


class DepartmentName(str, enum.Enum):
    """Production departments."""
    CAD = "CAD"
    PRINT = "PRINT"
    CASTING = "CASTING"
    FILLING = "FILLING"
    MEENA = "MEENA"
    POLISH_1 = "POLISH_1"
    SETTING = "SETTING"
    POLISH_2 = "POLISH_2"
    ADDITIONAL = "ADDITIONAL"


class DepartmentStatus(str, enum.Enum):
    """Status of one department tracking row."""
    PENDING_ASSIGNMENT = "PENDING_ASSIGNMENT"
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"


# Fixed production sequence. Not configurable.
DEPARTMENT_ORDER: List[DepartmentName] = [
    DepartmentName.CAD,
    DepartmentName.PRINT,
    DepartmentName.CASTING,
    DepartmentName.FILLING,
    DepartmentName.MEENA,
    DepartmentName.POLISH_1,
    DepartmentName.SETTING,
    DepartmentName.POLISH_2,
    DepartmentName.ADDITIONAL,
]

DEPARTMENT_DISPLAY_NAMES = {
    DepartmentName.CAD: "CAD Design",
    DepartmentName.PRINT: "3D Printing",
    DepartmentName.CASTING: "Casting",
    DepartmentName.FILLING: "Filling",
    DepartmentName.MEENA: "Meena Work",
    DepartmentName.POLISH_1: "First Polish",
    DepartmentName.SETTING: "Stone Setting",
    DepartmentName.POLISH_2: "Final Polish",
    DepartmentName.ADDITIONAL: "Additional Work",
}

VALID_TRANSITIONS = {
    DepartmentStatus.PENDING_ASSIGNMENT: (DepartmentStatus.NOT_STARTED,),
    DepartmentStatus.NOT_STARTED: (DepartmentStatus.IN_PROGRESS, DepartmentStatus.PENDING_ASSIGNMENT),
    DepartmentStatus.IN_PROGRESS: (DepartmentStatus.COMPLETED, DepartmentStatus.ON_HOLD),
    DepartmentStatus.ON_HOLD: (DepartmentStatus.IN_PROGRESS,),
    DepartmentStatus.COMPLETED: (),
}


def is_valid_transition(current: DepartmentStatus, target: DepartmentStatus) -> bool:
    return DepartmentStatus(target) in VALID_TRANSITIONS[DepartmentStatus(current)]


def department_sequence(name: DepartmentName) -> int:
    """1-based position of a department in the production sequence."""
    return DEPARTMENT_ORDER.index(DepartmentName(name)) + 1


def next_department(name: DepartmentName) -> Optional[DepartmentName]:
    index = DEPARTMENT_ORDER.index(DepartmentName(name))
    if index >= len(DEPARTMENT_ORDER) - 1:
        return None
    return DEPARTMENT_ORDER[index + 1]


class DepartmentTracking(Base):
    """One row per (order, department): the unit of state-machine execution."""
    __tablename__ = "department_tracking"
    __table_args__ = (
        UniqueConstraint("order_id", "department_name", name="uq_tracking_order_department"),
    )

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    department_name = Column(String(20), nullable=False, index=True)
    sequence_order = Column(Integer, nullable=False)
    status = Column(String(20), default=DepartmentStatus.PENDING_ASSIGNMENT.value, nullable=False, index=True)

    # Weak reference: removing a user leaves the history intact
    assigned_to_id = Column(String(32), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Gold reconciliation (grams)
    gold_weight_in = Column(Float, nullable=True)
    gold_weight_out = Column(Float, nullable=True)
    gold_loss = Column(Float, nullable=True)

    estimated_hours = Column(Float, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    issues = Column(Text, nullable=True)  # hold reason
    photos = Column(JSON, nullable=False, default=list)
    work_data = Column(JSON, nullable=True)

    # Incremented on every state write, checked by conditional updates
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    order = relationship("Order", back_populates="department_tracking")
    assigned_to = relationship("User")


def resolve_department(name) -> DepartmentName:
    """Parse a department name, raising NotFoundError for unknown names."""
    try:
        return DepartmentName(name)
    except ValueError:
        raise NotFoundError(f"Department {name} not found") from None
