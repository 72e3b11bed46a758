"""User model, role enumeration and role capabilities."""
import enum
from uuid import uuid4

from sqlalchemy import Column, String, Enum, DateTime, Boolean
from sqlalchemy.sql import func

from goldworks.database import Base


class UserRole(str, enum.Enum):
    """User roles for the factory."""
    ADMIN = "ADMIN"
    OFFICE_STAFF = "OFFICE_STAFF"
    FACTORY_MANAGER = "FACTORY_MANAGER"
    DEPARTMENT_WORKER = "DEPARTMENT_WORKER"


class Capability(str, enum.Enum):
    """Things a role is allowed to do or see."""
    VIEW_ORDERS = "view_orders"
    VIEW_CUSTOMER_INFO = "view_customer_info"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_DEPARTMENTS = "manage_departments"
    WORK_DEPARTMENT = "work_department"
    SELF_ASSIGN = "self_assign"
    SUBMIT_FINAL = "submit_final"
    APPROVE_SUBMISSION = "approve_submission"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES = {
    UserRole.ADMIN: frozenset({
        Capability.VIEW_ORDERS,
        Capability.VIEW_CUSTOMER_INFO,
        Capability.MANAGE_ORDERS,
        Capability.MANAGE_DEPARTMENTS,
        Capability.SUBMIT_FINAL,
        Capability.APPROVE_SUBMISSION,
        Capability.MANAGE_USERS,
    }),
    UserRole.OFFICE_STAFF: frozenset({
        Capability.VIEW_ORDERS,
        Capability.VIEW_CUSTOMER_INFO,
        Capability.MANAGE_ORDERS,
        Capability.MANAGE_DEPARTMENTS,
        Capability.APPROVE_SUBMISSION,
    }),
    UserRole.FACTORY_MANAGER: frozenset({
        Capability.VIEW_ORDERS,
        Capability.MANAGE_DEPARTMENTS,
        Capability.SUBMIT_FINAL,
    }),
    UserRole.DEPARTMENT_WORKER: frozenset({
        Capability.VIEW_ORDERS,
        Capability.WORK_DEPARTMENT,
        Capability.SELF_ASSIGN,
    }),
}


def has_capability(role: UserRole, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(UserRole(role), frozenset())


class User(Base):
    """Factory user. Workers carry the department they are configured for."""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.DEPARTMENT_WORKER, nullable=False)
    department = Column(String(20), nullable=True, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def can(self, capability: Capability) -> bool:
        return has_capability(self.role, capability)
