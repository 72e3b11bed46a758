"""User schemas for request/response validation."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, model_validator

from goldworks.models.department import DepartmentName
from goldworks.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema."""
    name: str
    email: EmailStr
    role: UserRole = UserRole.DEPARTMENT_WORKER
    department: Optional[DepartmentName] = None


class UserCreate(UserBase):
    """Schema for creating a user."""

    @model_validator(mode="after")
    def worker_needs_department(self):
        if self.role == UserRole.DEPARTMENT_WORKER and self.department is None:
            raise ValueError("Department workers must have a department")
        return self


class UserResponse(UserBase):
    """Schema for user response."""
    id: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    related_order_id: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
