"""Order schemas."""
from datetime import date, datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, Field

from goldworks.models.department import DepartmentName


class StoneBase(BaseModel):
    """Base schema for stones."""
    stone_type: str = Field(..., min_length=1, max_length=50)
    stone_name: Optional[str] = Field(None, max_length=100)
    weight: float = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)
    color: Optional[str] = None
    clarity: Optional[str] = None
    cut: Optional[str] = None
    shape: Optional[str] = None
    setting: Optional[str] = None
    notes: Optional[str] = None


class StoneCreate(StoneBase):
    """Schema for adding a stone."""
    pass


class StoneResponse(StoneBase):
    """Response schema for stones."""
    id: int
    order_id: str

    class Config:
        from_attributes = True


class OrderDetailsBase(BaseModel):
    """Material and product details."""
    gold_weight_initial: float = Field(..., gt=0, le=10000)
    purity: float = Field(..., ge=1, le=24)
    gold_color: Optional[str] = None
    metal_type: str = "GOLD"
    size: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    product_type: Optional[str] = None
    due_date: Optional[date] = None
    additional_description: Optional[str] = None
    special_instructions: Optional[str] = None
    reference_images: List[str] = []


class OrderDetailsUpdate(BaseModel):
    """Schema for updating order details."""
    gold_weight_initial: Optional[float] = Field(None, gt=0, le=10000)
    purity: Optional[float] = Field(None, ge=1, le=24)
    gold_color: Optional[str] = None
    size: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=1)
    product_type: Optional[str] = None
    due_date: Optional[date] = None
    additional_description: Optional[str] = None
    special_instructions: Optional[str] = None


class OrderDetailsResponse(OrderDetailsBase):
    class Config:
        from_attributes = True


class OrderCreate(BaseModel):
    """Schema for creating an order."""
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    customer_email: Optional[str] = Field(None, max_length=100)
    product_photo_url: Optional[str] = None
    priority: int = Field(default=0, ge=0, le=10)
    details: OrderDetailsBase
    stones: List[StoneCreate] = []
    # Optional up-front worker per department
    assignments: Dict[DepartmentName, str] = {}


class OrderUpdate(BaseModel):
    """Schema for updating an order."""
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    customer_email: Optional[str] = Field(None, max_length=100)
    product_photo_url: Optional[str] = None
    priority: Optional[int] = Field(None, ge=0, le=10)
    details: Optional[OrderDetailsUpdate] = None


class OrderResponse(BaseModel):
    """Response schema for orders.

    Customer fields are None for callers without customer visibility.
    """
    id: str
    order_number: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    product_photo_url: Optional[str] = None
    priority: int
    status: str
    current_department: Optional[DepartmentName] = None
    completion_percentage: int = 0
    details: Optional[OrderDetailsResponse] = None
    stones: List[StoneResponse] = []
    has_submission: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class OrderSummary(BaseModel):
    """Summary schema for order list."""
    id: str
    order_number: str
    customer_name: Optional[str] = None
    priority: int
    status: str
    current_department: Optional[DepartmentName] = None
    completion_percentage: int = 0
    due_date: Optional[date] = None
    created_at: Optional[datetime] = None


class ActivityResponse(BaseModel):
    """Response schema for activity entries."""
    id: int
    order_id: str
    user_id: Optional[str] = None
    action: str
    title: str
    description: Optional[str] = None
    details: Optional[dict] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderStats(BaseModel):
    """Order counts for the office dashboard."""
    total: int
    by_status: Dict[str, int]
    overdue_count: int
    due_today_count: int
