"""Final submission schemas."""
from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, Field, field_validator

from goldworks.models.submission import QUALITY_GRADES


class SubmissionCreate(BaseModel):
    """Schema for submitting a finished order."""
    final_gold_weight: float = Field(..., gt=0, le=10000)
    final_stone_weight: float = Field(default=0.0, ge=0)
    final_purity: float = Field(..., ge=1, le=24)
    number_of_pieces: int = Field(default=1, ge=1)
    total_weight: Optional[float] = Field(None, gt=0)
    quality_grade: Optional[str] = None
    quality_notes: Optional[str] = Field(None, max_length=2000)
    completion_photos: List[str] = []
    certificate_url: Optional[str] = None
    acknowledge_variance: bool = False

    @field_validator("quality_grade")
    @classmethod
    def check_grade(cls, value):
        if value is not None and value not in QUALITY_GRADES:
            raise ValueError(f"quality_grade must be one of {', '.join(QUALITY_GRADES)}")
        return value


class ApprovalUpdate(BaseModel):
    """Schema for recording the customer/office decision."""
    approved: bool
    notes: Optional[str] = Field(None, max_length=2000)


class WeightVarianceResponse(BaseModel):
    initial_weight: float
    final_weight: float
    difference: float
    percentage_variance: float
    is_high_variance: bool
    is_weight_gain: bool
    alert_threshold: float


class SubmissionResponse(BaseModel):
    """Response schema for submissions."""
    id: str
    order_id: str
    order_number: str
    customer_name: Optional[str] = None
    final_gold_weight: float
    final_stone_weight: float
    final_purity: float
    number_of_pieces: int
    total_weight: Optional[float] = None
    quality_grade: Optional[str] = None
    quality_notes: Optional[str] = None
    completion_photos: List[str] = []
    certificate_url: Optional[str] = None
    submitted_by_id: Optional[str] = None
    submitted_at: Optional[datetime] = None
    weight_variance: WeightVarianceResponse
    customer_approved: bool
    approval_notes: Optional[str] = None
    approval_date: Optional[datetime] = None


class SubmissionListSummary(BaseModel):
    total_submissions: int
    high_variance_count: int
    pending_approval_count: int
    average_variance: float


class SubmissionListResponse(BaseModel):
    data: List[SubmissionResponse]
    summary: SubmissionListSummary


class SubmissionStats(SubmissionListSummary):
    by_quality_grade: Dict[str, int] = {}
