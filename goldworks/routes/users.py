"""User directory routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from goldworks.auth import get_current_user, require_admin
from goldworks.database import get_db
from goldworks.models.department import DepartmentName
from goldworks.models.user import User, UserRole
from goldworks.schemas.user import UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    department: Optional[DepartmentName] = Query(None, description="Filter by department"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """List users (admin only)."""
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    if department is not None:
        query = query.filter(User.department == department.value)
    return query.order_by(User.name).all()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Create a new user (admin only)."""
    existing = db.query(User).filter(User.email == user_data.email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    db_user = User(
        name=user_data.name,
        email=user_data.email,
        role=user_data.role,
        department=user_data.department.value if user_data.department else None,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the calling user."""
    return current_user
