"""Caller identity and role-based access control.

Token handling lives in front of this service; the authenticated user id
arrives in the ``X-User-Id`` header.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from goldworks.database import get_db
from goldworks.models.user import Capability, User


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """Load the calling user from the identity header."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    if not x_user_id:
        raise credentials_exception

    user = db.query(User).filter(User.id == x_user_id).first()
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return user


def require_any(*capabilities: Capability):
    """Dependency factory: the caller needs at least one of ``capabilities``."""

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if not any(current_user.can(capability) for capability in capabilities):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return current_user

    return checker


def require_capability(capability: Capability):
    return require_any(capability)


# Named guards used by the routes
require_viewer = require_capability(Capability.VIEW_ORDERS)
require_order_manager = require_capability(Capability.MANAGE_ORDERS)
require_department_manager = require_capability(Capability.MANAGE_DEPARTMENTS)
require_department_access = require_any(Capability.MANAGE_DEPARTMENTS, Capability.WORK_DEPARTMENT)
require_worker = require_capability(Capability.SELF_ASSIGN)
require_submitter = require_capability(Capability.SUBMIT_FINAL)
require_approver = require_capability(Capability.APPROVE_SUBMISSION)
require_admin = require_capability(Capability.MANAGE_USERS)
