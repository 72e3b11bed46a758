"""Order routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from goldworks.auth import require_order_manager, require_viewer
from goldworks.deps import get_order_service
from goldworks.models.user import User
from goldworks.schemas.order import (
    ActivityResponse,
    OrderCreate,
    OrderResponse,
    OrderStats,
    OrderSummary,
    OrderUpdate,
    StoneCreate,
)
from goldworks.services.orders import OrderService
from goldworks.services.visibility import order_response, order_summary

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("/", response_model=List[OrderSummary])
async def list_orders(
    skip: int = 0,
    limit: int = Query(100, le=500),
    status_filter: Optional[str] = Query(None, description="Filter by status"),
    search: Optional[str] = Query(None, description="Search order number or customer"),
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_viewer)
):
    """List orders, highest priority first."""
    orders = service.list_orders(status=status_filter, search=search, skip=skip, limit=limit, viewer=current_user)
    return [order_summary(order, current_user) for order in orders]


@router.get("/stats", response_model=OrderStats)
async def order_stats(
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_viewer)
):
    """Order counts by status, overdue and due today."""
    return service.stats()


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_order_manager)
):
    """Create a new order with its department rows."""
    order = service.create_order(order_data, current_user)
    return order_response(order, current_user)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_viewer)
):
    """Get a specific order."""
    return order_response(service.get_order(order_id), current_user)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: str,
    order_update: OrderUpdate,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_order_manager)
):
    """Update customer fields, priority or details."""
    order = service.update_order(order_id, order_update, current_user)
    return order_response(order, current_user)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_order_manager)
):
    """Delete an order and everything attached to it."""
    service.delete_order(order_id, current_user)
    return None


@router.post("/{order_id}/stones", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def add_stones(
    order_id: str,
    stones: List[StoneCreate],
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_order_manager)
):
    """Add stones to an order."""
    order = service.add_stones(order_id, stones)
    return order_response(order, current_user)


@router.post("/{order_id}/send-to-factory", response_model=OrderResponse)
async def send_to_factory(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_order_manager)
):
    """Move a draft order into the factory."""
    return order_response(service.send_to_factory(order_id, current_user), current_user)


@router.post("/{order_id}/revert-to-draft", response_model=OrderResponse)
async def revert_to_draft(
    order_id: str,
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_order_manager)
):
    """Take an order back to draft before any department has started."""
    return order_response(service.revert_to_draft(order_id, current_user), current_user)


@router.get("/{order_id}/activity", response_model=List[ActivityResponse])
async def get_activity(
    order_id: str,
    limit: int = Query(100, le=500),
    service: OrderService = Depends(get_order_service),
    current_user: User = Depends(require_viewer)
):
    """Activity log of an order, newest first."""
    return service.list_activity(order_id, limit)
