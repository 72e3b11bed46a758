"""Activity log sink for order events."""
from typing import Any, Dict, Optional

from goldworks.models.activity import ActivityAction, OrderActivity
from goldworks.repository import WorkflowRepository


class ActivityLog:
    """Adds activity entries to the caller's transaction.

    Entries are written with the same repository as the mutation they
    describe, so they commit or roll back together with it.
    """

    def __init__(self, repo: WorkflowRepository) -> None:
        self.repo = repo

    def record(
        self,
        order_id: str,
        action: ActivityAction,
        title: str,
        description: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> OrderActivity:
        entry = OrderActivity(
            order_id=order_id,
            user_id=user_id,
            action=ActivityAction(action).value,
            title=title,
            description=description,
            details=details or {},
        )
        self.repo.add(entry)
        return entry

    def status_change(self, order_id: str, old: str, new: str, user_id: Optional[str] = None) -> OrderActivity:
        return self.record(
            order_id,
            ActivityAction.STATUS_CHANGE,
            f"Status changed to {new}",
            description=f"Order status changed from {old} to {new}",
            user_id=user_id,
            details={"from": old, "to": new},
        )
