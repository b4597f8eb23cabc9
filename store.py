"""Persistence boundary for budget plans and the user directory."""
import hashlib
import logging
from contextlib import contextmanager
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import BudgetPlan, User, ROLE_ADMIN
from errors import InvalidStatus, NotFound, StoreError
from line_items import CATEGORY_COLUMNS, CategoryKey

logger = logging.getLogger(__name__)

PLAN_STATUSES = ["draft", "on_progress", "selesai"]
CLOSED_PLAN_STATUS = "selesai"


def category_revision(blob: Optional[str]) -> str:
    """Fingerprint of a stored blob, used to detect a stale read."""
    return hashlib.sha256((blob or "").encode("utf-8")).hexdigest()


@contextmanager
def store_errors(db: Session, action: str):
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Store failure while %s: %s", action, e)
        raise StoreError(f"Could not {action}") from e


class BudgetPlanStore:
    def __init__(self, db: Session):
        self.db = db

    def get_plan(self, plan_id: int, supervisor_id: Optional[int] = None) -> BudgetPlan:
        with store_errors(self.db, "load budget plan"):
            query = self.db.query(BudgetPlan).filter(
                BudgetPlan.id == plan_id, BudgetPlan.status_deleted.is_(False)
            )
            if supervisor_id is not None:
                query = query.filter(BudgetPlan.supervisi_id == supervisor_id)
            plan = query.first()
        if plan is None:
            raise NotFound("Budget plan not found", plan_id=plan_id)
        return plan

    def get_category_blob(self, plan_id: int, key: CategoryKey) -> Optional[str]:
        plan = self.get_plan(plan_id)
        return getattr(plan, CATEGORY_COLUMNS[CategoryKey(key)])

    def put_category_blob(self, plan_id: int, key: CategoryKey, blob: str) -> None:
        plan = self.get_plan(plan_id)
        with store_errors(self.db, "save category"):
            setattr(plan, CATEGORY_COLUMNS[CategoryKey(key)], blob)
            self.db.commit()
        logger.info("Replaced %s on plan %s", CategoryKey(key).value, plan_id)

    def get_plan_supervisor(self, plan_id: int) -> Optional[int]:
        return self.get_plan(plan_id).supervisi_id

    def get_user(self, user_id: int) -> Optional[User]:
        with store_errors(self.db, "load user"):
            return (
                self.db.query(User)
                .filter(User.id == user_id, User.status_deleted.is_(False))
                .first()
            )

    def list_administrator_ids(self) -> Set[int]:
        with store_errors(self.db, "list administrators"):
            rows = (
                self.db.query(User.id)
                .filter(User.role == ROLE_ADMIN, User.status_deleted.is_(False))
                .all()
            )
        return {row.id for row in rows}

    def list_open_plans(self) -> List[BudgetPlan]:
        """Plans still accepting decisions, newest first."""
        with store_errors(self.db, "list budget plans"):
            return (
                self.db.query(BudgetPlan)
                .filter(
                    BudgetPlan.status_deleted.is_(False),
                    BudgetPlan.status != CLOSED_PLAN_STATUS,
                )
                .order_by(BudgetPlan.created_at.desc(), BudgetPlan.id.desc())
                .all()
            )

    def update_plan_status(self, plan_id: int, status: str) -> BudgetPlan:
        """Move a plan forward through draft -> on_progress -> selesai."""
        if status not in PLAN_STATUSES:
            raise InvalidStatus(
                f"Invalid plan status. Allowed values: {PLAN_STATUSES}", status=status
            )
        plan = self.get_plan(plan_id)
        current = plan.status if plan.status in PLAN_STATUSES else PLAN_STATUSES[0]
        if PLAN_STATUSES.index(status) < PLAN_STATUSES.index(current):
            raise InvalidStatus(
                f"Plan status cannot go back from {current} to {status}",
                current=current,
                status=status,
            )
        if status != plan.status:
            with store_errors(self.db, "update plan status"):
                plan.status = status
                self.db.commit()
            logger.info("Plan %s moved to %s", plan_id, status)
        return plan
