from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from approval import set_item_status
from auth import require_admin
from database import get_db, User
from line_items import CATEGORY_COLUMNS, CategoryKey, Status, shape_of, to_wire
from normalizer import parse_stored_category
from notifications import NotificationDispatcher, get_dispatcher
from review_queue import list_category_items
from schemas import ApprovalOut, CategoryView, PlanStatusOut, PlanStatusUpdate, StatusUpdate
from store import BudgetPlanStore, category_revision

admin_router = APIRouter()


@admin_router.get("/pengajuan/{category}")
async def get_review_queue(
    category: CategoryKey,
    status_filter: Optional[Status] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return {"status": "success", "data": list_category_items(db, category, status_filter)}


@admin_router.get("/rab/{rab_id}/categories/{category}", response_model=CategoryView)
async def get_category(
    rab_id: int,
    category: CategoryKey,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    plan = BudgetPlanStore(db).get_plan(rab_id)
    blob = getattr(plan, CATEGORY_COLUMNS[category])
    return CategoryView(
        rab_id=plan.id,
        category=category.value,
        items=to_wire(parse_stored_category(category, blob)),
        revision=category_revision(blob),
    )


@admin_router.patch("/pengajuan/{category}/{rab_id}/update-status")
def update_item_status(
    category: CategoryKey,
    rab_id: int,
    update: StatusUpdate = Body(...),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: User = Depends(require_admin),
):
    result = set_item_status(
        db,
        dispatcher,
        rab_id,
        category,
        update.to_locator(shape_of(category)),
        update.status,
        revision=update.revision,
    )
    message = "Status updated" if result.changed else "Status already set, nothing to do"
    return {
        "status": "success",
        "message": message,
        "data": ApprovalOut(
            rab_id=result.plan_id,
            category=result.category.value,
            status=result.status.value,
            changed=result.changed,
            notified=result.notified,
            item=result.item,
            revision=result.revision,
        ),
    }


@admin_router.patch("/rab/{rab_id}/status", response_model=PlanStatusOut)
async def update_plan_status(
    rab_id: int,
    update: PlanStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return BudgetPlanStore(db).update_plan_status(rab_id, update.status)
