from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from auth import require_supervisor
from database import get_db, User
from line_items import CATEGORY_COLUMNS, CategoryKey, to_wire
from normalizer import parse_stored_category
from notifications import NotificationDispatcher, get_dispatcher
from schemas import CategoryView, SubmissionOut
from store import BudgetPlanStore, category_revision
from submission import submit_category

router = APIRouter()


def extract_category_payload(category: CategoryKey, body: Any) -> Any:
    """Accept a bare list, {"items": [...]} or the legacy {"json_...": [...]} body."""
    if isinstance(body, dict):
        for key in ("items", CATEGORY_COLUMNS[category]):
            if key in body:
                return body[key]
    return body


@router.get("/rab/{rab_id}/categories/{category}", response_model=CategoryView)
async def get_category(
    rab_id: int,
    category: CategoryKey,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_supervisor),
):
    plan = BudgetPlanStore(db).get_plan(rab_id, supervisor_id=current_user.id)
    blob = getattr(plan, CATEGORY_COLUMNS[category])
    return CategoryView(
        rab_id=plan.id,
        category=category.value,
        items=to_wire(parse_stored_category(category, blob)),
        revision=category_revision(blob),
    )


@router.put("/rab/{rab_id}/categories/{category}")
def update_category(
    rab_id: int,
    category: CategoryKey,
    body: Any = Body(...),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: User = Depends(require_supervisor),
):
    result = submit_category(
        db,
        dispatcher,
        rab_id,
        category,
        extract_category_payload(category, body),
        supervisor_id=current_user.id,
    )
    return {
        "status": "success",
        "message": "Category saved",
        "data": SubmissionOut(
            rab_id=result.plan_id,
            category=result.category.value,
            items=to_wire(result.items),
            revision=result.revision,
            before=result.before,
            after=result.after,
            notified=result.notified,
        ),
    }
