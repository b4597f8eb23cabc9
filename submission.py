"""
Supervisor resubmission of a whole expense category.

The client always sends its full current view of the category, so items
carry no identity across submissions. The stored blob is replaced
wholesale and administrators hear about it only when the number of
pending items went up. Editing an amount on an existing pending item
therefore goes unannounced, and a reorder that happens to raise the
count is announced.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from line_items import (
    CATEGORY_COLUMNS,
    CATEGORY_LABELS,
    Category,
    CategoryKey,
    count_submitted,
    dump_category,
)
from normalizer import normalize_category, parse_stored_category
from notifications import NotificationDispatcher, RelatedRef
from store import BudgetPlanStore, category_revision

logger = logging.getLogger(__name__)

SUBMISSION_NOTIFICATION_TYPE = "pengajuan"


@dataclass
class SubmissionResult:
    plan_id: int
    category: CategoryKey
    items: Category
    before: int
    after: int
    notified: bool
    revision: str


def submit_category(
    db: Session,
    dispatcher: NotificationDispatcher,
    plan_id: int,
    key: CategoryKey,
    payload: Any,
    supervisor_id: Optional[int] = None,
) -> SubmissionResult:
    key = CategoryKey(key)
    store = BudgetPlanStore(db)
    plan = store.get_plan(plan_id, supervisor_id=supervisor_id)

    current = parse_stored_category(key, getattr(plan, CATEGORY_COLUMNS[key]))
    normalized = normalize_category(key, payload)
    before = count_submitted(key, current)
    after = count_submitted(key, normalized)

    blob = dump_category(normalized)
    store.put_category_blob(plan_id, key, blob)
    logger.info(
        "Plan %s %s submitted: %s pending before, %s after", plan_id, key.value, before, after
    )

    notified = False
    if after > before:
        _announce_new_items(store, dispatcher, plan, key, after - before)
        notified = True

    return SubmissionResult(
        plan_id=plan_id,
        category=key,
        items=normalized,
        before=before,
        after=after,
        notified=notified,
        revision=category_revision(blob),
    )


def _announce_new_items(store, dispatcher, plan, key: CategoryKey, new_items: int) -> None:
    supervisor = store.get_user(plan.supervisi_id) if plan.supervisi_id else None
    who = supervisor.name if supervisor else "A supervisor"
    label = CATEGORY_LABELS[key]
    dispatcher.notify_administrators(
        title=f"New {label.lower()} request",
        body=f"{who} submitted {new_items} new item(s) for {plan.proyek or 'plan #%s' % plan.id}",
        category=SUBMISSION_NOTIFICATION_TYPE,
        related_ref=RelatedRef(plan.id),
        action_path=f"/admin/pengajuan/{key.value}?rab_id={plan.id}",
        payload={"rab_id": plan.id, "category": key.value, "new_items": new_items},
    )
