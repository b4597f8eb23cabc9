"""
Administrator decisions on single expense items.

Batched and termin categories are addressed by position (outer, inner)
in the structure the administrator just read; positions shift whenever
the supervisor resubmits, so a client may send back the category
revision it read and get a Conflict instead of deciding the wrong item.
Pricing proposals have no position key and are matched on
(item, unit, qty) with a small tolerance on qty. An ambiguous match is
treated as no match.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from sqlalchemy.orm import Session

from errors import Conflict, InvalidStatus, NotFound, ValidationError
from line_items import (
    CATEGORY_COLUMNS,
    CATEGORY_LABELS,
    Category,
    CategoryKey,
    CategoryShape,
    Status,
    dump_category,
    shape_of,
)
from normalizer import parse_stored_category
from notifications import NotificationDispatcher, RelatedRef
from store import BudgetPlanStore, category_revision

logger = logging.getLogger(__name__)

QTY_TOLERANCE = 0.01
DECISIONS = (Status.APPROVED, Status.REJECTED)
DECISION_NOTIFICATION_TYPE = "pengajuan"


@dataclass(frozen=True)
class IndexLocator:
    outer: int
    inner: int


@dataclass(frozen=True)
class MatchLocator:
    item: str
    unit: str
    qty: float


Locator = Union[IndexLocator, MatchLocator]


@dataclass
class ApprovalResult:
    plan_id: int
    category: CategoryKey
    status: Status
    changed: bool
    notified: bool
    item: dict
    revision: str


def parse_decision(value) -> Status:
    try:
        status = Status(value)
    except ValueError:
        raise InvalidStatus(f"Invalid status: {value!r}", status=str(value))
    if status not in DECISIONS:
        raise InvalidStatus(
            f"Status must be one of {[s.value for s in DECISIONS]}", status=status.value
        )
    return status


def format_rupiah(amount) -> str:
    return "Rp " + f"{amount:,.0f}".replace(",", ".")


def _at(rows, index: int, what: str):
    if index < 0 or index >= len(rows):
        raise NotFound(f"{what} not found", index=index)
    return rows[index]


def _locate_by_index(shape: CategoryShape, category: Category, locator: Locator):
    if not isinstance(locator, IndexLocator):
        raise ValidationError("This category is addressed by outer_index and inner_index")
    if shape == CategoryShape.BATCHED:
        batch = _at(category, locator.outer, "Batch")
        item = _at(batch.items, locator.inner, "Item")
        name = item.item or "item"
        return item, f"{name} ({batch.label})" if batch.label else name
    section = _at(category, locator.outer, "Section")
    termin = _at(section.termins, locator.inner, "Termin")
    return termin, f"termin {locator.inner + 1} ({format_rupiah(termin.credit)})"


def _locate_by_match(category: Category, locator: Locator):
    if not isinstance(locator, MatchLocator):
        raise ValidationError("This category is addressed by item, satuan and qty")
    item, unit = locator.item.strip(), locator.unit.strip()
    matches = [
        proposal
        for proposal in category
        if proposal.item == item
        and proposal.unit == unit
        and abs(proposal.qty - locator.qty) <= QTY_TOLERANCE
    ]
    if len(matches) != 1:
        raise NotFound(
            "Pricing proposal not found" if not matches else "Pricing proposal is ambiguous",
            item=item,
            satuan=unit,
            qty=locator.qty,
            matches=len(matches),
        )
    return matches[0], matches[0].item


def locate_item(key: CategoryKey, category: Category, locator: Locator) -> Tuple[object, str]:
    """Return the addressed row and a short human description of it."""
    shape = shape_of(key)
    if shape == CategoryShape.FLAT:
        return _locate_by_match(category, locator)
    return _locate_by_index(shape, category, locator)


def set_item_status(
    db: Session,
    dispatcher: NotificationDispatcher,
    plan_id: int,
    key: CategoryKey,
    locator: Locator,
    new_status,
    revision: Optional[str] = None,
) -> ApprovalResult:
    key = CategoryKey(key)
    target = parse_decision(new_status)
    store = BudgetPlanStore(db)
    plan = store.get_plan(plan_id)

    blob = getattr(plan, CATEGORY_COLUMNS[key])
    current_revision = category_revision(blob)
    if revision is not None and revision != current_revision:
        raise Conflict(
            "Category changed since it was read, reload and retry",
            revision=current_revision,
        )

    category = parse_stored_category(key, blob)
    row, description = locate_item(key, category, locator)

    if row.status == target:
        logger.info("Plan %s %s %s already %s", plan_id, key.value, description, target.value)
        return ApprovalResult(
            plan_id=plan_id,
            category=key,
            status=target,
            changed=False,
            notified=False,
            item=row.model_dump(by_alias=True, mode="json"),
            revision=current_revision,
        )

    row.status = target
    new_blob = dump_category(category)
    store.put_category_blob(plan_id, key, new_blob)
    logger.info("Plan %s %s %s set to %s", plan_id, key.value, description, target.value)

    notified = _announce_decision(dispatcher, plan, key, description, target)
    return ApprovalResult(
        plan_id=plan_id,
        category=key,
        status=target,
        changed=True,
        notified=notified,
        item=row.model_dump(by_alias=True, mode="json"),
        revision=category_revision(new_blob),
    )


def _announce_decision(dispatcher, plan, key: CategoryKey, description: str, status: Status) -> bool:
    if plan.supervisi_id is None:
        logger.info("Plan %s has no supervisor, decision not announced", plan.id)
        return False
    verdict = "approved" if status == Status.APPROVED else "rejected"
    records = dispatcher.notify_user(
        plan.supervisi_id,
        title=f"Request {verdict}",
        body=f"{CATEGORY_LABELS[key]}: {description} on {plan.proyek or 'plan #%s' % plan.id} was {verdict}",
        category=DECISION_NOTIFICATION_TYPE,
        related_ref=RelatedRef(plan.id),
        action_path=f"/rab/{plan.id}/{key.value}",
        payload={"rab_id": plan.id, "category": key.value, "status": status.value},
    )
    return bool(records)
