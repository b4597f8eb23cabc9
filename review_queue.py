"""Flattened view of every open plan's items in one category, for admins."""
import logging
from datetime import datetime
from typing import List, Optional

from dateutil import parser as date_parser
from sqlalchemy.orm import Session

from database import User
from line_items import CATEGORY_COLUMNS, CategoryKey, CategoryShape, Status, shape_of
from normalizer import parse_stored_category
from store import BudgetPlanStore, category_revision, store_errors

logger = logging.getLogger(__name__)


def _parse_date(text: str) -> Optional[datetime]:
    if not text:
        return None
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        return None


def _plan_fields(plan, supervisor_names: dict, revision: str) -> dict:
    return {
        "rab_id": plan.id,
        "rab_proyek": plan.proyek,
        "rab_pekerjaan": plan.pekerjaan,
        "rab_status": plan.status,
        "supervisi_id": plan.supervisi_id,
        "supervisi_nama": supervisor_names.get(plan.supervisi_id, "-"),
        "revision": revision,
    }


def _batched_rows(category, base: dict) -> List[dict]:
    rows = []
    for outer, batch in enumerate(category):
        for inner, item in enumerate(batch.items):
            row = dict(base, mr=batch.label or "-", tanggal=batch.date or None)
            row.update(item.model_dump(by_alias=True, mode="json"))
            row["locator"] = {"outer_index": outer, "inner_index": inner}
            rows.append(row)
    return rows


def _termin_rows(category, base: dict) -> List[dict]:
    rows = []
    for outer, section in enumerate(category):
        for inner, termin in enumerate(section.termins):
            row = dict(base, debet=section.debit)
            row.update(termin.model_dump(by_alias=True, mode="json"))
            row["tanggal"] = termin.date or None
            row["locator"] = {"outer_index": outer, "inner_index": inner}
            rows.append(row)
    return rows


def _flat_rows(category, base: dict) -> List[dict]:
    rows = []
    for proposal in category:
        row = dict(base, tanggal=None)
        row.update(proposal.model_dump(by_alias=True, mode="json"))
        row["locator"] = {"item": proposal.item, "satuan": proposal.unit, "qty": proposal.qty}
        rows.append(row)
    return rows


_FLATTENERS = {
    CategoryShape.BATCHED: _batched_rows,
    CategoryShape.TERMIN: _termin_rows,
    CategoryShape.FLAT: _flat_rows,
}


def list_category_items(
    db: Session, key: CategoryKey, status_filter: Optional[Status] = None
) -> List[dict]:
    """
    Every item of ``key`` across plans that are not finished.

    Each row carries the locator to send back when deciding it. Rows are
    sorted by date, newest first, undated rows last.
    """
    key = CategoryKey(key)
    plans = BudgetPlanStore(db).list_open_plans()
    supervisor_ids = {plan.supervisi_id for plan in plans if plan.supervisi_id}
    supervisor_names = {}
    if supervisor_ids:
        with store_errors(db, "load supervisors"):
            users = db.query(User.id, User.name).filter(User.id.in_(supervisor_ids)).all()
        supervisor_names = {user.id: user.name for user in users}

    flatten = _FLATTENERS[shape_of(key)]
    rows = []
    for plan in plans:
        blob = getattr(plan, CATEGORY_COLUMNS[key])
        category = parse_stored_category(key, blob)
        if category:
            rows.extend(flatten(category, _plan_fields(plan, supervisor_names, category_revision(blob))))

    if status_filter is not None:
        rows = [row for row in rows if row["status"] == Status(status_filter).value]

    dated = [(row, _parse_date(row["tanggal"])) for row in rows]
    with_date = sorted(
        (pair for pair in dated if pair[1] is not None),
        key=lambda pair: pair[1].replace(tzinfo=None),
        reverse=True,
    )
    without_date = [pair for pair in dated if pair[1] is None]
    logger.debug("Review queue %s: %s row(s)", key.value, len(rows))
    return [row for row, _ in with_date + without_date]
