"""
Cleaning of supervisor-submitted category payloads.

Mobile clients post the whole category as they currently display it, with
empty form rows and numbers typed as text ("Rp 2.500.000", "1,5"). This
module turns such a payload into the canonical typed structure from
``line_items`` or raises ``ValidationError`` without side effects.
"""
import json
import logging
import math
import re
from typing import Any, Callable, List, Optional

from errors import ValidationError
from line_items import (
    Batch,
    Category,
    CategoryKey,
    CategoryShape,
    LineItem,
    PricingProposal,
    Section,
    Status,
    Termin,
    shape_of,
)

logger = logging.getLogger(__name__)

_CURRENCY_PREFIX = re.compile(r"^rp\.?", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_DOT_GROUPED = re.compile(r"^-?\d{1,3}(\.\d{3})+$")
_COMMA_GROUPED = re.compile(r"^-?\d{1,3}(,\d{3}){2,}$")
_COMMA_DECIMAL = re.compile(r"^-?\d+,\d+$")
_INTEGER = re.compile(r"^-?\d+$")

# Placeholder the web client renders for a missing date
_DATE_PLACEHOLDER = "-"


def _tidy(number: float):
    if not math.isfinite(number):
        raise ValueError("not a finite number")
    if float(number).is_integer():
        return int(number)
    return float(number)


def _strip_currency(text: str) -> str:
    text = _WHITESPACE.sub("", text)
    return _CURRENCY_PREFIX.sub("", text)


def parse_number(value: Any, field: str):
    """Coerce a loosely typed numeric field; blank means 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field, value=value)
    if isinstance(value, (int, float)):
        try:
            return _tidy(value)
        except ValueError:
            raise ValidationError(f"{field} must be a finite number", field=field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a number", field=field, value=repr(value))

    text = _strip_currency(value)
    if not text:
        return 0
    if _DOT_GROUPED.match(text):
        text = text.replace(".", "")
    elif _COMMA_GROUPED.match(text):
        text = text.replace(",", "")
    elif _COMMA_DECIMAL.match(text):
        text = text.replace(",", ".")
    try:
        return _tidy(float(text))
    except ValueError:
        raise ValidationError(f"{field} is not a number: {value!r}", field=field, value=value)


def parse_quantity(value: Any, field: str):
    """Quantities are never grouped: "1.500" is one and a half, as is "1,5"."""
    if not isinstance(value, str):
        return parse_number(value, field)

    text = _WHITESPACE.sub("", value)
    if not text:
        return 0
    if _COMMA_DECIMAL.match(text):
        text = text.replace(",", ".")
    try:
        return _tidy(float(text))
    except ValueError:
        raise ValidationError(f"{field} is not a number: {value!r}", field=field, value=value)


def parse_currency(value: Any, field: str) -> int:
    """Rupiah amounts: dots group thousands and there is no fraction."""
    if value is None or isinstance(value, (int, float)) and not isinstance(value, bool):
        return parse_number(value, field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an amount", field=field, value=repr(value))

    text = _strip_currency(value).replace(".", "")
    if not text:
        return 0
    if not _INTEGER.match(text):
        raise ValidationError(f"{field} is not an amount: {value!r}", field=field, value=value)
    return int(text)


def parse_text(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(f"{field} must be text", field=field, value=repr(value))


def parse_date(value: Any, field: str) -> str:
    text = parse_text(value, field)
    return "" if text == _DATE_PLACEHOLDER else text


def parse_status(value: Any, resubmission: bool) -> Status:
    if value is None or value == "":
        return Status.SUBMITTED
    try:
        status = Status(value.strip() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value!r}", field="status", value=repr(value))
    # A resubmitted rejection is a fresh request for a decision
    if resubmission and status == Status.REJECTED:
        return Status.SUBMITTED
    return status


def _absent(*values) -> bool:
    return all(value in ("", 0) for value in values)


def _expect_mapping(raw: Any, where: str) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError(f"{where} must be an object", where=where)
    return raw


def _expect_list(raw: Any, where: str) -> list:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(f"{where} must be a list", where=where)
    return raw


def _clean_line_item(raw: Any, resubmission: bool, where: str) -> Optional[LineItem]:
    row = _expect_mapping(raw, where)
    supplier = parse_text(row.get("supplier"), "supplier")
    item = parse_text(row.get("item"), "item")
    qty = parse_quantity(row.get("qty"), "qty")
    unit = parse_text(row.get("satuan"), "satuan")
    unit_price = parse_number(row.get("harga_satuan"), "harga_satuan")
    subtotal = parse_number(row.get("sub_total"), "sub_total")
    if _absent(supplier, item, qty, unit, unit_price, subtotal):
        return None
    if qty and unit_price:
        subtotal = _tidy(round(qty * unit_price, 2))
    return LineItem(
        supplier=supplier,
        item=item,
        qty=qty,
        unit=unit,
        unit_price=unit_price,
        subtotal=subtotal,
        status=parse_status(row.get("status"), resubmission),
    )


def _clean_termin(raw: Any, resubmission: bool, where: str) -> Optional[Termin]:
    row = _expect_mapping(raw, where)
    date = parse_date(row.get("tanggal"), "tanggal")
    credit = parse_number(row.get("kredit"), "kredit")
    remaining = parse_number(row.get("sisa"), "sisa")
    percentage = parse_text(row.get("persentase"), "persentase")
    if _absent(date, credit, remaining, percentage):
        return None
    return Termin(
        date=date,
        credit=credit,
        remaining=remaining,
        percentage=percentage,
        status=parse_status(row.get("status"), resubmission),
    )


def _clean_proposal(raw: Any, resubmission: bool, where: str) -> Optional[PricingProposal]:
    row = _expect_mapping(raw, where)
    item = parse_text(row.get("item"), "item")
    unit = parse_text(row.get("satuan"), "satuan")
    qty = parse_quantity(row.get("qty"), "qty")
    unit_price = parse_currency(row.get("harga_satuan"), "harga_satuan")
    total_price = parse_currency(row.get("total_harga"), "total_harga")
    if _absent(item, unit, qty, unit_price, total_price):
        return None
    if qty and unit_price:
        total_price = _tidy(round(qty * unit_price))
    return PricingProposal(
        item=item,
        unit=unit,
        qty=qty,
        unit_price=unit_price,
        total_price=total_price,
        status=parse_status(row.get("status"), resubmission),
    )


def _clean_rows(raw_rows: Any, clean: Callable, resubmission: bool, where: str) -> list:
    cleaned = []
    for index, raw in enumerate(_expect_list(raw_rows, where)):
        row = clean(raw, resubmission, f"{where}[{index}]")
        if row is not None:
            cleaned.append(row)
    return cleaned


def _normalize_batches(payload: list, resubmission: bool) -> List[Batch]:
    batches = []
    for index, raw in enumerate(payload):
        group = _expect_mapping(raw, f"[{index}]")
        items = _clean_rows(
            group.get("materials"), _clean_line_item, resubmission, f"[{index}].materials"
        )
        if items:
            batches.append(
                Batch(
                    label=parse_text(group.get("mr"), "mr"),
                    date=parse_date(group.get("tanggal"), "tanggal"),
                    items=items,
                )
            )
    return batches


def _normalize_sections(payload: list, resubmission: bool) -> List[Section]:
    sections = []
    for index, raw in enumerate(payload):
        section = _expect_mapping(raw, f"[{index}]")
        termins = _clean_rows(
            section.get("termin"), _clean_termin, resubmission, f"[{index}].termin"
        )
        if termins:
            debit = section.get("debet", section.get("debit"))
            sections.append(Section(debit=parse_number(debit, "debet"), termins=termins))
    return sections


def _normalize_proposals(payload: list, resubmission: bool) -> List[PricingProposal]:
    return _clean_rows(payload, _clean_proposal, resubmission, "")


_NORMALIZERS = {
    CategoryShape.BATCHED: _normalize_batches,
    CategoryShape.TERMIN: _normalize_sections,
    CategoryShape.FLAT: _normalize_proposals,
}


def normalize_category(key: CategoryKey, payload: Any, resubmission: bool = True) -> Category:
    """
    Clean one category payload into its canonical structure.

    Empty rows and groups are dropped, numbers are coerced and statuses
    defaulted. With ``resubmission`` a Rejected item comes back as
    Submitted. Raises ``ValidationError`` on anything that cannot be
    coerced.
    """
    if not isinstance(payload, list):
        raise ValidationError("Category payload must be a list", category=CategoryKey(key).value)
    return _NORMALIZERS[shape_of(key)](payload, resubmission)


def parse_stored_category(key: CategoryKey, blob: Optional[str]) -> Category:
    """Read a stored blob; anything unreadable is an empty category."""
    if not blob:
        return []
    try:
        return normalize_category(key, json.loads(blob), resubmission=False)
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.warning("Treating malformed %s blob as empty: %s", CategoryKey(key).value, e)
        return []
