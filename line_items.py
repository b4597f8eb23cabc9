"""
Expense category shapes and their line items.

A budget plan stores each expense category as one JSON blob. The five
category keys map onto three shapes:

    batched   entertainment, material_tambahan   [{mr, tanggal, materials: [...]}]
    termin    tukang, kerja_tambah               [{debet, termin: [...]}]
    flat      harga_tukang                       [{item, satuan, qty, ...}]

Field aliases are the JSON keys used in stored blobs and request bodies.
"""
import json
from enum import Enum
from typing import List, Sequence, Union

from pydantic import BaseModel, Field

Number = Union[int, float]


class Status(str, Enum):
    SUBMITTED = "Pengajuan"
    APPROVED = "Disetujui"
    REJECTED = "Ditolak"


class CategoryKey(str, Enum):
    ENTERTAINMENT = "entertainment"
    MATERIAL_TAMBAHAN = "material_tambahan"
    TUKANG = "tukang"
    KERJA_TAMBAH = "kerja_tambah"
    HARGA_TUKANG = "harga_tukang"


class CategoryShape(str, Enum):
    BATCHED = "batched"
    TERMIN = "termin"
    FLAT = "flat"


CATEGORY_SHAPES = {
    CategoryKey.ENTERTAINMENT: CategoryShape.BATCHED,
    CategoryKey.MATERIAL_TAMBAHAN: CategoryShape.BATCHED,
    CategoryKey.TUKANG: CategoryShape.TERMIN,
    CategoryKey.KERJA_TAMBAH: CategoryShape.TERMIN,
    CategoryKey.HARGA_TUKANG: CategoryShape.FLAT,
}

# Plan table column holding each category's blob
CATEGORY_COLUMNS = {
    CategoryKey.ENTERTAINMENT: "json_pengeluaran_entertaiment",
    CategoryKey.MATERIAL_TAMBAHAN: "json_pengeluaran_material_tambahan",
    CategoryKey.TUKANG: "json_pengeluaran_tukang",
    CategoryKey.KERJA_TAMBAH: "json_kerja_tambah",
    CategoryKey.HARGA_TUKANG: "json_pengajuan_harga_tukang",
}

CATEGORY_LABELS = {
    CategoryKey.ENTERTAINMENT: "Non-material (entertainment)",
    CategoryKey.MATERIAL_TAMBAHAN: "Additional material",
    CategoryKey.TUKANG: "Labor payment",
    CategoryKey.KERJA_TAMBAH: "Extra work payment",
    CategoryKey.HARGA_TUKANG: "Labor pricing proposal",
}


class CategoryRow(BaseModel):
    class Config:
        populate_by_name = True


class LineItem(CategoryRow):
    supplier: str = ""
    item: str = ""
    qty: Number = 0
    unit: str = Field("", alias="satuan")
    unit_price: Number = Field(0, alias="harga_satuan")
    subtotal: Number = Field(0, alias="sub_total")
    status: Status = Status.SUBMITTED


class Batch(CategoryRow):
    label: str = Field("", alias="mr")
    date: str = Field("", alias="tanggal")
    items: List[LineItem] = Field(default_factory=list, alias="materials")


class Termin(CategoryRow):
    date: str = Field("", alias="tanggal")
    credit: Number = Field(0, alias="kredit")
    remaining: Number = Field(0, alias="sisa")
    percentage: str = Field("", alias="persentase")
    status: Status = Status.SUBMITTED


class Section(CategoryRow):
    debit: Number = Field(0, alias="debet")
    termins: List[Termin] = Field(default_factory=list, alias="termin")


class PricingProposal(CategoryRow):
    item: str = ""
    unit: str = Field("", alias="satuan")
    qty: Number = 0
    unit_price: Number = Field(0, alias="harga_satuan")
    total_price: Number = Field(0, alias="total_harga")
    status: Status = Status.SUBMITTED


Category = Union[List[Batch], List[Section], List[PricingProposal]]


def shape_of(key: CategoryKey) -> CategoryShape:
    return CATEGORY_SHAPES[CategoryKey(key)]


def count_submitted_batches(batches: Sequence[Batch]) -> int:
    return sum(
        1 for batch in batches for item in batch.items if item.status == Status.SUBMITTED
    )


def count_submitted_sections(sections: Sequence[Section]) -> int:
    return sum(
        1
        for section in sections
        for termin in section.termins
        if termin.status == Status.SUBMITTED
    )


def count_submitted_proposals(proposals: Sequence[PricingProposal]) -> int:
    return sum(1 for proposal in proposals if proposal.status == Status.SUBMITTED)


_COUNTERS = {
    CategoryShape.BATCHED: count_submitted_batches,
    CategoryShape.TERMIN: count_submitted_sections,
    CategoryShape.FLAT: count_submitted_proposals,
}


def count_submitted(key: CategoryKey, category: Category) -> int:
    """Number of items in ``category`` still waiting for a decision."""
    return _COUNTERS[shape_of(key)](category)


def to_wire(category: Category) -> list:
    return [row.model_dump(by_alias=True, mode="json") for row in category]


def dump_category(category: Category) -> str:
    return json.dumps(to_wire(category))
