import json

import pytest

from line_items import (
    CATEGORY_SHAPES,
    Batch,
    CategoryKey,
    CategoryShape,
    LineItem,
    PricingProposal,
    Section,
    Status,
    Termin,
    count_submitted,
    dump_category,
    to_wire,
)


@pytest.mark.parametrize("key", list(CategoryKey))
def test_count_submitted_empty_category_is_zero(key):
    assert count_submitted(key, []) == 0


def test_every_category_key_has_a_shape():
    assert set(CATEGORY_SHAPES) == set(CategoryKey)
    assert CATEGORY_SHAPES[CategoryKey.HARGA_TUKANG] == CategoryShape.FLAT
    assert CATEGORY_SHAPES[CategoryKey.KERJA_TAMBAH] == CategoryShape.TERMIN


def test_count_submitted_batches_counts_only_pending_items():
    batches = [
        Batch(label="MR-1", items=[LineItem(item="Semen"), LineItem(item="Pasir", status=Status.APPROVED)]),
        Batch(label="MR-2", items=[LineItem(item="Bata", status=Status.REJECTED), LineItem(item="Cat")]),
    ]
    assert count_submitted(CategoryKey.ENTERTAINMENT, batches) == 2


def test_count_submitted_sections_and_proposals():
    sections = [
        Section(debit=1000000, termins=[Termin(credit=500000), Termin(credit=250000, status=Status.APPROVED)])
    ]
    proposals = [
        PricingProposal(item="Bongkar", qty=1),
        PricingProposal(item="Pasang", qty=2),
        PricingProposal(item="Cor", qty=3, status=Status.REJECTED),
    ]
    assert count_submitted(CategoryKey.TUKANG, sections) == 1
    assert count_submitted(CategoryKey.HARGA_TUKANG, proposals) == 2


def test_to_wire_uses_stored_json_keys():
    sections = [Section(debit=1000000, termins=[Termin(date="2024-01-10", credit=500000)])]

    wire = to_wire(sections)

    assert wire == [
        {
            "debet": 1000000,
            "termin": [
                {
                    "tanggal": "2024-01-10",
                    "kredit": 500000,
                    "sisa": 0,
                    "persentase": "",
                    "status": "Pengajuan",
                }
            ],
        }
    ]
    assert json.loads(dump_category(sections)) == wire
