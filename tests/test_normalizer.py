import pytest

from errors import ValidationError
from line_items import CategoryKey, Status, to_wire
from normalizer import (
    normalize_category,
    parse_currency,
    parse_number,
    parse_quantity,
    parse_stored_category,
)


def _batches():
    return [
        {
            "mr": "MR-001",
            "tanggal": "2024-01-10",
            "materials": [
                {"supplier": "Toko Jaya", "item": "Semen", "qty": "10", "satuan": "sak", "harga_satuan": "65000"},
                {"supplier": "", "item": "", "qty": "", "satuan": "", "harga_satuan": ""},
            ],
        },
        {"mr": "MR-002", "tanggal": "-", "materials": [{"supplier": None, "item": None}]},
    ]


def test_empty_rows_and_batches_are_dropped():
    batches = normalize_category(CategoryKey.ENTERTAINMENT, _batches())

    assert len(batches) == 1
    assert batches[0].label == "MR-001"
    assert [item.item for item in batches[0].items] == ["Semen"]


def test_line_item_numbers_are_coerced_and_subtotal_computed():
    item = normalize_category(CategoryKey.MATERIAL_TAMBAHAN, _batches())[0].items[0]

    assert item.qty == 10
    assert item.unit_price == 65000
    assert item.subtotal == 650000
    assert item.status == Status.SUBMITTED


def test_termin_sections_keep_debit_and_drop_blank_termins():
    payload = [
        {
            "debit": 1000000,
            "termin": [
                {"tanggal": "2024-01-10", "kredit": 500000, "status": "Pengajuan"},
                {"tanggal": "", "kredit": "", "sisa": "", "persentase": ""},
            ],
        },
        {"debet": "2.000.000", "termin": []},
    ]

    sections = normalize_category(CategoryKey.TUKANG, payload)

    assert len(sections) == 1
    assert sections[0].debit == 1000000
    assert len(sections[0].termins) == 1
    assert sections[0].termins[0].credit == 500000


def test_flat_currency_is_parsed_without_separators():
    payload = [{"item": "Pasang keramik", "satuan": "m2", "qty": "10", "harga_satuan": "Rp 2.500.000"}]

    proposal = normalize_category(CategoryKey.HARGA_TUKANG, payload)[0]

    assert proposal.unit_price == 2500000
    assert proposal.total_price == 25000000


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Rp 2.500.000", 2500000),
        ("Rp2.500.000", 2500000),
        ("  750000 ", 750000),
        (1500, 1500),
        (None, 0),
        ("", 0),
    ],
)
def test_parse_currency(raw, expected):
    assert parse_currency(raw, "harga_satuan") == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2.500.000", 2500000),
        ("2,500,000", 2500000),
        ("1,5", 1.5),
        ("10.500", 10500),
        ("10.25", 10.25),
        ("Rp 500000", 500000),
        (12.0, 12),
        (10.005, 10.005),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw, "kredit") == expected


@pytest.mark.parametrize("raw", ["sepuluh", "12abc", True, {"value": 1}, float("nan")])
def test_parse_number_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        parse_number(raw, "kredit")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.500", 1.5),
        ("10.005", 10.005),
        ("1,5", 1.5),
        (" 12 ", 12),
        ("", 0),
        (None, 0),
        (2.25, 2.25),
    ],
)
def test_parse_quantity_reads_dot_as_decimal_mark(raw, expected):
    assert parse_quantity(raw, "qty") == expected


@pytest.mark.parametrize("raw", ["1.500.000", "dua", "inf", True])
def test_parse_quantity_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        parse_quantity(raw, "qty")


def test_fractional_quantity_keeps_subtotal_in_scale():
    payload = [{"materials": [{"item": "Kabel", "qty": "1.500", "harga_satuan": 20000}]}]

    item = normalize_category(CategoryKey.MATERIAL_TAMBAHAN, payload)[0].items[0]

    assert item.qty == 1.5
    assert item.subtotal == 30000


def test_parse_currency_rejects_decimal_comma():
    with pytest.raises(ValidationError):
        parse_currency("Rp 2.500,50", "harga_satuan")


def test_missing_status_defaults_to_submitted_and_approved_is_kept():
    payload = [
        {"item": "Bongkar", "satuan": "ls", "qty": 1, "harga_satuan": 100000},
        {"item": "Pasang", "satuan": "ls", "qty": 1, "harga_satuan": 200000, "status": "Disetujui"},
    ]

    proposals = normalize_category(CategoryKey.HARGA_TUKANG, payload)

    assert [p.status for p in proposals] == [Status.SUBMITTED, Status.APPROVED]


def test_resubmitted_rejection_goes_back_to_submitted():
    payload = [{"debet": 100, "termin": [{"kredit": 50, "status": "Ditolak"}]}]

    resubmitted = normalize_category(CategoryKey.KERJA_TAMBAH, payload)
    stored = normalize_category(CategoryKey.KERJA_TAMBAH, payload, resubmission=False)

    assert resubmitted[0].termins[0].status == Status.SUBMITTED
    assert stored[0].termins[0].status == Status.REJECTED


def test_unknown_status_is_rejected():
    payload = [{"item": "Cor", "satuan": "m3", "qty": 2, "status": "Approved"}]
    with pytest.raises(ValidationError):
        normalize_category(CategoryKey.HARGA_TUKANG, payload)


@pytest.mark.parametrize(
    "payload",
    [
        {"mr": "MR-1"},
        "[]",
        None,
        ["not an object"],
        [{"mr": "MR-1", "materials": "Semen"}],
        [{"mr": "MR-1", "materials": [{"item": "Semen", "qty": "banyak"}]}],
    ],
)
def test_malformed_payload_raises_validation_error(payload):
    with pytest.raises(ValidationError):
        normalize_category(CategoryKey.ENTERTAINMENT, payload)


@pytest.mark.parametrize(
    "key, payload",
    [
        (CategoryKey.ENTERTAINMENT, _batches()),
        (
            CategoryKey.TUKANG,
            [{"debet": "1.000.000", "termin": [{"tanggal": "2024-01-10", "kredit": "500.000", "persentase": 50}]}],
        ),
        (
            CategoryKey.HARGA_TUKANG,
            [{"item": " Cat dinding ", "satuan": "m2", "qty": "10,005", "harga_satuan": "Rp 35.000", "status": "Ditolak"}],
        ),
    ],
)
def test_normalizing_twice_changes_nothing(key, payload):
    once = to_wire(normalize_category(key, payload))
    twice = to_wire(normalize_category(key, once))

    assert twice == once


@pytest.mark.parametrize("blob", [None, "", "{not json", '{"mr": 1}', '[{"materials": [{"qty": "x"}]}]'])
def test_unreadable_stored_blob_is_empty(blob):
    assert parse_stored_category(CategoryKey.ENTERTAINMENT, blob) == []


def test_stored_blob_keeps_rejections():
    blob = '[{"item": "Cor", "satuan": "m3", "qty": 2, "status": "Ditolak"}]'

    proposals = parse_stored_category(CategoryKey.HARGA_TUKANG, blob)

    assert proposals[0].status == Status.REJECTED
