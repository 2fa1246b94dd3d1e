from decimal import Decimal

import pandas as pd

from listing_pipeline.finalizer import export_final, finalize, to_final_record
from listing_pipeline.models import RAW_COLUMNS, ValidationLabel
from listing_pipeline.parsing import bounded_text, parse_decimal


def test_parse_decimal_is_tolerant():
    assert parse_decimal(" 4.5 ", places=2) == Decimal("4.50")
    assert parse_decimal("4,5", places=2) == Decimal("4.50")
    assert parse_decimal("-6.18623456789", places=7) == Decimal("-6.1862346")
    assert parse_decimal("4,5 bintang") is None
    assert parse_decimal("1.234,5") is None
    assert parse_decimal("") is None
    assert parse_decimal(None) is None
    assert parse_decimal("NaN") is None
    assert parse_decimal("7", lower=0, upper=5) is None


def test_bounded_text():
    assert bounded_text("  ", 10) is None
    assert bounded_text("abcdef", 3) == "abc"
    assert bounded_text("abcdef", None) == "abcdef"


def test_bad_numeric_field_nulls_only_that_field(make_row):
    row = make_row(Validasi="Ditemukan", Rating="bagus", Latitude="-6.1862", Longitude="x")

    record = to_final_record(row, ids=7)

    assert record.ids == 7
    assert record.rating is None
    assert record.latitude == Decimal("-6.1862000")
    assert record.longitude is None
    assert record.actual_place_name == "Toko Baju"
    assert record.website is None
    assert record.validasi is ValidationLabel.FOUND


def test_strings_are_truncated_to_declared_lengths(make_row):
    row = make_row(Validasi="Ditemukan", idsbr="X" * 100, **{"Phone Number": "0" * 40, "Operation Hours": "h" * 1000})

    record = to_final_record(row, ids=1)

    assert len(record.idsbr) == 64
    assert len(record.phone_number) == 32
    assert len(record.operation_hours) == 1000


def test_finalize_assigns_dense_sequential_ids(make_row):
    accepted = pd.DataFrame(
        [make_row(idsbr=f"A{i}", Validasi="Ditemukan") for i in range(4)],
        columns=RAW_COLUMNS,
    )

    records = finalize(accepted)

    assert [r.ids for r in records] == [1, 2, 3, 4]
    assert [r.idsbr for r in records] == ["A0", "A1", "A2", "A3"]


def test_finalize_of_empty_set_is_empty():
    assert finalize(pd.DataFrame(columns=RAW_COLUMNS)) == []


def test_exports_have_headers_and_differ_only_by_ids(tmp_path, make_row):
    accepted = pd.DataFrame(
        [make_row(Validasi="Ditemukan"), make_row(idsbr="A2", Validasi="Ditemukan", Rating="")],
        columns=RAW_COLUMNS,
    )
    records = finalize(accepted)
    full_path, public_path = tmp_path / "out" / "full.csv", tmp_path / "out" / "public.csv"

    export_final(records, full_path, public_path)

    full_lines = full_path.read_bytes().decode("utf-8").split("\r\n")
    public_lines = public_path.read_bytes().decode("utf-8").split("\r\n")
    assert full_lines[0] == ";".join(f'"{c}"' for c in ["ids"] + RAW_COLUMNS)
    assert public_lines[0] == ";".join(f'"{c}"' for c in RAW_COLUMNS)
    assert full_lines[1].startswith('"1";"A1";"Toko Baju"')
    assert public_lines[1].startswith('"A1";"Toko Baju"')
    assert full_lines[2].startswith('"2";"A2"')
    assert '"4.50"' in public_lines[1]
    assert public_lines[1].endswith('"Ditemukan"')
    assert len(full_lines) == len(public_lines) == 4  # header, two rows, trailing empty
