import csv
from pathlib import Path

import pytest

from listing_pipeline.models import RAW_COLUMNS, BoundingBox


def _row(**overrides):
    """A scraped row inside Jakarta whose place name matches its query."""
    row = {
        "idsbr": "A1",
        "Query": "Toko Baju",
        "Actual Place Name": "Toko Baju",
        "Category": "Toko Pakaian",
        "Rating": "4.5",
        "Address": "Jl. Sabang No. 12, Jakarta Pusat",
        "Phone Number": "0812-3456-7890",
        "Website": "",
        "Latitude": "-6.1862",
        "Longitude": "106.8230",
        "Status": "Buka",
        "Open Status": "Buka 24 jam",
        "Operation Hours": "Senin: 08.00-21.00",
        "Place": "Menteng",
        "Validasi": "ditemukan ",
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_row():
    """Factory for raw rows; multi-word columns are passed as **{"Actual Place Name": ...}."""
    return _row


@pytest.fixture
def jakarta():
    return BoundingBox(lat_min=-6.375, lat_max=-6.088, lon_min=106.689, lon_max=106.974)


@pytest.fixture
def write_shard(tmp_path):
    """Write rows as a ';'-delimited, fully quoted, CRLF shard and return its path."""

    def _write(name, rows, columns=RAW_COLUMNS):
        path = Path(tmp_path) / name
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, delimiter=";", quotechar='"', quoting=csv.QUOTE_ALL, lineterminator="\r\n")
            writer.writerow(columns)
            for row in rows:
                writer.writerow([row.get(col, "") for col in columns])
        return path

    return _write
