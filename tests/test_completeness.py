import csv

from listing_pipeline.completeness import check_completeness, load_expected_units, write_rescrape_tasks
from listing_pipeline.models import RescrapeReason


def test_missing_units_are_the_set_difference(write_shard, make_row):
    shards = [
        write_shard("part1.csv", [make_row(Query="Q1")]),
        write_shard("part2.csv", [make_row(Query="Q3")]),
    ]

    report = check_completeness({"Q1", "Q2", "Q3"}, shards)

    assert report.missing_units == {"Q2"}
    assert report.produced_units == {"Q1", "Q3"}
    assert report.produced_units | report.missing_units == report.expected_units
    assert not report.produced_units & report.missing_units
    assert [(t.unit, t.reason) for t in report.rescrape_tasks()] == [("Q2", RescrapeReason.MISSING)]


def test_corrupt_and_short_shards_are_flagged(write_shard, make_row, tmp_path):
    big = [make_row(Query=f"Q{i}") for i in range(1, 11)]
    shards = [
        write_shard("part1.csv", big),
        write_shard("part2.csv", [make_row(Query=f"R{i}") for i in range(1, 11)]),
        write_shard("part3.csv", [make_row(Query="S1")]),
    ]
    corrupt = tmp_path / "part4.csv"
    corrupt.write_bytes(b"\xff\xfe\x00")
    expected = {r["Query"] for r in big} | {f"R{i}" for i in range(1, 11)} | {"S1", "S2", "T1"}

    report = check_completeness(expected, shards + [corrupt], min_row_ratio=0.5)

    assert report.corrupt_shards == [str(corrupt)]
    assert report.incomplete_shards == [str(shards[2])]
    assert report.missing_units == {"S2", "T1"}
    assert report.incomplete_units == {"S1": str(shards[2])}
    assert not report.is_complete

    tasks = report.rescrape_tasks()
    assert {(t.unit, t.reason) for t in tasks} == {
        ("S2", RescrapeReason.MISSING),
        ("T1", RescrapeReason.MISSING),
        ("S1", RescrapeReason.INCOMPLETE),
        (None, RescrapeReason.CORRUPT),
    }


def test_complete_run_has_no_tasks(write_shard, make_row):
    shards = [write_shard("part1.csv", [make_row(Query=" Q1 "), make_row(Query="Extra")])]

    report = check_completeness(["Q1"], shards)

    assert report.is_complete
    assert report.rescrape_tasks() == []
    assert report.unexpected_units == {"Extra"}


def test_load_expected_units_with_and_without_header(tmp_path):
    with_header = tmp_path / "queries.csv"
    with_header.write_text("Partition;Query\r\n1;Toko Baju\r\n1;Apotek\r\n2; \r\n", encoding="utf-8")
    plain = tmp_path / "queries.txt"
    plain.write_text("Toko Baju\nApotek\n\n", encoding="utf-8")

    assert load_expected_units(with_header, delimiter=";") == {"Toko Baju", "Apotek"}
    assert load_expected_units(plain) == {"Toko Baju", "Apotek"}


def test_load_expected_units_reads_comma_separated_lists(tmp_path):
    path = tmp_path / "queries.csv"
    path.write_text('Partition,Query\n1,Toko Baju\n2,"Warung Makan, Cabang 2"\n', encoding="utf-8")

    assert load_expected_units(path) == {"Toko Baju", "Warung Makan, Cabang 2"}


def test_write_rescrape_tasks(write_shard, make_row, tmp_path):
    report = check_completeness({"Q1", "Q2"}, [write_shard("part1.csv", [make_row(Query="Q1")])])
    path = tmp_path / "reports" / "rescrape.csv"

    written = write_rescrape_tasks(report.rescrape_tasks(), path)

    assert written == 1
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f, delimiter=";"))
    assert rows == [["unit", "reason", "shard"], ["Q2", "missing", ""]]
