import pytest

import main
from listing_pipeline import config
from listing_pipeline.completeness import check_completeness
from listing_pipeline.models import PipelineResult
from listing_pipeline.pipeline import run_pipeline


@pytest.mark.asyncio
async def test_same_row_in_two_shards_yields_one_final_record(write_shard, make_row, tmp_path, jakarta):
    """
    Two shards carry the identical row with a lowercase, space-padded label.
    It is merged twice, collapsed once and exported as record 1.
    """
    row = make_row(idsbr="A1", Query="Toko Baju", Validasi="ditemukan ")
    shards = [write_shard("part1.csv", [row]), write_shard("part2.csv", [row])]

    result = await run_pipeline(shards, output_dir=tmp_path / "out", bounding_box=jakarta, threshold=0.7)

    assert isinstance(result, PipelineResult)
    assert result.shards_merged == 2
    assert result.raw_rows == 2
    assert result.duplicate_rows == 2
    assert result.distinct_rows == 1
    assert len(result.records) == 1
    assert result.records[0].ids == 1
    assert result.records[0].validasi.value == "Ditemukan"

    full = (tmp_path / "out" / "Sensus_Ekonomi_CLEAN.csv").read_text(encoding="utf-8").splitlines()
    public = (tmp_path / "out" / "Sensus_Ekonomi_FINAL.csv").read_text(encoding="utf-8").splitlines()
    assert full[1].startswith('"1";"A1"')
    assert public[1].startswith('"A1"')
    assert len(full) == len(public) == 2


@pytest.mark.asyncio
async def test_low_similarity_found_row_is_excluded(write_shard, make_row, tmp_path, jakarta):
    rows = [
        make_row(idsbr="A1", Validasi="Ditemukan"),
        make_row(idsbr="A2", Validasi="Ditemukan", Query="Toko Baju Maju", **{"Actual Place Name": "Apotek Sehat"}),
        make_row(idsbr="A3", Validasi="Tidak Ditemukan"),
        make_row(idsbr="A4", Validasi="Ditemukan", Latitude="", Longitude=""),
        make_row(idsbr="A5", Validasi="Ditemukan", Rating="n/a"),
    ]
    shards = [write_shard("part1.csv", rows)]

    result = await run_pipeline(shards, output_dir=tmp_path / "out", bounding_box=jakarta, threshold=0.7)

    assert [r.idsbr for r in result.records] == ["A1", "A5"]
    assert [r.ids for r in result.records] == [1, 2]
    assert result.records[1].rating is None
    assert (tmp_path / "out" / "validation_audit.csv").exists()


@pytest.mark.asyncio
async def test_corrupt_shard_degrades_instead_of_failing(write_shard, make_row, tmp_path, jakarta):
    good = write_shard("part1.csv", [make_row(Validasi="Ditemukan")])
    corrupt = tmp_path / "part2.csv"
    corrupt.write_bytes(b"\xff\xfe\x00")

    result = await run_pipeline([good, corrupt], output_dir=tmp_path / "out", bounding_box=jakarta)

    assert result.failed_shards == [str(corrupt)]
    assert result.shards_merged == 1
    assert len(result.records) == 1


def test_completeness_scenario(write_shard, make_row):
    shards = [write_shard("part1.csv", [make_row(Query="Q1")]), write_shard("part2.csv", [make_row(Query="Q3")])]

    assert check_completeness({"Q1", "Q2", "Q3"}, shards).missing_units == {"Q2"}


def test_cli_run_and_check(write_shard, make_row, tmp_path):
    write_shard("part1.csv", [make_row(Query="Q1", **{"Actual Place Name": "Q1"})])
    queries = tmp_path / "input" / "queries.csv"
    queries.parent.mkdir()
    queries.write_text("Query\r\nQ1\r\nQ2\r\n", encoding="utf-8")
    out = tmp_path / "out"

    rc = main.main(["--shard-dir", str(tmp_path), "--output-dir", str(out), "run", "--city", "jakarta"])
    assert rc == 0
    assert (out / "Sensus_Ekonomi_FINAL.csv").exists()

    rc = main.main(["--shard-dir", str(tmp_path), "--output-dir", str(out), "check", "--queries", str(queries)])
    assert rc == 1
    assert "Q2" in (out / "rescrape_tasks.csv").read_text(encoding="utf-8")


def test_cli_reports_bad_bounding_box(tmp_path, write_shard, make_row):
    write_shard("part1.csv", [make_row()])

    rc = main.main(["--shard-dir", str(tmp_path), "--output-dir", str(tmp_path / "out"), "run", "--bbox", "1,2"])

    assert rc == 1


def test_cli_city_wins_over_configured_bounding_box(write_shard, make_row, tmp_path, monkeypatch):
    monkeypatch.setattr(config, "BOUNDING_BOX", "-6.375,-6.088,106.689,106.974")
    write_shard("part1.csv", [make_row(idsbr="S1", Validasi="Ditemukan", Latitude="-7.2575", Longitude="112.7521")])
    out = tmp_path / "out"

    assert main.main(["--shard-dir", str(tmp_path), "--output-dir", str(out), "run", "--city", "surabaya"]) == 0
    exported = (out / "Sensus_Ekonomi_FINAL.csv").read_text(encoding="utf-8").splitlines()
    assert len(exported) == 2
    assert exported[1].startswith('"S1"')

    assert main.main(["--shard-dir", str(tmp_path), "--output-dir", str(out), "run"]) == 0
    assert len((out / "Sensus_Ekonomi_FINAL.csv").read_text(encoding="utf-8").splitlines()) == 1
