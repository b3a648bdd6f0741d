import pandas as pd
import pytest

from sccnv.domain.errors import SamplesheetError
from sccnv.domain.samplesheet import Samplesheet, parse_flag
from sccnv.infrastructure.data.samplesheet_loader import SamplesheetLoader


def test_load_parses_flags_and_donors(samplesheet_file) -> None:
    """
    Loading a TSV samplesheet keeps row order, parses the include_in_sf
    flag and lists donors in order of first appearance.
    """
    path = samplesheet_file(
        [
            ("c1", "/data/c1_dedup.bam", "D2", 1),
            ("c2", "/data/c2_dedup.bam", "D1", 0),
            ("c3", "/data/c3_dedup.bam", "D2", "yes"),
        ]
    )
    samplesheet = SamplesheetLoader().load(path)

    assert samplesheet.sample_names == ["c1", "c2", "c3"]
    assert samplesheet.donors == ["D2", "D1"]
    assert samplesheet.sequenceability_subset().sample_names == ["c1", "c3"]
    assert samplesheet.for_donor("D2").sample_names == ["c1", "c3"]


def test_duplicate_sample_names_are_rejected(samplesheet_file) -> None:
    path = samplesheet_file(
        [
            ("c1", "/data/a.bam", "D1", 1),
            ("c1", "/data/b.bam", "D1", 0),
        ]
    )
    with pytest.raises(SamplesheetError, match="Duplicate"):
        SamplesheetLoader().load(path)


def test_missing_column_is_rejected(tmp_path) -> None:
    path = tmp_path / "bad.tsv"
    path.write_text("sample_name\tfilename\nc1\t/data/c1.bam\n")
    with pytest.raises(SamplesheetError, match="missing columns"):
        SamplesheetLoader().load(str(path))


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        SamplesheetLoader().load(str(tmp_path / "absent.tsv"))


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("TRUE", True), (" y ", True), ("0", False), ("no", False), ("", False), (True, True)],
)
def test_parse_flag(value, expected) -> None:
    assert parse_flag(value) is expected


def test_parse_flag_rejects_unknown_values() -> None:
    with pytest.raises(SamplesheetError):
        parse_flag("maybe")


def test_without_returns_new_samplesheet() -> None:
    """
    Removing samples never mutates the original samplesheet.
    """
    samplesheet = Samplesheet.from_records(
        [
            {"sample_name": "c1", "filename": "/d/c1.bam", "donor": "D1", "include_in_sf": True},
            {"sample_name": "c2", "filename": "/d/c2.bam", "donor": "D1", "include_in_sf": False},
        ]
    )
    filtered = samplesheet.without({"c1"})

    assert filtered.sample_names == ["c2"]
    assert samplesheet.sample_names == ["c1", "c2"]


def test_frame_is_a_copy() -> None:
    samplesheet = Samplesheet.from_records(
        [{"sample_name": "c1", "filename": "/d/c1.bam", "donor": "D1", "include_in_sf": True}]
    )
    frame = samplesheet.frame
    frame.loc[0, "donor"] = "changed"
    assert samplesheet.donors == ["D1"]


def test_non_boolean_flag_column_is_rejected() -> None:
    frame = pd.DataFrame(
        {"sample_name": ["c1"], "filename": ["/d/c1.bam"], "donor": ["D1"], "include_in_sf": ["1"]}
    )
    with pytest.raises(SamplesheetError, match="boolean"):
        Samplesheet(frame)


def test_save_writes_loadable_samplesheet(tmp_path, samplesheet_file) -> None:
    loader = SamplesheetLoader()
    samplesheet = loader.load(
        samplesheet_file([("c1", "/data/c1.bam", "D1", 1), ("c2", "/data/c2.bam", "D1", 0)])
    )
    output = str(tmp_path / "out" / "filtered.tsv")
    loader.save(samplesheet.without(["c2"]), output)

    reloaded = loader.load(output)
    assert reloaded.sample_names == ["c1"]
    assert reloaded.sequenceability_subset().sample_names == ["c1"]


def test_from_records_parses_flag_strings() -> None:
    """String flags from hand-written records follow the samplesheet file rules"""
    samplesheet = Samplesheet.from_records(
        [
            {"sample_name": "c1", "filename": "/d/c1.bam", "donor": "D1", "include_in_sf": "0"},
            {"sample_name": "c2", "filename": "/d/c2.bam", "donor": "D1", "include_in_sf": "1"},
            {"sample_name": "c3", "filename": "/d/c3.bam", "donor": "D1", "include_in_sf": "no"},
            {"sample_name": "c4", "filename": "/d/c4.bam", "donor": "D1", "include_in_sf": 1},
        ]
    )

    assert samplesheet.sequenceability_subset().sample_names == ["c2", "c4"]


def test_from_records_rejects_unknown_flag() -> None:
    with pytest.raises(SamplesheetError):
        Samplesheet.from_records(
            [{"sample_name": "c1", "filename": "/d/c1.bam", "donor": "D1", "include_in_sf": "maybe"}]
        )
