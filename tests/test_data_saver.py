import pandas as pd
import pytest

from conftest import read_gzip_lines
from sccnv.domain.errors import SamplesheetError
from sccnv.domain.models import ncbi_chromosome
from sccnv.domain.samplesheet import parse_flag
from sccnv.infrastructure.data.data_saver import PipelineDataSaver
from sccnv.infrastructure.data.samplesheet_loader import SamplesheetLoader


def test_ncbi_chromosome() -> None:
    assert ncbi_chromosome("chr1") == "1"
    assert ncbi_chromosome("X") == "X"
    assert ncbi_chromosome(7) == "7"


def test_blacklist_is_headerless_gzip_bed(tmp_path) -> None:
    path = str(tmp_path / "blacklist_100000.bed.gz")
    regions = pd.DataFrame(
        {"chromosome": ["chr1", "X"], "start": [0.0, 100000.0], "end": [200000.0, 300000.0]}
    )
    saver = PipelineDataSaver()

    saver.save_blacklist(regions, path)

    assert read_gzip_lines(path) == ["1\t0\t200000", "X\t100000\t300000"]
    reread = saver.read_blacklist(path)
    assert reread["chromosome"].tolist() == ["1", "X"]
    assert reread["end"].tolist() == [200000, 300000]


def test_bin_layout_is_headed_tsv(tmp_path) -> None:
    path = tmp_path / "bins.tsv"
    bins = pd.DataFrame(
        {"chromosome": ["chr1", "chr1"], "start": [0, 500000], "end": [500000, 1000000], "counts": [3, 4]}
    )

    PipelineDataSaver().save_bin_layout(bins, str(path))

    assert path.read_text().splitlines() == [
        "chromosome\tstart\tend",
        "chr1\t0\t500000",
        "chr1\t500000\t1000000",
    ]


def test_save_metrics_writes_missing_as_na(tmp_path) -> None:
    path = tmp_path / "tables" / "D1_quality_metrics.tsv"
    metrics = pd.DataFrame({"name": ["a", "b"], "spikiness": [0.25, float("nan")]})

    PipelineDataSaver().save_metrics(metrics, str(path))

    assert path.read_text().splitlines() == ["name\tspikiness", "a\t0.25", "b\tNA"]


def test_parse_flag() -> None:
    assert parse_flag("TRUE") is True
    assert parse_flag(" 1 ") is True
    assert parse_flag("0") is False
    assert parse_flag("") is False
    with pytest.raises(SamplesheetError):
        parse_flag("maybe")


def test_samplesheet_csv_round_trip(tmp_path) -> None:
    source = tmp_path / "samplesheet.csv"
    source.write_text(
        "sample_name,filename,donor,include_in_sf\n"
        "a1,/data/a1_dedup.bam,D1,TRUE\n"
        "a2,/data/a2_dedup.bam,D1,FALSE\n"
    )
    loader = SamplesheetLoader()

    samplesheet = loader.load(str(source))
    loader.save(samplesheet, str(tmp_path / "copy.csv"))
    copy = loader.load(str(tmp_path / "copy.csv"))

    assert copy.sample_names == ["a1", "a2"]
    assert copy.frame["include_in_sf"].tolist() == [True, False]


def test_samplesheet_missing_columns(tmp_path) -> None:
    source = tmp_path / "samplesheet.tsv"
    source.write_text("sample_name\tfilename\na1\t/data/a1_dedup.bam\n")
    with pytest.raises(SamplesheetError, match="missing columns"):
        SamplesheetLoader().load(str(source))
