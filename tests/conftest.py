# tests/conftest.py
import gzip
import json
import logging
import os
from typing import Iterable, List, Optional

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pysam
import pytest

from sccnv.domain.samplesheet import Samplesheet
from sccnv.infrastructure.logger import LOGGER_NAME


@pytest.fixture(autouse=True)
def _isolate_shared_logger():
    """Keep handlers added by one test off the shared pipeline logger in the next"""
    shared = logging.getLogger(LOGGER_NAME)
    handlers, level = list(shared.handlers), shared.level
    yield
    for handler in shared.handlers:
        if handler not in handlers:
            handler.close()
    shared.handlers = handlers
    shared.setLevel(level)


class FakeCaller:
    """Stands in for the external copy-number caller and records each request"""

    def __init__(self, binned_cells: Optional[Iterable[str]] = None, fail: bool = False):
        self.requests = []
        self.staged_files = []
        self.binned_cells = binned_cells
        self.factor_requests = []
        self.fail = fail

    def call(self, request) -> None:
        self.requests.append(request)
        self.staged_files.append(
            {
                name: os.path.realpath(os.path.join(request.input_dir, name))
                for name in sorted(os.listdir(request.input_dir))
            }
        )
        if self.fail:
            raise RuntimeError("caller exited with status 1")
        if self.binned_cells is not None:
            binned_dir = os.path.join(request.output_dir, "binned-GC")
            os.makedirs(binned_dir, exist_ok=True)
            for cell in self.binned_cells:
                name = f"{cell}_dedup.bam_binsize_{request.bin_size}_stepsize_{request.step_size}.RData"
                with open(os.path.join(binned_dir, name), "wb") as handle:
                    handle.write(b"RDX3")

    def determine_sequenceability_factors(self, binned_dir: str, bins_file: str, output_file: str) -> None:
        binned_files = sorted(os.listdir(binned_dir))
        layout = pd.read_csv(bins_file, sep="\t", dtype={"chromosome": str})
        self.factor_requests.append((binned_files, layout))
        with open(output_file, "wb") as handle:
            handle.write(b"RDX3")


def write_quality_record(base_dir, donor: str, sample_name: str, **metrics) -> str:
    """Write a model file and its exported quality record for one cell"""
    models_dir = os.path.join(str(base_dir), donor, "MODELS", "method-edivisive")
    os.makedirs(models_dir, exist_ok=True)
    model_file = os.path.join(
        models_dir, f"{sample_name}_dedup.bam_binsize_5e+05_stepsize_5e+05_CNV.RData"
    )
    with open(model_file, "wb") as handle:
        handle.write(b"RDX3")
    record = {
        "num.segments": metrics.get("num_segments", 40),
        "bhattacharyya": metrics.get("bhattacharyya", 0.5),
        "spikiness": metrics.get("spikiness", 0.2),
        "entropy": metrics.get("entropy", 3.0),
        "total.read.count": metrics.get("total_read_count", 500000),
    }
    quality_file = model_file + ".quality.json"
    with open(quality_file, "w") as handle:
        json.dump({"qualityInfo": record}, handle)
    return quality_file


@pytest.fixture
def fake_caller():
    return FakeCaller()


@pytest.fixture
def make_samplesheet(tmp_path):
    """Build a samplesheet whose alignment files (and indices) exist on disk"""

    def _make(rows, with_index: bool = True) -> Samplesheet:
        data_dir = tmp_path / "data"
        data_dir.mkdir(exist_ok=True)
        records = []
        for sample_name, donor, include_in_sf in rows:
            filename = data_dir / f"{sample_name}_dedup.bam"
            filename.write_bytes(b"BAM\x01")
            if with_index:
                (data_dir / f"{sample_name}_dedup.bam.bai").write_bytes(b"BAI\x01")
            records.append(
                {
                    "sample_name": sample_name,
                    "filename": str(filename),
                    "donor": donor,
                    "include_in_sf": include_in_sf,
                }
            )
        return Samplesheet.from_records(records)

    return _make


@pytest.fixture
def samplesheet_file(tmp_path):
    """Write a samplesheet TSV from (name, filename, donor, flag) rows"""

    def _write(rows, name: str = "samplesheet.tsv") -> str:
        path = tmp_path / name
        lines = ["sample_name\tfilename\tdonor\tinclude_in_sf"]
        lines += ["\t".join(str(value) for value in row) for row in rows]
        path.write_text("\n".join(lines) + "\n")
        return str(path)

    return _write


SEGMENT_LENGTH = 20


def write_bam(path: str, references, reads) -> str:
    """
    Write a coordinate-sorted, indexed BAM.

    ``references`` holds (name, length) pairs and ``reads`` holds
    (reference id, position, mapping quality, flag) tuples in sorted order.
    """
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": length} for name, length in references],
    }
    with pysam.AlignmentFile(path, "wb", header=header) as out:
        for i, (ref_id, pos, mapq, flag) in enumerate(reads):
            segment = pysam.AlignedSegment()
            segment.query_name = f"read{i}"
            segment.query_sequence = "A" * SEGMENT_LENGTH
            segment.flag = flag
            segment.reference_id = ref_id
            segment.reference_start = pos
            segment.mapping_quality = mapq
            segment.cigartuples = [(0, SEGMENT_LENGTH)]
            segment.query_qualities = pysam.qualitystring_to_array("I" * SEGMENT_LENGTH)
            out.write(segment)
    pysam.index(path)
    return path


@pytest.fixture
def small_bam(tmp_path):
    """
    Coordinate-sorted, indexed BAM with chromosomes 1 (1000 bp), X (450 bp)
    and 2 (300 bp).
    """
    reads = [
        (0, 5, 60, 0),
        (0, 15, 60, 0),
        (0, 150, 60, 16),
        (0, 300, 5, 0),
        (0, 400, 60, 1024),
        (0, 500, 60, 256),
        (0, 950, 60, 0),
        (1, 10, 60, 0),
        (1, 420, 60, 0),
        (2, 50, 60, 0),
    ]
    return write_bam(
        str(tmp_path / "cell_dedup.bam"), [("1", 1000), ("X", 450), ("2", 300)], reads
    )


@pytest.fixture
def ucsc_bam(tmp_path):
    """
    BAM named the UCSC way (chr1 with 1.5 Mb, chrX with 0.6 Mb) holding 50
    MAPQ 60 reads: 40 on chr1, 10 on chrX.
    """
    reads = [(0, 10000 + i * 30000, 60, 0) for i in range(40)]
    reads += [(1, 20000 + i * 40000, 60, 0) for i in range(10)]
    return write_bam(
        str(tmp_path / "ucsc_dedup.bam"), [("chr1", 1500000), ("chrX", 600000)], reads
    )


def read_gzip_lines(path: str) -> List[str]:
    with gzip.open(path, "rt") as handle:
        return [line.rstrip("\n") for line in handle if line.strip()]
