"""
Core domain models for the copy-number calling pipeline.
Contains data structures for configuration, caller requests and QC results.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import pandas as pd

SEGMENTATION_METHOD = "edivisive"
COPY_NUMBER_STATES = ["zero-inflation"] + [f"{i}-somy" for i in range(11)]
MIN_MAPPING_QUALITY = 10

# Column names used by the copy-number caller's qualityInfo record
QUALITY_FIELDS = {
    "num_segments": "num.segments",
    "bhattacharyya": "bhattacharyya",
    "spikiness": "spikiness",
    "entropy": "entropy",
    "total_read_count": "total.read.count",
}


def ncbi_chromosome(name: Any) -> str:
    """Strip the UCSC ``chr`` prefix"""
    name = str(name)
    return name[3:] if name.startswith("chr") else name


def _default_autosomes() -> List[str]:
    return [str(i) for i in range(1, 30)]


@dataclass
class GenomeConfig:
    """Reference genome and chromosome groupings"""

    assembly: str = "bosTau8"
    reference_genome: str = "BSgenome.Btaurus.UCSC.bosTau8"
    autosomes: List[str] = field(default_factory=_default_autosomes)
    allosomes: List[str] = field(default_factory=lambda: ["X"])

    @property
    def chromosomes(self) -> List[str]:
        return list(self.autosomes) + list(self.allosomes)


@dataclass
class PipelineConfig:
    """Configuration for a full pipeline run"""

    out_dir: str
    samplesheet_file: str
    genome: GenomeConfig = field(default_factory=GenomeConfig)
    blacklist_bin_size: int = 100000
    call_bin_size: int = 500000
    apply_sequenceability: bool = False
    num_cpu: int = 16
    min_mapq: int = MIN_MAPPING_QUALITY
    log_file: Optional[str] = None


@dataclass
class QCConfig:
    """Configuration for the quality-control pass"""

    base_dir: str
    samplesheet_file: str
    donors: List[str] = field(default_factory=list)
    bhattacharyya_threshold: Optional[float] = None
    spikiness_threshold: Optional[float] = None
    min_read_count: int = 200000
    percentile_fraction: float = 0.10
    plot_overlap: bool = False
    plot_style: str = "venn"
    plot_dir: Optional[str] = None
    remove_output: bool = False
    filtered_samplesheet: Optional[str] = None
    log_file: Optional[str] = None


def _as_metric(value: Any) -> Optional[float]:
    """Convert a raw metric value to a finite float, or None when unusable"""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return None
        value = value[0]
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True)
class QualityInfo:
    """Per-cell quality record produced by the copy-number caller.

    Every field is optional; a sample without a result artifact is
    represented by ``QualityInfo.missing()``.
    """

    num_segments: Optional[float] = None
    bhattacharyya: Optional[float] = None
    spikiness: Optional[float] = None
    entropy: Optional[float] = None
    total_read_count: Optional[float] = None

    @classmethod
    def missing(cls) -> "QualityInfo":
        return cls()

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "QualityInfo":
        """Build from a qualityInfo mapping keyed by the caller's field names"""
        values = {}
        for attribute, key in QUALITY_FIELDS.items():
            raw = record.get(key, record.get(attribute))
            values[attribute] = _as_metric(raw)
        return cls(**values)

    def to_row(self, sample_name: str) -> Dict[str, Any]:
        row = {"name": sample_name}
        for attribute in QUALITY_FIELDS:
            value = getattr(self, attribute)
            row[attribute] = float("nan") if value is None else value
        return row


@dataclass
class CallerRequest:
    """Arguments handed to the external copy-number caller"""

    input_dir: str
    output_dir: str
    assembly: str
    reference_genome: str
    num_cpu: int
    bin_size: int
    step_size: int
    correction_method: List[str]
    chromosomes: List[str]
    remove_duplicate_reads: bool = True
    reads_store: bool = False
    blacklist: Optional[str] = None
    states: List[str] = field(default_factory=lambda: list(COPY_NUMBER_STATES))
    method: str = SEGMENTATION_METHOD
    min_mapq: int = MIN_MAPPING_QUALITY
    sequenceability_file: Optional[str] = None
    stop_after_binning: bool = True


@dataclass
class QCResult:
    """Outcome of the QC filter for one donor"""

    donor: str
    metrics: pd.DataFrame
    bhattacharyya_threshold: Optional[float]
    spikiness_threshold: Optional[float]
    passed_read_count: FrozenSet[str]
    passed_bhattacharyya: FrozenSet[str]
    passed_spikiness: FrozenSet[str]
    included: FrozenSet[str]
    excluded: FrozenSet[str]
