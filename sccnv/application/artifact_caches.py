"""
Cached derivation of the shared correction artifacts: the genome blacklist
and the sequenceability factors. Both are keyed by bin size and built at most
once per output directory.
"""

import os
import shutil
from typing import Callable, Dict, Optional

import pandas as pd

from sccnv.application.caller_invoker import CallerInvoker
from sccnv.domain.errors import CacheBuildError
from sccnv.domain.models import MIN_MAPPING_QUALITY, GenomeConfig
from sccnv.domain.samplesheet import Samplesheet
from sccnv.domain.services.coverage_aggregator import (
    CoverageAggregator,
    chromosome_lengths,
    fixed_width_bins,
)
from sccnv.domain.services.outlier_detector import OutlierRegionDetector
from sccnv.infrastructure.artifact_store import ArtifactStore
from sccnv.infrastructure.data.data_saver import PipelineDataSaver
from sccnv.infrastructure.data.result_reader import CellResultReader
from sccnv.infrastructure.logger import Logger

BLACKLIST_TEMPLATE = "blacklist_{key}.bed.gz"
SEQUENCEABILITY_TEMPLATE = "sequenceability.factors.{key}.gc.RData"
CALIBRATION_DIR = ".tmp_sequenceability_factors"
CALIBRATION_DONOR = "Aneufinder"
CALIBRATION_BINNED_DIR = "binned-GC"
CALIBRATION_BINS_FILE = "bins.tsv"


class BlacklistCache:
    """Builds or reuses ``<output_dir>/blacklist_<bin_size>.bed.gz``"""

    def __init__(
        self,
        aggregator: Optional[CoverageAggregator] = None,
        detector: Optional[OutlierRegionDetector] = None,
        data_saver: Optional[PipelineDataSaver] = None,
        min_mapq: int = MIN_MAPPING_QUALITY,
        logger: Optional[Logger] = None,
    ):
        self.logger = logger if logger is not None else Logger()
        self.aggregator = aggregator if aggregator is not None else CoverageAggregator(self.logger)
        self.detector = detector if detector is not None else OutlierRegionDetector(logger=self.logger)
        self.data_saver = data_saver if data_saver is not None else PipelineDataSaver(self.logger)
        self.min_mapq = min_mapq

    def store(self, output_dir: str) -> ArtifactStore:
        return ArtifactStore(output_dir, BLACKLIST_TEMPLATE, "Blacklist", self.logger)

    def build(
        self, samplesheet: Samplesheet, bin_size: int, genome: GenomeConfig, num_cpu: int
    ) -> pd.DataFrame:
        """
        Derive blacklisted regions from the aggregate coverage of all samples.

        Returns:
            pd.DataFrame: Merged regions with columns chromosome, start, end
        """
        totals = self.aggregator.aggregate(
            samplesheet.filenames,
            genome.chromosomes,
            bin_size,
            num_cpu=num_cpu,
            min_mapq=self.min_mapq,
        )
        outliers = self.detector.detect(totals, genome.autosomes, genome.allosomes)
        regions = self.detector.merge_regions(outliers)
        self.logger.log_step(
            "Blacklist", f"{len(outliers)} outlier bins merged into {len(regions)} regions"
        )
        return regions

    def get_or_build(
        self,
        output_dir: str,
        samplesheet: Samplesheet,
        bin_size: int,
        genome: GenomeConfig,
        num_cpu: int = 16,
    ) -> str:
        """
        Return the blacklist for ``bin_size``, deriving it only when absent.

        Concurrent calls for the same output directory and bin size must be
        serialized by the caller.

        Raises:
            CacheBuildError: If deriving the blacklist fails
        """

        def writer(path: str) -> None:
            try:
                regions = self.build(samplesheet, bin_size, genome, num_cpu)
                self.data_saver.save_blacklist(regions, path)
            except Exception as e:
                self.logger.log_error(e, f"Blacklist derivation for bin size {bin_size}")
                raise CacheBuildError("blacklist", bin_size, e) from e

        return self.store(output_dir).get_or_build(bin_size, writer)


class SequenceabilityCache:
    """Builds or reuses ``<output_dir>/sequenceability.factors.<bin_size>.gc.RData``"""

    def __init__(
        self,
        invoker: CallerInvoker,
        reader: Optional[CellResultReader] = None,
        data_saver: Optional[PipelineDataSaver] = None,
        lengths_source: Callable[[str], Dict[str, int]] = chromosome_lengths,
        logger: Optional[Logger] = None,
    ):
        self.logger = logger if logger is not None else Logger()
        self.invoker = invoker
        self.reader = reader if reader is not None else CellResultReader(logger=self.logger)
        self.data_saver = data_saver if data_saver is not None else PipelineDataSaver(self.logger)
        self.lengths_source = lengths_source

    def store(self, output_dir: str) -> ArtifactStore:
        return ArtifactStore(output_dir, SEQUENCEABILITY_TEMPLATE, "Sequenceability factors", self.logger)

    def build(
        self,
        output_dir: str,
        samplesheet: Samplesheet,
        bin_size: int,
        genome: GenomeConfig,
        num_cpu: int,
        output_file: str,
    ) -> None:
        """
        Run a GC-corrected calibration call and let the caller derive the
        factors from its binned coverage into ``output_file``.

        Bins tile the chromosomes of the first sample's header. The
        calibration area is removed afterwards, also on failure.
        """
        if len(samplesheet) == 0:
            raise ValueError("No samples are flagged for sequenceability factor derivation")

        lengths = self.lengths_source(samplesheet.filenames[0])
        bins = fixed_width_bins(lengths, genome.chromosomes, bin_size)
        if bins.empty:
            raise ValueError(
                f"None of the chromosomes {genome.chromosomes} has a full {bin_size} bp bin "
                f"in {samplesheet.filenames[0]}"
            )
        self.logger.log_table_shape("Calibration bins", bins.shape)

        calibration_dir = os.path.join(output_dir, CALIBRATION_DIR)
        try:
            results = self.invoker.run(
                calibration_dir,
                CALIBRATION_DONOR,
                samplesheet,
                num_cpu,
                bin_size,
                blacklist_file=None,
                sequenceability_file=None,
                correction_method=["GC"],
                plotting=False,
                genome=genome,
            )
            binned_dir = os.path.join(results, CALIBRATION_BINNED_DIR)
            if not self.reader.find_binned_files(binned_dir):
                raise ValueError(f"Calibration run produced no binned coverage in {binned_dir}")

            bins_file = os.path.join(calibration_dir, CALIBRATION_BINS_FILE)
            self.data_saver.save_bin_layout(bins, bins_file)
            self.invoker.caller.determine_sequenceability_factors(binned_dir, bins_file, output_file)
        finally:
            shutil.rmtree(calibration_dir, ignore_errors=True)

    def get_or_build(
        self,
        output_dir: str,
        samplesheet: Samplesheet,
        bin_size: int,
        genome: GenomeConfig,
        num_cpu: int = 16,
    ) -> str:
        """
        Return the sequenceability factors for ``bin_size``, deriving them
        only when absent.

        Raises:
            CacheBuildError: If the calibration run or derivation fails
        """

        def writer(path: str) -> None:
            try:
                self.build(output_dir, samplesheet, bin_size, genome, num_cpu, path)
                if not os.path.isfile(path):
                    raise RuntimeError(f"Caller did not write sequenceability factors to {path}")
            except Exception as e:
                self.logger.log_error(e, f"Sequenceability factors for bin size {bin_size}")
                raise CacheBuildError("sequenceability factors", bin_size, e) from e

        return self.store(output_dir).get_or_build(bin_size, writer)
