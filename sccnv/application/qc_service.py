"""
Quality-control service: gathers per-cell metrics, decides which cells to
exclude, and applies the exclusion to the samplesheet and results tree.
"""

import os
from typing import Dict, Optional, Set, Tuple

import numpy as np
import pandas as pd

from sccnv.application.samplesheet_editor import SamplesheetEditor
from sccnv.domain.errors import MissingArtifactError
from sccnv.domain.models import QUALITY_FIELDS, QCConfig, QCResult, QualityInfo
from sccnv.domain.samplesheet import Samplesheet
from sccnv.domain.services.qc_filter import QCFilter
from sccnv.infrastructure.data.data_saver import PipelineDataSaver
from sccnv.infrastructure.data.result_reader import CellResultReader
from sccnv.infrastructure.data.samplesheet_loader import SamplesheetLoader
from sccnv.infrastructure.logger import Logger
from sccnv.presentation.visualization.plot_generator import OVERLAP_CATEGORIES, PlotGenerator

METRIC_COLUMNS = ["name", "num_segments", "bhattacharyya", "entropy", "spikiness", "total_read_count"]
CONTINUOUS_COLUMNS = ["num_segments", "bhattacharyya", "entropy", "spikiness"]


class QCService:
    """Quality-control of copy-number called cells"""

    def __init__(
        self,
        reader: Optional[CellResultReader] = None,
        qc_filter: Optional[QCFilter] = None,
        editor: Optional[SamplesheetEditor] = None,
        plot_generator: Optional[PlotGenerator] = None,
        data_saver: Optional[PipelineDataSaver] = None,
        loader: Optional[SamplesheetLoader] = None,
        logger: Optional[Logger] = None,
    ):
        self.logger = logger if logger is not None else Logger()
        self.reader = reader if reader is not None else CellResultReader(logger=self.logger)
        self.qc_filter = qc_filter if qc_filter is not None else QCFilter(logger=self.logger)
        self.editor = editor if editor is not None else SamplesheetEditor(self.reader, self.logger)
        self.plot_generator = plot_generator if plot_generator is not None else PlotGenerator(self.logger)
        self.data_saver = data_saver if data_saver is not None else PipelineDataSaver(self.logger)
        self.loader = loader if loader is not None else SamplesheetLoader(self.logger)

    def gather(self, base_dir: str, samplesheet: Samplesheet, donor: str) -> pd.DataFrame:
        """
        Assemble the QC metrics table of a donor.

        Samples without a result artifact keep a row of missing values.
        Non-finite values in the continuous columns become missing.

        Returns:
            pd.DataFrame: One row per donor sample, columns ``METRIC_COLUMNS``
        """
        rows = []
        missing = 0
        for sample_name in samplesheet.for_donor(donor).sample_names:
            try:
                info = self.reader.read_quality_info(base_dir, donor, sample_name)
            except MissingArtifactError as e:
                self.logger.log_debug(str(e))
                info = QualityInfo.missing()
                missing += 1
            rows.append(info.to_row(sample_name))

        metrics = pd.DataFrame(rows, columns=METRIC_COLUMNS)
        for column in QUALITY_FIELDS:
            metrics[column] = pd.to_numeric(metrics[column], errors="coerce").astype(float)
        for column in CONTINUOUS_COLUMNS:
            values = metrics[column]
            metrics[column] = values.where(np.isfinite(values))

        if missing:
            self.logger.log_warning(f"{donor}: {missing} of {len(metrics)} cells have no result artifact")
        self.logger.log_table_shape(f"{donor} QC metrics", metrics.shape)
        return metrics

    def overlap_plot_path(self, plot_dir: str, donor: str, style: str = "venn") -> str:
        extension = "svg" if style == "venn" else "png"
        return os.path.join(plot_dir, f"{donor}_filter_overlap.{extension}")

    def evaluate(
        self,
        base_dir: str,
        samplesheet: Samplesheet,
        donor: str,
        bhattacharyya_threshold: Optional[float] = None,
        spikiness_threshold: Optional[float] = None,
        plot_overlap: bool = False,
        plot_dir: Optional[str] = None,
        plot_style: str = "venn",
    ) -> QCResult:
        """Gather a donor's metrics and apply the QC filter"""
        metrics = self.gather(base_dir, samplesheet, donor)
        result = self.qc_filter.apply(metrics, donor, bhattacharyya_threshold, spikiness_threshold)

        if plot_overlap:
            pass_sets = [result.passed_read_count, result.passed_bhattacharyya, result.passed_spikiness]
            self.plot_generator.create_overlap_diagram(
                dict(zip(OVERLAP_CATEGORIES, pass_sets)),
                self.overlap_plot_path(plot_dir or base_dir, donor, plot_style),
                style=plot_style,
                title=donor,
            )
        return result

    def excluded_cells(
        self,
        base_dir: str,
        samplesheet: Samplesheet,
        donor: str,
        bhattacharyya_threshold: Optional[float] = None,
        spikiness_threshold: Optional[float] = None,
        plot_overlap: bool = False,
        plot_dir: Optional[str] = None,
    ) -> Set[str]:
        """Names of the donor's cells that fail at least one QC criterion"""
        result = self.evaluate(
            base_dir,
            samplesheet,
            donor,
            bhattacharyya_threshold,
            spikiness_threshold,
            plot_overlap=plot_overlap,
            plot_dir=plot_dir,
        )
        return set(result.excluded)

    def process(self, config: QCConfig) -> Tuple[Samplesheet, Dict[str, QCResult]]:
        """
        Run QC for every configured donor and apply the exclusions.

        Writes one metrics table per donor, the filtered samplesheet when
        requested, and deletes excluded cells' results when requested.

        Returns:
            Tuple[Samplesheet, Dict[str, QCResult]]: Filtered samplesheet and
            per-donor QC results
        """
        self.logger.log_step("Quality control", f"Results in {config.base_dir}")
        samplesheet = self.loader.load(config.samplesheet_file)
        donors = config.donors or samplesheet.donors
        plot_dir = config.plot_dir or config.base_dir

        results = {}
        excluded = set()
        for donor in donors:
            result = self.evaluate(
                config.base_dir,
                samplesheet,
                donor,
                config.bhattacharyya_threshold,
                config.spikiness_threshold,
                plot_overlap=config.plot_overlap,
                plot_dir=plot_dir,
                plot_style=config.plot_style,
            )
            self.data_saver.save_metrics(
                result.metrics, os.path.join(plot_dir, f"{donor}_quality_metrics.tsv")
            )
            if config.plot_overlap:
                self.plot_generator.create_metric_distributions(
                    result.metrics,
                    {
                        "total_read_count": float(self.qc_filter.min_read_count),
                        "bhattacharyya": result.bhattacharyya_threshold,
                        "spikiness": result.spikiness_threshold,
                    },
                    os.path.join(plot_dir, f"{donor}_quality_metrics.png"),
                    title=donor,
                )
            results[donor] = result
            excluded |= result.excluded

        filtered = self.editor.remove_samples(samplesheet, excluded)
        if config.filtered_samplesheet:
            self.loader.save(filtered, config.filtered_samplesheet)
        if config.remove_output:
            self.editor.remove_output_artifacts(config.base_dir, excluded)

        self.logger.log_success(
            f"QC finished: {len(excluded)} cells excluded, {len(filtered)} remain"
        )
        return filtered, results
