"""
Command line argument parsing and validation for the copy-number calling pipeline.
"""

import argparse
import os
from typing import List, Optional, Union

from sccnv.domain.models import GenomeConfig, MIN_MAPPING_QUALITY, PipelineConfig, QCConfig
from sccnv.infrastructure.logger import Logger


def _split_list(value: Union[str, List[str], None]) -> List[str]:
    """Parse comma-separated values; ``a-b`` integer ranges are expanded"""
    if value is None:
        return []
    if isinstance(value, list):
        value = ",".join(value)
    items = []
    for item in value.strip('"').strip("'").split(","):
        item = item.strip()
        if not item:
            continue
        start, _, end = item.partition("-")
        if end and start.isdigit() and end.isdigit():
            items.extend(str(i) for i in range(int(start), int(end) + 1))
        else:
            items.append(item)
    return items


class ArgumentParser:
    """Command line argument parsing and validation"""

    def __init__(self):
        self.logger = Logger()
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create and configure the argument parser"""
        parser = argparse.ArgumentParser(
            prog="sccnv", description="Single-cell copy-number calling pipeline"
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        run = subparsers.add_parser("run", help="Derive correction artifacts and call copy numbers per donor")
        run.add_argument("-o", "--out_dir", type=str, required=True, help="Output directory for all results")
        run.add_argument("-s", "--samplesheet", type=str, required=True, help="Samplesheet (TSV or CSV)")
        run.add_argument(
            "-b", "--blacklist_bin_size",
            type=int,
            default=100000,
            help="Bin size for deriving the blacklist (default: 100000)",
        )
        run.add_argument(
            "-c", "--call_bin_size",
            type=int,
            default=500000,
            help="Bin size for copy-number calling (default: 500000)",
        )
        run.add_argument(
            "--sequenceability",
            action="store_true",
            help="Derive and apply sequenceability factors from samples flagged include_in_sf",
        )
        run.add_argument("-n", "--num_cpu", type=int, default=16, help="CPU budget (default: 16)")
        run.add_argument(
            "--min_mapq",
            type=int,
            default=MIN_MAPPING_QUALITY,
            help=f"Minimum mapping quality for blacklist coverage (default: {MIN_MAPPING_QUALITY})",
        )
        self._add_genome_arguments(run)
        run.add_argument("--log_file", type=str, help="Also write the log to this file")

        qc = subparsers.add_parser("qc", help="Filter low-quality cells from copy-number results")
        qc.add_argument("-d", "--base_dir", type=str, required=True, help="Directory holding per-donor results")
        qc.add_argument("-s", "--samplesheet", type=str, required=True, help="Samplesheet used for the run")
        qc.add_argument("--donors", type=str, help="Comma-separated donors (default: all donors)")
        qc.add_argument(
            "--bhattacharyya_threshold",
            type=float,
            help="Fixed Bhattacharyya threshold (default: derived per donor)",
        )
        qc.add_argument(
            "--spikiness_threshold",
            type=float,
            help="Fixed spikiness threshold (default: derived per donor)",
        )
        qc.add_argument(
            "--min_read_count",
            type=int,
            default=200000,
            help="Cells need more reads than this (default: 200000)",
        )
        qc.add_argument(
            "--percentile_fraction",
            type=float,
            default=0.10,
            help="Fraction of worst cells that sets derived thresholds (default: 0.10)",
        )
        qc.add_argument("--plot_overlap", action="store_true", help="Draw the filter overlap and metric plots")
        qc.add_argument(
            "--plot_style",
            choices=["venn", "upset"],
            default="venn",
            help="Overlap diagram style (default: venn)",
        )
        qc.add_argument("--plot_dir", type=str, help="Directory for QC tables and plots (default: base_dir)")
        qc.add_argument(
            "--remove_output",
            action="store_true",
            help="Delete the result files of excluded cells",
        )
        qc.add_argument("-o", "--filtered_samplesheet", type=str, help="Write the filtered samplesheet here")
        qc.add_argument("--log_file", type=str, help="Also write the log to this file")

        return parser

    @staticmethod
    def _add_genome_arguments(parser: argparse.ArgumentParser) -> None:
        defaults = GenomeConfig()
        parser.add_argument(
            "--assembly", type=str, default=defaults.assembly, help=f"Genome assembly (default: {defaults.assembly})"
        )
        parser.add_argument(
            "--reference_genome",
            type=str,
            default=defaults.reference_genome,
            help=f"BSgenome package for GC correction (default: {defaults.reference_genome})",
        )
        parser.add_argument(
            "--autosomes",
            type=str,
            default="1-29",
            help="Comma-separated autosomes; ranges like 1-29 are expanded (default: 1-29)",
        )
        parser.add_argument(
            "--allosomes", type=str, default="X", help="Comma-separated allosomes (default: X)"
        )

    def parse_arguments(self, argv: Optional[List[str]] = None) -> Union[PipelineConfig, QCConfig]:
        """Parse command line arguments and return the matching configuration"""
        args = self.parser.parse_args(argv)

        if args.command == "run":
            config = PipelineConfig(
                out_dir=args.out_dir,
                samplesheet_file=args.samplesheet,
                genome=GenomeConfig(
                    assembly=args.assembly,
                    reference_genome=args.reference_genome,
                    autosomes=_split_list(args.autosomes),
                    allosomes=_split_list(args.allosomes),
                ),
                blacklist_bin_size=args.blacklist_bin_size,
                call_bin_size=args.call_bin_size,
                apply_sequenceability=args.sequenceability,
                num_cpu=args.num_cpu,
                min_mapq=args.min_mapq,
                log_file=args.log_file,
            )
        else:
            config = QCConfig(
                base_dir=args.base_dir,
                samplesheet_file=args.samplesheet,
                donors=_split_list(args.donors),
                bhattacharyya_threshold=args.bhattacharyya_threshold,
                spikiness_threshold=args.spikiness_threshold,
                min_read_count=args.min_read_count,
                percentile_fraction=args.percentile_fraction,
                plot_overlap=args.plot_overlap,
                plot_style=args.plot_style,
                plot_dir=args.plot_dir,
                remove_output=args.remove_output,
                filtered_samplesheet=args.filtered_samplesheet,
                log_file=args.log_file,
            )

        # Validate configuration
        if not self.validate_config(config):
            raise ValueError("Invalid configuration")

        return config

    def validate_config(self, config: Union[PipelineConfig, QCConfig]) -> bool:
        """Validate a pipeline or QC configuration"""
        try:
            if not os.path.exists(config.samplesheet_file):
                self.logger.log_error(
                    FileNotFoundError(f"Samplesheet not found: {config.samplesheet_file}"),
                    "Configuration validation",
                )
                return False

            if isinstance(config, PipelineConfig):
                # Check if output directory can be created
                os.makedirs(config.out_dir, exist_ok=True)

                for name in ("blacklist_bin_size", "call_bin_size", "num_cpu"):
                    if getattr(config, name) <= 0:
                        self.logger.log_error(
                            ValueError(f"{name} must be positive, got {getattr(config, name)}"),
                            "Configuration validation",
                        )
                        return False

                if not config.genome.autosomes:
                    self.logger.log_warning("No autosomes configured")
                if config.min_mapq < 0:
                    self.logger.log_warning(f"Minimum mapping quality {config.min_mapq} is negative")
                if config.num_cpu > (os.cpu_count() or 1):
                    self.logger.log_warning(
                        f"CPU budget {config.num_cpu} exceeds the {os.cpu_count()} available CPUs"
                    )
            else:
                if not os.path.isdir(config.base_dir):
                    self.logger.log_error(
                        FileNotFoundError(f"Results directory not found: {config.base_dir}"),
                        "Configuration validation",
                    )
                    return False

                if not 0 < config.percentile_fraction <= 1:
                    self.logger.log_error(
                        ValueError(f"Percentile fraction {config.percentile_fraction} is outside (0, 1]"),
                        "Configuration validation",
                    )
                    return False

                if config.min_read_count < 0:
                    self.logger.log_warning(f"Minimum read count {config.min_read_count} is negative")

            self.logger.log_success("Configuration validation passed")
            return True

        except Exception as e:
            self.logger.log_error(e, "Configuration validation")
            return False
