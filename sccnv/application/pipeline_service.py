"""
Main application service orchestrating the copy-number calling pipeline.
"""

from typing import Dict, Optional

from sccnv.application.artifact_caches import BlacklistCache, SequenceabilityCache
from sccnv.application.caller_invoker import CallerInvoker, correction_methods
from sccnv.domain.models import GenomeConfig, PipelineConfig
from sccnv.domain.samplesheet import Samplesheet
from sccnv.infrastructure.data.samplesheet_loader import SamplesheetLoader
from sccnv.infrastructure.logger import Logger


class PipelineService:
    """Main application service orchestrating the entire pipeline"""

    def __init__(
        self,
        config: PipelineConfig,
        caller=None,
        invoker: Optional[CallerInvoker] = None,
        blacklist_cache: Optional[BlacklistCache] = None,
        sequenceability_cache: Optional[SequenceabilityCache] = None,
        loader: Optional[SamplesheetLoader] = None,
        logger: Optional[Logger] = None,
    ):
        self.config = config
        self.logger = logger if logger is not None else Logger(config.log_file)

        # Initialize all services
        self.invoker = (
            invoker
            if invoker is not None
            else CallerInvoker(caller, config.genome, config.min_mapq, self.logger)
        )
        self.blacklist_cache = (
            blacklist_cache
            if blacklist_cache is not None
            else BlacklistCache(min_mapq=config.min_mapq, logger=self.logger)
        )
        self.sequenceability_cache = (
            sequenceability_cache
            if sequenceability_cache is not None
            else SequenceabilityCache(self.invoker, logger=self.logger)
        )
        self.loader = loader if loader is not None else SamplesheetLoader(self.logger)

    def process(self) -> Dict[str, str]:
        """
        Load the configured samplesheet and run the pipeline on it.

        Returns:
            Dict[str, str]: Result directory per donor
        """
        self.logger.log_step("Processing pipeline", "Starting copy-number calling")
        samplesheet = self.loader.load(self.config.samplesheet_file)
        return self.run(
            self.config.out_dir,
            samplesheet,
            self.config.blacklist_bin_size,
            self.config.call_bin_size,
            self.config.genome,
            self.config.apply_sequenceability,
            self.config.num_cpu,
        )

    def run(
        self,
        output_dir: str,
        samplesheet: Samplesheet,
        blacklist_bin_size: int,
        call_bin_size: int,
        genome: GenomeConfig,
        apply_sequenceability: bool = False,
        num_cpu: int = 16,
    ) -> Dict[str, str]:
        """
        Build the shared artifacts, then call copy numbers for every donor.

        Args:
            output_dir: Directory for artifacts and per-donor results
            samplesheet: All samples
            blacklist_bin_size: Bin size for blacklist derivation
            call_bin_size: Bin size for copy-number calling
            genome: Genome settings
            apply_sequenceability: Whether to derive and apply sequenceability factors
            num_cpu: CPU budget

        Returns:
            Dict[str, str]: Result directory per donor
        """
        # Step 1: Samples eligible for sequenceability factors
        sf_samplesheet = samplesheet.sequenceability_subset()

        # Step 2: Blacklist over the full samplesheet
        self.logger.log_step("Blacklist", f"Bin size {blacklist_bin_size}")
        blacklist_file = self.blacklist_cache.get_or_build(
            output_dir, samplesheet, blacklist_bin_size, genome, num_cpu
        )

        # Step 3: Sequenceability factors over the flagged subset
        sequenceability_file = None
        if apply_sequenceability:
            self.logger.log_step(
                "Sequenceability factors",
                f"Bin size {call_bin_size}, {len(sf_samplesheet)} calibration samples",
            )
            sequenceability_file = self.sequenceability_cache.get_or_build(
                output_dir, sf_samplesheet, call_bin_size, genome, num_cpu
            )
        else:
            self.logger.log_step("Sequenceability factors", "Skipped")

        # Step 4: Copy-number calling per donor
        results = {}
        correction = correction_methods(sequenceability_file)
        for donor in samplesheet.donors:
            results[donor] = self.invoker.run(
                output_dir,
                donor,
                samplesheet.for_donor(donor),
                num_cpu,
                call_bin_size,
                blacklist_file=blacklist_file,
                sequenceability_file=sequenceability_file,
                correction_method=correction,
                plotting=False,
                genome=genome,
            )

        self.logger.log_success(f"Copy-number calling finished for {len(results)} donors")
        return results
