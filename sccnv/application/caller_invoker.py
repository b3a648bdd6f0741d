"""
Per-donor invocation of the external copy-number caller.
"""

import os
import shutil
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from sccnv.domain.errors import CallerInvocationError, InputIntegrityError
from sccnv.domain.models import MIN_MAPPING_QUALITY, CallerRequest, GenomeConfig
from sccnv.domain.samplesheet import Samplesheet
from sccnv.infrastructure.external.aneufinder_caller import AneufinderCaller
from sccnv.infrastructure.logger import Logger


class CallerInvoker:
    """Runs the copy-number caller for one donor in an isolated staging area"""

    def __init__(
        self,
        caller=None,
        genome: Optional[GenomeConfig] = None,
        min_mapq: int = MIN_MAPPING_QUALITY,
        logger: Optional[Logger] = None,
    ):
        self.logger = logger if logger is not None else Logger()
        self.caller = caller if caller is not None else AneufinderCaller(logger=self.logger)
        self.genome = genome if genome is not None else GenomeConfig()
        self.min_mapq = min_mapq

    @staticmethod
    def staging_dir(output_dir: str, donor: str) -> str:
        return os.path.join(output_dir, f".tmp_{donor}")

    @staticmethod
    def results_dir(output_dir: str, donor: str) -> str:
        return os.path.join(output_dir, donor)

    def validate_inputs(self, donor: str, samplesheet: Samplesheet) -> None:
        """
        Check every sample file and its index before anything is linked.

        Raises:
            InputIntegrityError: Listing each offending sample
        """
        problems = {}
        seen = {}
        for record in samplesheet:
            basename = os.path.basename(record.filename)
            if not os.path.isfile(record.filename):
                problems[record.sample_name] = f"file not found: {record.filename}"
            elif not os.path.isfile(record.index_filename):
                problems[record.sample_name] = f"index not found: {record.index_filename}"
            elif basename in seen:
                problems[record.sample_name] = f"file name clashes with {seen[basename]}"
            seen.setdefault(basename, record.sample_name)

        if problems:
            for sample_name, problem in problems.items():
                self.logger.log_warning(f"{donor}/{sample_name}: {problem}")
            raise InputIntegrityError(donor, problems)

    @contextmanager
    def staging_area(self, output_dir: str, donor: str, samplesheet: Samplesheet) -> Iterator[str]:
        """
        Symlink a donor's sample files and indices into a staging directory.

        The directory is removed on exit, including when the caller fails.
        """
        staging = self.staging_dir(output_dir, donor)
        if os.path.isdir(staging):
            self.logger.log_warning(f"Removing stale staging directory {staging}")
            shutil.rmtree(staging)
        os.makedirs(staging)
        try:
            for record in samplesheet:
                destination = os.path.join(staging, os.path.basename(record.filename))
                os.symlink(os.path.abspath(record.filename), destination)
                os.symlink(os.path.abspath(record.index_filename), destination + ".bai")
            yield staging
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def build_request(
        self,
        input_dir: str,
        output_dir: str,
        num_cpu: int,
        bin_size: int,
        blacklist_file: Optional[str],
        sequenceability_file: Optional[str],
        correction_method: Sequence[str],
        plotting: bool,
        genome: GenomeConfig,
    ) -> CallerRequest:
        return CallerRequest(
            input_dir=input_dir,
            output_dir=output_dir,
            assembly=genome.assembly,
            reference_genome=genome.reference_genome,
            num_cpu=num_cpu,
            bin_size=bin_size,
            step_size=bin_size,
            correction_method=list(correction_method),
            chromosomes=genome.chromosomes,
            remove_duplicate_reads=True,
            reads_store=False,
            blacklist=blacklist_file,
            min_mapq=self.min_mapq,
            sequenceability_file=sequenceability_file,
            stop_after_binning=not plotting,
        )

    def run(
        self,
        output_dir: str,
        donor: str,
        samplesheet: Samplesheet,
        num_cpu: int,
        bin_size: int,
        blacklist_file: Optional[str] = None,
        sequenceability_file: Optional[str] = None,
        correction_method: Sequence[str] = ("GC",),
        plotting: bool = False,
        genome: Optional[GenomeConfig] = None,
    ) -> str:
        """
        Run the caller for all cells of a donor.

        Args:
            output_dir: Directory holding staging and result trees
            donor: Donor name; results go to ``<output_dir>/<donor>``
            samplesheet: The donor's samples
            num_cpu: CPUs handed to the caller
            bin_size: Bin and step size for calling
            blacklist_file: Blacklist to apply, if any
            sequenceability_file: Sequenceability factors to apply, if any
            correction_method: Correction methods, e.g. ``["GCSC"]``
            plotting: Whether the caller should continue past binning to plots
            genome: Genome settings (defaults to the invoker's)

        Returns:
            str: The donor's result directory

        Raises:
            InputIntegrityError: If a sample file or index is missing
            CallerInvocationError: If the caller fails
        """
        genome = genome if genome is not None else self.genome
        results = self.results_dir(output_dir, donor)

        self.validate_inputs(donor, samplesheet)
        os.makedirs(results, exist_ok=True)

        with self.staging_area(output_dir, donor, samplesheet) as staging:
            request = self.build_request(
                staging,
                results,
                num_cpu,
                bin_size,
                blacklist_file,
                sequenceability_file,
                correction_method,
                plotting,
                genome,
            )
            self.logger.log_step(
                "Copy-number calling",
                f"{donor}: {len(samplesheet)} cells, correction {'+'.join(request.correction_method)}",
            )
            try:
                self.caller.call(request)
            except Exception as e:
                self.logger.log_error(e, f"Copy-number calling for donor {donor}")
                raise CallerInvocationError(donor, str(e)) from e

        self.logger.log_success(f"Copy-number calling finished for {donor}: {results}")
        return results


def correction_methods(sequenceability_file: Optional[str]) -> List[str]:
    """GC correction, combined with sequenceability correction when factors exist"""
    return ["GCSC"] if sequenceability_file else ["GC"]
