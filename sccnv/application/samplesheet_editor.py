"""
Removal of excluded cells from the samplesheet and from the results tree.
"""

import os
from typing import Iterable, List, Optional

from sccnv.domain.samplesheet import Samplesheet
from sccnv.infrastructure.data.result_reader import CellResultReader
from sccnv.infrastructure.logger import Logger


class SamplesheetEditor:
    """Applies an exclusion set; both operations are idempotent"""

    def __init__(self, reader: Optional[CellResultReader] = None, logger: Optional[Logger] = None):
        self.logger = logger if logger is not None else Logger()
        self.reader = reader if reader is not None else CellResultReader(logger=self.logger)

    def remove_samples(self, samplesheet: Samplesheet, excluded: Iterable[str]) -> Samplesheet:
        """Return a new samplesheet without the excluded sample names"""
        filtered = samplesheet.without(excluded)
        self.logger.log_step(
            "Samplesheet filter", f"Kept {len(filtered)} of {len(samplesheet)} samples"
        )
        return filtered

    def remove_output_artifacts(self, base_dir: str, excluded: Iterable[str]) -> List[str]:
        """
        Delete the per-cell results of excluded samples across all donors.

        Returns:
            List[str]: Paths that were deleted
        """
        removed = []
        for sample_name in sorted(set(excluded)):
            for file_path in self.reader.find_artifacts(base_dir, "*", sample_name):
                try:
                    os.remove(file_path)
                except FileNotFoundError:
                    continue
                removed.append(file_path)
        self.logger.log_step("Output cleanup", f"Removed {len(removed)} result files")
        return removed
