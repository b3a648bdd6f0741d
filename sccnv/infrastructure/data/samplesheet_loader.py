"""
Samplesheet loading and validation.
"""

import os
from typing import Optional

import pandas as pd

from sccnv.domain.errors import SamplesheetError
from sccnv.domain.samplesheet import SAMPLESHEET_COLUMNS, Samplesheet, parse_flag
from sccnv.infrastructure.logger import Logger

class SamplesheetLoader:
    """Responsible for reading and writing samplesheets"""

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger if logger is not None else Logger()

    def load(self, file_path: str) -> Samplesheet:
        """
        Load a samplesheet from a tab- or comma-separated file.

        Args:
            file_path: Path to the samplesheet

        Returns:
            Samplesheet: Validated samplesheet

        Raises:
            FileNotFoundError: If the file doesn't exist
            SamplesheetError: If columns are missing, names are duplicated or
                a flag cannot be parsed
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Samplesheet not found: {file_path}")

        separator = "," if file_path.endswith(".csv") else "\t"
        frame = pd.read_csv(file_path, sep=separator, dtype=str, keep_default_na=False)
        frame.columns = [column.strip() for column in frame.columns]

        missing = [column for column in SAMPLESHEET_COLUMNS if column not in frame.columns]
        if missing:
            raise SamplesheetError(f"Samplesheet {file_path} is missing columns: {missing}")

        frame["include_in_sf"] = frame["include_in_sf"].map(parse_flag).astype(bool)
        samplesheet = Samplesheet(frame)

        self.logger.log_step(
            "Samplesheet",
            f"Loaded {len(samplesheet)} samples for {len(samplesheet.donors)} donors from {file_path}",
        )
        return samplesheet

    def save(self, samplesheet: Samplesheet, file_path: str) -> None:
        """Write ``samplesheet`` in the format ``load`` reads"""
        try:
            directory = os.path.dirname(file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            frame = samplesheet.frame[SAMPLESHEET_COLUMNS].copy()
            frame["include_in_sf"] = frame["include_in_sf"].astype(int)
            separator = "," if file_path.endswith(".csv") else "\t"
            frame.to_csv(file_path, sep=separator, index=False)
            self.logger.log_save(file_path)
        except Exception as e:
            self.logger.log_error(e, f"Saving samplesheet to {file_path}")
            raise
