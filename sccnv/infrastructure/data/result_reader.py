"""
Discovery and parsing of the copy-number caller's per-cell output.
"""

import glob
import json
import os
from typing import List, Optional

from sccnv.domain.errors import MissingArtifactError
from sccnv.domain.models import SEGMENTATION_METHOD, QualityInfo
from sccnv.infrastructure.logger import Logger

# Alignment files are named <sample>_dedup.bam; the caller prefixes its
# per-cell outputs with that file name.
SAMPLE_FILE_TAG = "_dedup.bam_"
QUALITY_SUFFIX = ".quality.json"
BINNED_SUFFIX = ".RData"


class CellResultReader:
    """Locates and reads per-cell result artifacts under a results tree"""

    def __init__(
        self,
        method: str = SEGMENTATION_METHOD,
        file_tag: str = SAMPLE_FILE_TAG,
        logger: Optional[Logger] = None,
    ):
        self.method = method
        self.file_tag = file_tag
        self.logger = logger if logger is not None else Logger()

    def artifact_pattern(self, base_dir: str, donor: str, sample_name: str, suffix: str = "") -> str:
        """Glob pattern of a sample's artifacts; ``donor="*"`` spans all donors"""
        donor_part = donor if donor == "*" else glob.escape(donor)
        return os.path.join(
            glob.escape(base_dir),
            donor_part,
            "MODELS",
            f"method-{self.method}",
            f"{glob.escape(sample_name)}{self.file_tag}*{suffix}",
        )

    def find_artifacts(self, base_dir: str, donor: str, sample_name: str) -> List[str]:
        """Every file belonging to a sample's result (model and quality record)"""
        return sorted(glob.glob(self.artifact_pattern(base_dir, donor, sample_name)))

    def find_quality_record(self, base_dir: str, donor: str, sample_name: str) -> str:
        """
        Locate the quality record of a sample.

        Raises:
            MissingArtifactError: If no record exists
        """
        pattern = self.artifact_pattern(base_dir, donor, sample_name, QUALITY_SUFFIX)
        matches = sorted(glob.glob(pattern))
        if not matches:
            raise MissingArtifactError(sample_name, pattern)
        if len(matches) > 1:
            self.logger.log_warning(
                f"{len(matches)} quality records for {sample_name}; using {matches[0]}"
            )
        return matches[0]

    def read_quality_info(self, base_dir: str, donor: str, sample_name: str) -> QualityInfo:
        """
        Read the qualityInfo record of one cell.

        Raises:
            MissingArtifactError: If no record exists
        """
        file_path = self.find_quality_record(base_dir, donor, sample_name)
        with open(file_path) as handle:
            record = json.load(handle)
        return QualityInfo.from_record(record.get("qualityInfo", record))

    def find_binned_files(self, binned_dir: str) -> List[str]:
        """Binned-coverage files the caller wrote to ``binned_dir``"""
        pattern = os.path.join(glob.escape(binned_dir), f"*{BINNED_SUFFIX}")
        files = sorted(glob.glob(pattern))
        self.logger.log_step("Binned coverage", f"Found {len(files)} cells in {binned_dir}")
        return files
