"""
Exception hierarchy for the copy-number calling pipeline.
"""

from typing import Optional


class SccnvError(Exception):
    """Base class for all pipeline errors"""


class SamplesheetError(SccnvError):
    """The samplesheet is malformed"""


class MissingArtifactError(SccnvError):
    """No per-cell result artifact exists for a sample"""

    def __init__(self, sample_name: str, pattern: str):
        super().__init__(f"No result artifact for sample '{sample_name}' ({pattern})")
        self.sample_name = sample_name
        self.pattern = pattern


class CacheBuildError(SccnvError):
    """Deriving a cached artifact failed on a cache miss"""

    def __init__(self, artifact: str, key: int, cause: Optional[BaseException] = None):
        message = f"Failed to build {artifact} for bin size {key}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.artifact = artifact
        self.key = key


class CallerInvocationError(SccnvError):
    """The external copy-number caller failed for a donor"""

    def __init__(self, donor: str, message: str):
        super().__init__(f"Copy-number caller failed for donor '{donor}': {message}")
        self.donor = donor


class InputIntegrityError(SccnvError):
    """Sample files of a donor are missing or lack their index companion"""

    def __init__(self, donor: str, problems: dict):
        details = ", ".join(f"{name} ({problem})" for name, problem in problems.items())
        super().__init__(f"Input integrity check failed for donor '{donor}': {details}")
        self.donor = donor
        self.problems = problems
