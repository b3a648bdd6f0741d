"""
Samplesheet model: the ordered roster of cells processed by the pipeline.
"""

from typing import Any, Dict, Iterable, Iterator, List, NamedTuple

import pandas as pd

from sccnv.domain.errors import SamplesheetError

SAMPLESHEET_COLUMNS = ["sample_name", "filename", "donor", "include_in_sf"]
INDEX_SUFFIX = ".bai"
TRUE_VALUES = {"1", "true", "t", "yes", "y"}
FALSE_VALUES = {"0", "false", "f", "no", "n", ""}


def parse_flag(value: Any) -> bool:
    """Interpret a samplesheet flag cell"""
    if isinstance(value, bool):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise SamplesheetError(f"Invalid include_in_sf value: {value!r}")


class SampleRecord(NamedTuple):
    sample_name: str
    filename: str
    donor: str
    include_in_sf: bool

    @property
    def index_filename(self) -> str:
        return self.filename + INDEX_SUFFIX


class Samplesheet:
    """Immutable table of sample records.

    Filtering never mutates an instance; every selection returns a new
    ``Samplesheet``. Sample names are unique within a samplesheet.
    """

    def __init__(self, frame: pd.DataFrame):
        missing = [col for col in SAMPLESHEET_COLUMNS if col not in frame.columns]
        if missing:
            raise SamplesheetError(f"Samplesheet is missing columns: {missing}")

        frame = frame.reset_index(drop=True).copy()
        for column in ("sample_name", "filename", "donor"):
            frame[column] = frame[column].astype(str).str.strip()

        empty = frame["sample_name"] == ""
        if empty.any():
            raise SamplesheetError(
                f"Samplesheet has {int(empty.sum())} rows without a sample name"
            )

        duplicated = frame.loc[frame["sample_name"].duplicated(), "sample_name"]
        if not duplicated.empty:
            raise SamplesheetError(
                f"Duplicate sample names in samplesheet: {sorted(set(duplicated))}"
            )

        if frame["include_in_sf"].dtype != bool:
            raise SamplesheetError("Column 'include_in_sf' must be boolean")

        self._frame = frame

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "Samplesheet":
        frame = pd.DataFrame(list(records), columns=SAMPLESHEET_COLUMNS)
        frame["include_in_sf"] = frame["include_in_sf"].map(parse_flag).astype(bool)
        return cls(frame)

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def sample_names(self) -> List[str]:
        return self._frame["sample_name"].tolist()

    @property
    def filenames(self) -> List[str]:
        return self._frame["filename"].tolist()

    @property
    def donors(self) -> List[str]:
        """Distinct donors in order of first appearance"""
        return list(dict.fromkeys(self._frame["donor"].tolist()))

    def records(self) -> Iterator[SampleRecord]:
        for row in self._frame[SAMPLESHEET_COLUMNS].itertuples(index=False):
            yield SampleRecord(*row)

    def for_donor(self, donor: str) -> "Samplesheet":
        return Samplesheet(self._frame[self._frame["donor"] == donor])

    def sequenceability_subset(self) -> "Samplesheet":
        return Samplesheet(self._frame[self._frame["include_in_sf"]])

    def without(self, sample_names: Iterable[str]) -> "Samplesheet":
        excluded = set(sample_names)
        return Samplesheet(self._frame[~self._frame["sample_name"].isin(excluded)])

    def __len__(self) -> int:
        return len(self._frame)

    def __iter__(self) -> Iterator[SampleRecord]:
        return self.records()

    def __repr__(self) -> str:
        return f"Samplesheet({len(self)} samples, {len(self.donors)} donors)"
