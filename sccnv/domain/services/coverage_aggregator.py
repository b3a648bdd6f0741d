"""
Per-bin read coverage for alignment files.
"""

from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
import pysam
from tqdm import tqdm

from sccnv.domain.models import MIN_MAPPING_QUALITY, ncbi_chromosome
from sccnv.infrastructure.logger import Logger

BIN_COLUMNS = ["chromosome", "start", "end"]


def chromosome_lengths(sample_file: str) -> Dict[str, int]:
    """Read chromosome lengths from the header of an alignment file"""
    with pysam.AlignmentFile(sample_file, "rb") as alignment:
        return dict(zip(alignment.references, alignment.lengths))


def resolve_chromosome(name: str, available: Iterable[str]) -> Optional[str]:
    """
    Find ``name`` among ``available`` names, with or without the UCSC
    ``chr`` prefix. Returns None when the chromosome is absent.
    """
    available = list(available)
    if name in available:
        return name
    bare = ncbi_chromosome(name)
    for candidate in available:
        if ncbi_chromosome(candidate) == bare:
            return candidate
    return None


def fixed_width_bins(
    chrom_lengths: Mapping[str, int],
    chromosomes: Sequence[str],
    bin_size: int,
    step_size: Optional[int] = None,
) -> pd.DataFrame:
    """
    Tile the selected chromosomes with fixed-width bins.

    Args:
        chrom_lengths: Chromosome name to length, as named in the data
        chromosomes: Chromosomes to tile, in output order; ``1`` and ``chr1``
            both select whichever of the two the data uses
        bin_size: Width of each bin
        step_size: Distance between bin starts (defaults to ``bin_size``)

    Returns:
        pd.DataFrame: Columns chromosome, start, end (0-based, half-open),
        named as in ``chrom_lengths``. The trailing partial bin of each
        chromosome is dropped.
    """
    if bin_size <= 0:
        raise ValueError(f"Bin size must be positive, got {bin_size}")
    step_size = step_size or bin_size

    frames = []
    for chrom in chromosomes:
        name = resolve_chromosome(str(chrom), chrom_lengths)
        if name is None or chrom_lengths[name] < bin_size:
            continue
        length = chrom_lengths[name]
        starts = np.arange(0, length - bin_size + 1, step_size, dtype=np.int64)
        frames.append(
            pd.DataFrame({"chromosome": name, "start": starts, "end": starts + bin_size})
        )

    if not frames:
        return pd.DataFrame(
            {
                "chromosome": pd.Series(dtype=object),
                "start": pd.Series(dtype=np.int64),
                "end": pd.Series(dtype=np.int64),
            }
        )
    return pd.concat(frames, ignore_index=True)


def _keep_read(read: pysam.AlignedSegment, min_mapq: int) -> bool:
    return not (
        read.is_unmapped
        or read.is_secondary
        or read.is_supplementary
        or read.is_qcfail
        or read.is_duplicate
        or read.mapping_quality < min_mapq
    )


def count_reads_per_bin(
    sample_file: str,
    chromosomes: Sequence[str],
    bin_size: int,
    min_mapq: int = MIN_MAPPING_QUALITY,
) -> pd.DataFrame:
    """
    Count reads per non-overlapping bin for one alignment file.

    Reads are assigned to the bin containing their leftmost aligned position.

    Returns:
        pd.DataFrame: Columns chromosome, start, end, counts

    Raises:
        ValueError: If none of ``chromosomes`` yields a bin in this file
    """
    with pysam.AlignmentFile(sample_file, "rb") as alignment:
        lengths = dict(zip(alignment.references, alignment.lengths))
        bins = fixed_width_bins(lengths, chromosomes, bin_size)
        if bins.empty:
            raise ValueError(
                f"None of the chromosomes {list(chromosomes)} has a full {bin_size} bp bin "
                f"in {sample_file} (header: {list(lengths)[:5]}...)"
            )
        counts = np.zeros(len(bins), dtype=np.int64)

        offset = 0
        for chrom, chrom_bins in bins.groupby("chromosome", sort=False):
            n_bins = len(chrom_bins)
            positions = [
                read.reference_start
                for read in alignment.fetch(chrom)
                if _keep_read(read, min_mapq)
            ]
            if positions:
                indices = np.asarray(positions, dtype=np.int64) // bin_size
                indices = indices[indices < n_bins]
                counts[offset:offset + n_bins] = np.bincount(indices, minlength=n_bins)
            offset += n_bins

    bins["counts"] = counts
    return bins


def merge_bin_counts(coverages: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """Sum per-sample count tables bin by bin"""
    coverages = list(coverages)
    if not coverages:
        return pd.DataFrame(columns=BIN_COLUMNS + ["counts"])

    stacked = pd.concat(coverages, ignore_index=True)
    totals = stacked.groupby(BIN_COLUMNS, sort=False, as_index=False)["counts"].sum()
    return totals.reset_index(drop=True)


class CoverageAggregator:
    """Fans per-sample coverage counting out over a bounded worker pool"""

    def __init__(self, logger: Optional[Logger] = None):
        self.logger = logger if logger is not None else Logger()

    def coverage_for_sample(
        self,
        sample_file: str,
        chromosomes: Sequence[str],
        bin_size: int,
        min_mapq: int = MIN_MAPPING_QUALITY,
    ) -> pd.DataFrame:
        return count_reads_per_bin(sample_file, chromosomes, bin_size, min_mapq)

    def aggregate(
        self,
        sample_files: List[str],
        chromosomes: Sequence[str],
        bin_size: int,
        num_cpu: int = 1,
        min_mapq: int = MIN_MAPPING_QUALITY,
    ) -> pd.DataFrame:
        """
        Compute coverage for every sample and sum it per bin.

        Args:
            sample_files: Alignment files to count
            chromosomes: Chromosomes to restrict counting to
            bin_size: Bin width
            num_cpu: Maximum number of worker processes

        Returns:
            pd.DataFrame: Total counts per bin

        Raises:
            Exception: The first per-sample failure is re-raised
        """
        self.logger.log_step(
            "Coverage",
            f"Counting reads in {len(sample_files)} samples ({bin_size} bp bins, {num_cpu} workers)",
        )

        if num_cpu <= 1 or len(sample_files) <= 1:
            coverages = [
                self.coverage_for_sample(sample_file, chromosomes, bin_size, min_mapq)
                for sample_file in tqdm(sample_files, desc="Coverage")
            ]
        else:
            coverages = []
            with ProcessPoolExecutor(max_workers=num_cpu) as executor:
                future_to_file = {
                    executor.submit(
                        count_reads_per_bin, sample_file, list(chromosomes), bin_size, min_mapq
                    ): sample_file
                    for sample_file in sample_files
                }
                for future in tqdm(
                    as_completed(future_to_file), total=len(future_to_file), desc="Coverage"
                ):
                    sample_file = future_to_file[future]
                    try:
                        coverages.append(future.result())
                    except Exception as e:
                        self.logger.log_error(e, f"Coverage counting for {sample_file}")
                        raise

        totals = merge_bin_counts(coverages)
        self.logger.log_table_shape("Aggregated coverage", totals.shape)
        return totals
