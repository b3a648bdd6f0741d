import pandas as pd
import pytest

from sccnv.domain.services.outlier_detector import OutlierRegionDetector


def _totals(chromosome: str, counts) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "chromosome": chromosome,
            "start": [i * 100 for i in range(len(counts))],
            "end": [(i + 1) * 100 for i in range(len(counts))],
            "counts": list(counts),
        }
    )


def test_extreme_bins_are_flagged() -> None:
    """
    With counts 1..100 the 5% and 95% cut lines are 5.95 and 95.05, so the
    five lowest and five highest bins are flagged.
    """
    totals = _totals("1", range(1, 101))
    outliers = OutlierRegionDetector().detect(totals, ["1"], ["X"])

    assert sorted(outliers["counts"].tolist()) == [1, 2, 3, 4, 5, 96, 97, 98, 99, 100]


def test_chromosome_groups_have_separate_cut_lines() -> None:
    """
    Allosomal bins are judged against their own distribution: uniformly
    high X coverage is not an outlier band of its own.
    """
    totals = pd.concat(
        [_totals("1", range(1, 101)), _totals("X", [1000] * 20)], ignore_index=True
    )
    outliers = OutlierRegionDetector().detect(totals, ["1"], ["X"])

    assert set(outliers["chromosome"]) == {"1"}
    assert len(outliers) == 10


def test_ucsc_named_bins_match_plain_group_names() -> None:
    totals = pd.concat(
        [_totals("chr1", range(1, 101)), _totals("chrX", [1000] * 20)], ignore_index=True
    )
    outliers = OutlierRegionDetector().detect(totals, ["1"], ["X"])

    assert set(outliers["chromosome"]) == {"chr1"}
    assert len(outliers) == 10


def test_bins_outside_both_groups_are_ignored() -> None:
    totals = pd.concat([_totals("1", range(1, 101)), _totals("MT", [0, 10000])], ignore_index=True)
    outliers = OutlierRegionDetector().detect(totals, ["1"], ["X"])
    assert "MT" not in set(outliers["chromosome"])


def test_empty_totals_give_empty_outliers() -> None:
    totals = pd.DataFrame(columns=["chromosome", "start", "end", "counts"])
    outliers = OutlierRegionDetector().detect(totals, ["1"], ["X"])
    assert outliers.empty


def test_invalid_quantile_band_is_rejected() -> None:
    with pytest.raises(ValueError):
        OutlierRegionDetector(autosome_quantiles=(0.9, 0.1))


def test_merge_regions_joins_adjacent_bins() -> None:
    bins = pd.DataFrame(
        {
            "chromosome": ["1", "1", "1", "X"],
            "start": [0, 100, 300, 0],
            "end": [100, 200, 400, 100],
        }
    )
    merged = OutlierRegionDetector.merge_regions(bins)

    assert merged.values.tolist() == [["1", 0, 200], ["1", 300, 400], ["X", 0, 100]]


def test_merge_regions_of_nothing() -> None:
    assert OutlierRegionDetector.merge_regions(pd.DataFrame(columns=["chromosome", "start", "end"])).empty
