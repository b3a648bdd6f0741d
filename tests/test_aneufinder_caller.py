import json
import os
import stat

import pytest

from sccnv.domain.models import CallerRequest
from sccnv.infrastructure.external.aneufinder_caller import AneufinderCaller


def _script(tmp_path, body: str) -> str:
    path = tmp_path / "fake_rscript"
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return str(path)


def _request(tmp_path) -> CallerRequest:
    return CallerRequest(
        input_dir=str(tmp_path / ".tmp_D1"),
        output_dir=str(tmp_path / "D1"),
        assembly="bosTau8",
        reference_genome="BSgenome.Btaurus.UCSC.bosTau8",
        num_cpu=4,
        bin_size=500000,
        step_size=500000,
        correction_method=["GC"],
        chromosomes=["1", "X"],
        blacklist="/cache/blacklist_100000.bed.gz",
    )


def test_call_passes_request_as_json(tmp_path) -> None:
    """The bridge script receives every request field through a JSON file"""
    captured = tmp_path / "captured.json"
    caller = AneufinderCaller(rscript=_script(tmp_path, 'cp "$2" "$1"'), script_path=str(captured))

    caller.call(_request(tmp_path))

    arguments = json.loads(captured.read_text())
    assert arguments["input_dir"] == str(tmp_path / ".tmp_D1")
    assert arguments["correction_method"] == ["GC"]
    assert arguments["chromosomes"] == ["1", "X"]
    assert arguments["blacklist"] == "/cache/blacklist_100000.bed.gz"
    assert arguments["sequenceability_file"] is None
    assert arguments["method"] == "edivisive"
    assert arguments["stop_after_binning"] is True
    assert os.path.isdir(tmp_path / "D1")


def test_call_failure_reports_exit_code(tmp_path) -> None:
    caller = AneufinderCaller(rscript=_script(tmp_path, "echo boom >&2; exit 3"))

    with pytest.raises(RuntimeError, match="exit code 3") as info:
        caller.call(_request(tmp_path))

    assert "boom" in str(info.value)


def test_missing_rscript(tmp_path) -> None:
    caller = AneufinderCaller(rscript=str(tmp_path / "no_such_rscript"))

    with pytest.raises(RuntimeError, match="not found"):
        caller.call(_request(tmp_path))


def test_build_command(tmp_path) -> None:
    caller = AneufinderCaller(rscript="Rscript")
    command = caller.build_command("/tmp/args.json")
    assert command[0] == "Rscript"
    assert command[1].endswith("run_aneufinder.R")
    assert os.path.isfile(command[1])
    assert command[2] == "/tmp/args.json"


def test_determine_sequenceability_factors_runs_factor_script(tmp_path) -> None:
    """The factor script gets the binned folder, bin layout and target file"""
    captured = tmp_path / "factor_args.json"
    caller = AneufinderCaller(
        rscript=_script(tmp_path, 'cp "$2" "$1"'), factors_script_path=str(captured)
    )

    caller.determine_sequenceability_factors(
        "/calib/Aneufinder/binned-GC", "/calib/bins.tsv", "/out/sequenceability.factors.500000.gc.RData"
    )

    assert json.loads(captured.read_text()) == {
        "binned_dir": "/calib/Aneufinder/binned-GC",
        "bins_file": "/calib/bins.tsv",
        "output_file": "/out/sequenceability.factors.500000.gc.RData",
    }


def test_factor_script_ships_with_package() -> None:
    caller = AneufinderCaller(rscript="Rscript")
    command = caller.build_command("/tmp/args.json", caller.factors_script_path)
    assert command[1].endswith("sequenceability_factors.R")
    assert os.path.isfile(command[1])
