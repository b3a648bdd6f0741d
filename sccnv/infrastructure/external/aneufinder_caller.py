"""
Copy-number caller bridge: runs AneuFinder through ``Rscript``.
"""

import json
import os
import subprocess
import tempfile
from dataclasses import asdict
from typing import Any, Dict, Optional

from sccnv.domain.models import CallerRequest
from sccnv.infrastructure.logger import Logger

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
BRIDGE_SCRIPT = os.path.join(SCRIPT_DIR, "run_aneufinder.R")
FACTORS_SCRIPT = os.path.join(SCRIPT_DIR, "sequenceability_factors.R")


class AneufinderCaller:
    """
    Runs the external copy-number caller for one input folder.

    Besides AneuFinder's own result tree, the bridge script writes a
    ``<model>.quality.json`` file next to every per-cell model.
    """

    def __init__(
        self,
        rscript: str = "Rscript",
        script_path: str = BRIDGE_SCRIPT,
        factors_script_path: str = FACTORS_SCRIPT,
        logger: Optional[Logger] = None,
    ):
        self.rscript = rscript
        self.script_path = script_path
        self.factors_script_path = factors_script_path
        self.logger = logger if logger is not None else Logger()

    def build_command(self, arguments_file: str, script_path: Optional[str] = None) -> list:
        return [self.rscript, script_path or self.script_path, arguments_file]

    def _run_script(self, script_path: str, arguments: Dict[str, Any]) -> None:
        """Hand ``arguments`` to an R script through a temporary JSON file"""
        with tempfile.NamedTemporaryFile(
            "w", suffix=".json", prefix="aneufinder_", delete=False
        ) as handle:
            json.dump(arguments, handle)
            arguments_file = handle.name

        command = self.build_command(arguments_file, script_path)
        self.logger.log_step("Caller", " ".join(command))
        try:
            subprocess.run(command, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            error_msg = f"{self.rscript} failed with exit code {e.returncode}\n"
            error_msg += f"STDOUT: {e.stdout}\n"
            error_msg += f"STDERR: {e.stderr}"
            raise RuntimeError(error_msg) from e
        except FileNotFoundError as e:
            raise RuntimeError(f"{self.rscript} not found in PATH") from e
        finally:
            os.remove(arguments_file)

    def call(self, request: CallerRequest) -> None:
        """
        Run the caller on ``request.input_dir``.

        Raises:
            RuntimeError: If the caller exits with an error or cannot be started
        """
        os.makedirs(request.output_dir, exist_ok=True)
        self._run_script(self.script_path, asdict(request))

    def determine_sequenceability_factors(
        self, binned_dir: str, bins_file: str, output_file: str
    ) -> None:
        """
        Derive sequenceability factors with AneuFinder from a calibration
        run's binned coverage and save them to ``output_file``.

        Args:
            binned_dir: The calibration run's ``binned-GC`` folder
            bins_file: Bin layout TSV (chromosome, start, end; 0-based)
            output_file: R data file receiving ``sequenceability.factors``

        Raises:
            RuntimeError: If the script exits with an error or cannot be started
        """
        self._run_script(
            self.factors_script_path,
            {"binned_dir": binned_dir, "bins_file": bins_file, "output_file": output_file},
        )
