"""Docker-backed toolchain adapter.

Tools run inside a long-lived container (OpenROAD, Magic and Netgen all
installed) that has the design run directory mounted. Every invocation is
wrapped in coreutils ``timeout`` so a hung tool exits with code 124.
"""

import logging
import shlex
import time
from dataclasses import dataclass
from pathlib import Path

import docker
import requests.exceptions

from tapeout.controller.exceptions import (
    AdapterUnavailableError,
    ToolInvocationError,
    ToolTimeoutError,
)
from tapeout.controller.failure import FailureClassifier, FailureType
from tapeout.controller.types import CheckType, DesignSnapshot, SignoffLimits
from tapeout.parsers.timing import parse_repair_output
from tapeout.toolchain.adapter import (
    CheckOutcome,
    RepairOptions,
    RepairOutcome,
    ToolchainAdapter,
)
from tapeout.toolchain.tcl_generator import (
    generate_check_script,
    generate_magic_drc_script,
    generate_netgen_lvs_command,
    generate_repair_script,
    generate_timing_report_script,
)

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124


@dataclass
class DockerRunConfig:
    """Configuration for the container the tools run in."""

    container_name: str = "mcp4eda"
    container_run_dir: str | None = None  # None: same path as on the host
    timeout_seconds: int = 600
    api_timeout_seconds: int = 3600  # docker client read timeout
    signoff_report_dir: str = "reports/signoff"


@dataclass
class ExecResult:
    """Result of one command executed in the container."""

    return_code: int
    stdout: str
    stderr: str
    runtime_seconds: float
    timed_out: bool = False


class DockerToolchainAdapter(ToolchainAdapter):
    """
    Run STA, repair and verification tools in a Docker container.

    Args:
        config: Container configuration (defaults if None)
        client: Optional pre-built docker client

    Raises:
        AdapterUnavailableError: If the daemon or the container is unreachable
    """

    def __init__(
        self,
        config: DockerRunConfig | None = None,
        client: docker.DockerClient | None = None,
    ) -> None:
        self.config = config or DockerRunConfig()
        try:
            self.client = client or docker.from_env(timeout=self.config.api_timeout_seconds)
            self.container = self.client.containers.get(self.config.container_name)
        except docker.errors.NotFound as e:
            raise AdapterUnavailableError(
                f"Container '{self.config.container_name}' not found"
            ) from e
        except docker.errors.DockerException as e:
            raise AdapterUnavailableError(f"Docker daemon unreachable: {e}") from e

        if self.container.status != "running":
            raise AdapterUnavailableError(
                f"Container '{self.config.container_name}' is {self.container.status}"
            )

    # ------------------------------------------------------------------
    # ToolchainAdapter interface
    # ------------------------------------------------------------------

    def run_timing_analysis(
        self,
        snapshot: DesignSnapshot,
        path_type: str,
        max_paths: int = 100,
    ) -> str:
        script = generate_timing_report_script(snapshot, path_type, max_paths)
        result = self._run_openroad(script, snapshot, self.config.timeout_seconds)
        failure = FailureClassifier.classify_tool_failure(
            result.return_code, result.stdout, result.stderr, result.timed_out
        )
        if failure is not None:
            if failure.failure_type == FailureType.TIMEOUT:
                raise ToolTimeoutError("openroad", self.config.timeout_seconds)
            raise ToolInvocationError("openroad", result.return_code, failure.reason)
        return result.stdout

    def apply_repair(self, snapshot: DesignSnapshot, options: RepairOptions) -> RepairOutcome:
        timeout = int(options.timeout_seconds or self.config.timeout_seconds)
        script = generate_repair_script(snapshot, options)
        result = self._run_openroad(script, snapshot, timeout)

        failure = FailureClassifier.classify_tool_failure(
            result.return_code, result.stdout, result.stderr, result.timed_out
        )
        if failure is not None:
            logger.warning(f"Repair failed: {failure.reason}")
            return RepairOutcome.failed(failure, result.stdout, result.runtime_seconds)

        metrics = parse_repair_output(result.stdout)
        if metrics.wns_ns is None:
            return RepairOutcome.failed(
                FailureClassifier.classify_parse_failure("repair output", result.stdout),
                result.stdout,
                result.runtime_seconds,
            )

        return RepairOutcome(
            success=True,
            wns_ns=metrics.wns_ns,
            tns_ns=metrics.tns_ns if metrics.tns_ns is not None else 0.0,
            changes=metrics.changes,
            log=result.stdout,
            duration_seconds=result.runtime_seconds,
        )

    def run_check(
        self,
        check_type: CheckType,
        snapshot: DesignSnapshot,
        limits: SignoffLimits,
        timeout_seconds: float | None = None,
    ) -> CheckOutcome:
        timeout = int(timeout_seconds or self.config.timeout_seconds)
        report_rel = f"{self.config.signoff_report_dir}/{check_type.value}.rpt"

        if check_type == CheckType.DRC:
            command = f"magic -dnull -noconsole <<'TAPEOUT_EOF'\n{generate_magic_drc_script(snapshot)}TAPEOUT_EOF"
            tool = "magic"
        elif check_type == CheckType.LVS:
            command = generate_netgen_lvs_command(snapshot, report_rel)
            tool = "netgen"
        else:
            command = self._openroad_command(generate_check_script(check_type, snapshot))
            tool = "openroad"

        result = self._exec(
            f"mkdir -p {self.config.signoff_report_dir} && timeout {timeout} bash -c {shlex.quote(command)}",
            snapshot,
        )
        failure = FailureClassifier.classify_tool_failure(
            result.return_code, result.stdout, result.stderr, result.timed_out, tool=tool
        )

        output = result.stdout
        report_path = snapshot.resolve(report_rel)
        if check_type == CheckType.LVS and report_path.exists():
            output = output + "\n" + report_path.read_text(errors="replace")
        elif failure is None:
            self._save_report(report_path, output)

        return CheckOutcome(
            check_type=check_type,
            output=output,
            report_path=str(report_path) if report_path.exists() else None,
            failure=failure,
            duration_seconds=result.runtime_seconds,
        )

    def __getstate__(self) -> dict:
        # Docker clients do not pickle; Ray workers reconnect from config.
        return {"config": self.config}

    def __setstate__(self, state: dict) -> None:
        self.__init__(state["config"])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_openroad(self, script: str, snapshot: DesignSnapshot, timeout: int) -> ExecResult:
        command = self._openroad_command(script)
        return self._exec(f"timeout {timeout} bash -c {shlex.quote(command)}", snapshot)

    @staticmethod
    def _openroad_command(script: str) -> str:
        return f"openroad -no_init -exit <<'TAPEOUT_EOF'\n{script}\nTAPEOUT_EOF"

    def _container_dir(self, snapshot: DesignSnapshot) -> str:
        return self.config.container_run_dir or snapshot.run_dir.as_posix()

    def _exec(self, command: str, snapshot: DesignSnapshot) -> ExecResult:
        """
        Execute a shell command inside the container from the run directory.

        Returns:
            ExecResult; a docker API read timeout is reported as exit code 124,
            any other docker or connection error as exit code -1
        """
        start_time = time.time()
        full_command = f"cd {self._container_dir(snapshot)} && {command}"
        logger.debug(f"docker exec {self.config.container_name}: {len(full_command)} bytes")

        try:
            exit_code, output = self.container.exec_run(
                ["bash", "-c", full_command], demux=True
            )
        except requests.exceptions.ReadTimeout:
            return ExecResult(
                return_code=TIMEOUT_EXIT_CODE,
                stdout="",
                stderr="[HARD_TIMEOUT] docker API read timeout",
                runtime_seconds=time.time() - start_time,
                timed_out=True,
            )
        except (docker.errors.DockerException, requests.exceptions.ConnectionError) as e:
            return ExecResult(
                return_code=-1,
                stdout="",
                stderr=f"docker error: {e}",
                runtime_seconds=time.time() - start_time,
            )

        stdout_bytes, stderr_bytes = output if output else (None, None)
        stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""
        return_code = exit_code if exit_code is not None else -1

        return ExecResult(
            return_code=return_code,
            stdout=stdout,
            stderr=stderr,
            runtime_seconds=time.time() - start_time,
            timed_out=return_code == TIMEOUT_EXIT_CODE,
        )

    @staticmethod
    def _save_report(path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        except OSError as e:
            logger.warning(f"Could not save report {path}: {e}")
