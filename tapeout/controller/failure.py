"""Failure classification for toolchain invocations."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import ToolchainError, ToolTimeoutError


class FailureType(str, Enum):
    """Types of toolchain failures."""

    TOOL_CRASH = "tool_crash"  # Non-zero exit code
    TIMEOUT = "timeout"  # Invocation exceeded its time limit
    PARSE_FAILURE = "parse_failure"  # Output did not have the expected shape
    OOM = "out_of_memory"
    SEGFAULT = "segfault"
    CORE_DUMP = "core_dump"
    TOOL_MISSING = "tool_missing"  # Binary or script not in the container
    CONTAINER_ERROR = "container_error"  # Docker-level failure
    UNKNOWN = "unknown"


class FailureSeverity(str, Enum):
    """Severity levels for failures."""

    CRITICAL = "critical"  # Unrecoverable
    HIGH = "high"
    MEDIUM = "medium"  # Recoverable with intervention
    LOW = "low"  # May be transient


@dataclass
class FailureClassification:
    """
    Deterministic classification of a failed tool invocation.

    Attached to failed ECO iterations and to signoff checks in ``error``
    status so that a timeout can always be told apart from a crash.
    """

    failure_type: FailureType
    severity: FailureSeverity
    reason: str
    log_excerpt: str = ""
    metrics: dict[str, Any] | None = None
    recoverable: bool = False

    @property
    def is_timeout(self) -> bool:
        return self.failure_type == FailureType.TIMEOUT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "failure_type": self.failure_type.value,
            "severity": self.severity.value,
            "reason": self.reason,
            "log_excerpt": self.log_excerpt,
            "metrics": self.metrics or {},
            "recoverable": self.recoverable,
        }


class FailureClassifier:
    """
    Deterministically classify toolchain failures.

    Markers are checked from most to least specific; the first match wins.
    """

    @staticmethod
    def classify_tool_failure(
        return_code: int,
        stdout: str,
        stderr: str,
        timed_out: bool = False,
        tool: str = "openroad",
    ) -> FailureClassification | None:
        """
        Classify the outcome of a single tool invocation.

        Args:
            return_code: Tool exit code
            stdout: Standard output
            stderr: Standard error
            timed_out: True if the caller killed the tool on timeout
            tool: Tool name used in the reason text

        Returns:
            FailureClassification if the invocation failed, None on success
        """
        excerpt = FailureClassifier._extract_log_excerpt(stderr, stdout)

        if timed_out or return_code == 124:
            return FailureClassification(
                failure_type=FailureType.TIMEOUT,
                severity=FailureSeverity.HIGH,
                reason=f"{tool} exceeded timeout limit (exit code {return_code})",
                log_excerpt=excerpt,
                recoverable=True,
            )

        if return_code == 0:
            return None

        combined_output = (stderr + "\n" + stdout).lower()

        if any(
            marker in combined_output
            for marker in ["out of memory", "oom", "killed", "signal 9"]
        ) or return_code == 137:
            return FailureClassification(
                failure_type=FailureType.OOM,
                severity=FailureSeverity.CRITICAL,
                reason=f"{tool} ran out of memory (exit code {return_code})",
                log_excerpt=excerpt,
            )

        if any(
            marker in combined_output
            for marker in ["segmentation fault", "segfault", "sigsegv", "signal 11"]
        ) or return_code == 139:  # 128 + SIGSEGV
            return FailureClassification(
                failure_type=FailureType.SEGFAULT,
                severity=FailureSeverity.CRITICAL,
                reason=f"{tool} segmentation fault (exit code {return_code})",
                log_excerpt=excerpt,
            )

        if "core dumped" in combined_output or return_code == 134:  # 128 + SIGABRT
            return FailureClassification(
                failure_type=FailureType.CORE_DUMP,
                severity=FailureSeverity.CRITICAL,
                reason=f"{tool} core dump (exit code {return_code})",
                log_excerpt=excerpt,
            )

        if any(
            marker in combined_output
            for marker in [
                "container not found",
                "no such container",
                "container is not running",
                "docker error",
            ]
        ):
            return FailureClassification(
                failure_type=FailureType.CONTAINER_ERROR,
                severity=FailureSeverity.MEDIUM,
                reason=f"Container failure while running {tool} (exit code {return_code})",
                log_excerpt=excerpt,
                recoverable=True,
            )

        if "command not found" in combined_output or return_code == 127:
            return FailureClassification(
                failure_type=FailureType.TOOL_MISSING,
                severity=FailureSeverity.CRITICAL,
                reason=f"{tool} not found (exit code {return_code})",
                log_excerpt=excerpt,
            )

        return FailureClassification(
            failure_type=FailureType.TOOL_CRASH,
            severity=FailureSeverity.HIGH,
            reason=f"{tool} exited with non-zero code: {return_code}",
            log_excerpt=excerpt,
        )

    @staticmethod
    def classify_parse_failure(what: str, content: str) -> FailureClassification:
        """
        Classify output that could not be parsed.

        Args:
            what: Which report failed to parse (e.g. "max path report")
            content: Raw tool output

        Returns:
            FailureClassification with PARSE_FAILURE type
        """
        return FailureClassification(
            failure_type=FailureType.PARSE_FAILURE,
            severity=FailureSeverity.MEDIUM,
            reason=f"Could not parse {what}",
            log_excerpt=FailureClassifier._extract_log_excerpt("", content),
        )

    @staticmethod
    def classify_toolchain_error(error: ToolchainError) -> FailureClassification:
        """Classify a toolchain error raised by an adapter call."""
        if isinstance(error, ToolTimeoutError):
            return FailureClassification(
                failure_type=FailureType.TIMEOUT,
                severity=FailureSeverity.HIGH,
                reason=str(error),
                recoverable=True,
            )
        return FailureClassification(
            failure_type=FailureType.TOOL_CRASH,
            severity=FailureSeverity.HIGH,
            reason=str(error),
        )

    @staticmethod
    def _extract_log_excerpt(stderr: str, stdout: str, max_lines: int = 20) -> str:
        """
        Extract the tail of the tool log, preferring stderr.

        Args:
            stderr: Standard error
            stdout: Standard output
            max_lines: Maximum number of lines to keep

        Returns:
            Log excerpt string
        """
        source = stderr if stderr.strip() else stdout
        lines = source.strip().splitlines()
        return "\n".join(lines[-max_lines:])

    @staticmethod
    def is_transient(classification: FailureClassification) -> bool:
        """
        Whether a caller-level retry is reasonable.

        The engine itself never retries; this is advisory for callers.
        """
        return classification.failure_type in {
            FailureType.TIMEOUT,
            FailureType.CONTAINER_ERROR,
        }
