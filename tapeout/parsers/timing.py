"""Parsers for OpenSTA path reports and OpenROAD repair output."""

from dataclasses import dataclass

from tapeout.controller.exceptions import TimingReportParseError
from tapeout.controller.types import TimingViolation, ViolationType
from tapeout.parsers.patterns import STAPatterns, get_patterns


@dataclass
class RepairMetrics:
    """Metrics scraped from a repair_timing run."""

    wns_ns: float | None
    tns_ns: float | None
    changes: int


def parse_violating_paths(
    content: str,
    violation_type: ViolationType,
    tool: str = "openroad",
) -> list[TimingViolation]:
    """
    Extract failing paths from a ``report_checks`` report.

    The report is split into path blocks at each ``Startpoint:`` line. Each
    block must carry an endpoint and a slack line; paths whose slack is not
    negative are dropped. Report order is preserved.

    Args:
        content: Raw report text
        violation_type: SETUP for max-path reports, HOLD for min-path reports
        tool: Pattern set to use

    Returns:
        Violations in report order (empty for a clean or empty report)

    Raises:
        TimingReportParseError: If a path block is truncated or malformed
    """
    patterns = get_patterns(tool).sta
    violations: list[TimingViolation] = []

    for index, block in enumerate(_split_path_blocks(content)):
        start_match = patterns.startpoint.search(block)
        end_match = patterns.endpoint.search(block)
        if not start_match or not end_match:
            raise TimingReportParseError(f"Path {index + 1} has no start/endpoint")

        slack = _parse_slack(block, patterns)
        if slack is None:
            raise TimingReportParseError(
                f"Path {index + 1} ({start_match.group(1)}) has no slack line"
            )
        if slack >= 0:
            continue

        clock_match = patterns.clock.search(block)
        required_match = patterns.required_time.search(block)
        arrival_match = patterns.arrival_time.search(block)

        violations.append(
            TimingViolation(
                violation_type=violation_type,
                startpoint=start_match.group(1),
                endpoint=end_match.group(1),
                slack_ns=slack,
                clock=clock_match.group(1) if clock_match else "clk",
                required_time_ns=float(required_match.group(1)) if required_match else 0.0,
                arrival_time_ns=float(arrival_match.group(1)) if arrival_match else 0.0,
            )
        )

    return violations


def _split_path_blocks(content: str) -> list[str]:
    """Split report text into one chunk per ``Startpoint:`` header."""
    blocks: list[str] = []
    current: list[str] = []
    for line in content.splitlines():
        if line.strip().startswith("Startpoint:"):
            if current:
                blocks.append("\n".join(current))
            current = [line]
        elif current:
            current.append(line)
    if current:
        blocks.append("\n".join(current))
    return blocks


def _parse_slack(block: str, patterns: STAPatterns) -> float | None:
    match = patterns.slack_before.search(block)
    if match:
        return float(match.group(1))
    match = patterns.slack_after.search(block)
    if match:
        return float(match.group(2))
    return None


def parse_wns_tns(content: str, tool: str = "openroad") -> tuple[float | None, float | None]:
    """
    Extract WNS and TNS (ns) from ``report_wns`` / ``report_tns`` output.

    Args:
        content: Raw tool output
        tool: Pattern set to use

    Returns:
        (wns_ns, tns_ns); either is None when absent
    """
    patterns = get_patterns(tool).sta
    wns_match = patterns.wns.search(content)
    tns_match = patterns.tns.search(content)
    wns = float(wns_match.group(1)) if wns_match else None
    tns = float(tns_match.group(1)) if tns_match else None
    return wns, tns


def parse_repair_output(content: str, tool: str = "openroad") -> RepairMetrics:
    """
    Extract post-repair WNS/TNS and the number of netlist changes.

    Every "N buffers inserted" / "N cells resized" style line is summed.
    The last reported WNS/TNS wins, since repair_timing reports before and
    after values.

    Args:
        content: Raw repair output
        tool: Pattern set to use

    Returns:
        RepairMetrics (wns/tns None when not reported)
    """
    patterns = get_patterns(tool).sta
    wns_values = patterns.wns.findall(content)
    tns_values = patterns.tns.findall(content)
    changes = sum(int(n) for n in patterns.changes.findall(content))
    return RepairMetrics(
        wns_ns=float(wns_values[-1]) if wns_values else None,
        tns_ns=float(tns_values[-1]) if tns_values else None,
        changes=changes,
    )


def report_has_no_paths(content: str, tool: str = "openroad") -> bool:
    """True if the tool explicitly reported an empty path set."""
    return bool(get_patterns(tool).sta.no_paths.search(content))
