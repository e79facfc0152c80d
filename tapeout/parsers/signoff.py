"""Parsers for physical verification reports (DRC, LVS, antenna, IR drop).

Each parser returns a small typed summary or raises CheckReportParseError
when the text does not look like a report of that kind. Callers decide how
to absorb the error.
"""

from dataclasses import dataclass, field

from tapeout.controller.exceptions import CheckReportParseError
from tapeout.parsers.patterns import get_patterns


@dataclass
class DRCSummary:
    """Parsed DRC report."""

    total: int
    by_rule: dict[str, int] = field(default_factory=dict)


@dataclass
class LVSSummary:
    """Parsed LVS comparison."""

    matched: bool
    device_mismatches: int = 0
    net_mismatches: int = 0


@dataclass
class AntennaSummary:
    """Parsed antenna check."""

    violations: int
    nets: list[str] = field(default_factory=list)


@dataclass
class IRDropSummary:
    """Parsed IR drop analysis, in millivolts."""

    worst_mv: float
    average_mv: float | None = None


def parse_drc_report(content: str, tool: str = "openroad") -> DRCSummary:
    """
    Parse a DRC report.

    Args:
        content: Raw report text
        tool: Pattern set to use

    Returns:
        DRCSummary with total and per-rule counts

    Raises:
        CheckReportParseError: If no total count is present
    """
    patterns = get_patterns(tool).drc
    match = patterns.total.search(content) or patterns.total_alt.search(content)
    if not match:
        raise CheckReportParseError("DRC")

    by_rule: dict[str, int] = {}
    for rule, count in patterns.rule.findall(content):
        by_rule[rule] = by_rule.get(rule, 0) + int(count)

    return DRCSummary(total=int(match.group(1)), by_rule=by_rule)


def parse_lvs_report(content: str, tool: str = "openroad") -> LVSSummary:
    """
    Parse a Netgen LVS report.

    Args:
        content: Raw report text
        tool: Pattern set to use

    Returns:
        LVSSummary; ``matched`` only when a match verdict is present and no
        mismatch verdict is

    Raises:
        CheckReportParseError: If the report carries no verdict at all
    """
    patterns = get_patterns(tool).lvs
    has_match = bool(patterns.match.search(content))
    has_mismatch = bool(patterns.mismatch.search(content))
    if not has_match and not has_mismatch:
        raise CheckReportParseError("LVS", "LVS report has no comparison verdict")

    return LVSSummary(
        matched=has_match and not has_mismatch,
        device_mismatches=len(patterns.device_mismatch.findall(content)),
        net_mismatches=len(patterns.net_mismatch.findall(content)),
    )


def parse_antenna_report(content: str, tool: str = "openroad") -> AntennaSummary:
    """
    Parse ``check_antennas`` output.

    Args:
        content: Raw report text
        tool: Pattern set to use

    Returns:
        AntennaSummary with violation count and offending nets

    Raises:
        CheckReportParseError: If no count or clean verdict is present
    """
    patterns = get_patterns(tool).antenna
    if patterns.clean.search(content):
        return AntennaSummary(violations=0)

    match = patterns.count.search(content) or patterns.found_nets.search(content)
    if not match:
        raise CheckReportParseError("Antenna")

    return AntennaSummary(
        violations=int(match.group(1)),
        nets=patterns.violating_net.findall(content),
    )


def parse_ir_drop_report(content: str, tool: str = "openroad") -> IRDropSummary:
    """
    Parse power grid analysis output. Volt values are converted to mV.

    Args:
        content: Raw report text
        tool: Pattern set to use

    Returns:
        IRDropSummary in millivolts

    Raises:
        CheckReportParseError: If no worst-case drop is reported
    """
    patterns = get_patterns(tool).ir_drop
    worst = patterns.worst.search(content)
    if not worst:
        raise CheckReportParseError("IR Drop")

    average = patterns.average.search(content)
    return IRDropSummary(
        worst_mv=_to_millivolts(worst.group(1), worst.group(2)),
        average_mv=_to_millivolts(average.group(1), average.group(2)) if average else None,
    )


def _to_millivolts(value: str, unit: str) -> float:
    number = float(value)
    if unit.lower() == "v":
        return number * 1000.0
    return number
