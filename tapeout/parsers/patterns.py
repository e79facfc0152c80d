"""Regular expressions for the report formats of each supported tool.

Patterns are grouped per tool so that a tool version change only touches
one place. Parsers look patterns up through ``get_patterns(tool)``.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class STAPatterns:
    """OpenSTA / OpenROAD ``report_checks`` and repair output."""

    startpoint: re.Pattern = re.compile(r"Startpoint:\s+(\S+)")
    endpoint: re.Pattern = re.compile(r"Endpoint:\s+(\S+)")
    clock: re.Pattern = re.compile(r"clocked by\s+(\S+?)\)")
    # OpenSTA prints the value before the label; some wrappers print it after.
    slack_before: re.Pattern = re.compile(
        r"(?<!\S)(-?\d+(?:\.\d+)?)[ \t]+slack\s*\((VIOLATED|MET)\)", re.IGNORECASE
    )
    slack_after: re.Pattern = re.compile(
        r"slack\s*\((VIOLATED|MET)\)\s*(-?\d+(?:\.\d+)?)", re.IGNORECASE
    )
    required_time: re.Pattern = re.compile(r"(?<!\S)(-?\d+(?:\.\d+)?)[ \t]+data required time")
    arrival_time: re.Pattern = re.compile(r"(?<!\S)(-?\d+(?:\.\d+)?)[ \t]+data arrival time")
    # Newer OpenROAD prints "wns max -0.12"; values may use exponent notation.
    wns: re.Pattern = re.compile(
        r"\bwns(?:\s+(?:max|min))?[:\s]+(-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)", re.IGNORECASE
    )
    tns: re.Pattern = re.compile(
        r"\btns(?:\s+(?:max|min))?[:\s]+(-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)", re.IGNORECASE
    )
    changes: re.Pattern = re.compile(
        r"(\d+)\s*(?:buffers?|cells?|instances?)\s*(?:inserted|resized|swapped)",
        re.IGNORECASE,
    )
    no_paths: re.Pattern = re.compile(r"No paths found", re.IGNORECASE)


@dataclass(frozen=True)
class DRCPatterns:
    """Magic / OpenROAD DRC report output."""

    total: re.Pattern = re.compile(r"Total DRC errors:\s*(\d+)", re.IGNORECASE)
    total_alt: re.Pattern = re.compile(r"(\d+)\s*total", re.IGNORECASE)
    rule: re.Pattern = re.compile(r"^\s*([\w.\-]+)\s*:\s*(\d+)\s*errors?", re.MULTILINE)


@dataclass(frozen=True)
class LVSPatterns:
    """Netgen LVS comparison output."""

    match: re.Pattern = re.compile(r"Circuits match", re.IGNORECASE)
    mismatch: re.Pattern = re.compile(r"Circuits do not match|Netlists do not match", re.IGNORECASE)
    device_mismatch: re.Pattern = re.compile(r"Device classes?\s+\S+.*?mismatch", re.IGNORECASE)
    net_mismatch: re.Pattern = re.compile(r"Net\s+\S+.*?mismatch", re.IGNORECASE)


@dataclass(frozen=True)
class AntennaPatterns:
    """OpenROAD ``check_antennas`` output."""

    count: re.Pattern = re.compile(r"(\d+)\s*antenna violations?", re.IGNORECASE)
    clean: re.Pattern = re.compile(r"no antenna violations", re.IGNORECASE)
    found_nets: re.Pattern = re.compile(r"Found\s+(\d+)\s+net violations", re.IGNORECASE)
    violating_net: re.Pattern = re.compile(r"^\s*Net\s+(\S+)", re.MULTILINE)


@dataclass(frozen=True)
class IRDropPatterns:
    """OpenROAD PSM ``analyze_power_grid`` output."""

    worst: re.Pattern = re.compile(
        r"worst\s*IR\s*drop[:\s]+(\d+(?:\.\d+)?)\s*([mM]?[vV])", re.IGNORECASE
    )
    average: re.Pattern = re.compile(
        r"average\s*IR\s*drop[:\s]+(\d+(?:\.\d+)?)\s*([mM]?[vV])", re.IGNORECASE
    )


@dataclass(frozen=True)
class ToolPatterns:
    """All pattern groups for one tool release."""

    sta: STAPatterns = STAPatterns()
    drc: DRCPatterns = DRCPatterns()
    lvs: LVSPatterns = LVSPatterns()
    antenna: AntennaPatterns = AntennaPatterns()
    ir_drop: IRDropPatterns = IRDropPatterns()


_REGISTRY: dict[str, ToolPatterns] = {
    "openroad": ToolPatterns(),
}


def get_patterns(tool: str = "openroad") -> ToolPatterns:
    """
    Look up the pattern set for a tool.

    Args:
        tool: Tool name (case-insensitive)

    Returns:
        ToolPatterns for the tool

    Raises:
        KeyError: If no pattern set is registered for the tool
    """
    return _REGISTRY[tool.lower()]


def register_patterns(tool: str, patterns: ToolPatterns) -> None:
    """Register (or replace) the pattern set for a tool."""
    _REGISTRY[tool.lower()] = patterns
