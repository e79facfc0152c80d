"""
Parsers module - Extract timing and verification results from tool reports.
"""

from tapeout.parsers.signoff import (
    AntennaSummary,
    DRCSummary,
    IRDropSummary,
    LVSSummary,
    parse_antenna_report,
    parse_drc_report,
    parse_ir_drop_report,
    parse_lvs_report,
)
from tapeout.parsers.timing import (
    RepairMetrics,
    parse_repair_output,
    parse_violating_paths,
    parse_wns_tns,
)

__all__ = [
    "AntennaSummary",
    "DRCSummary",
    "IRDropSummary",
    "LVSSummary",
    "RepairMetrics",
    "parse_antenna_report",
    "parse_drc_report",
    "parse_ir_drop_report",
    "parse_lvs_report",
    "parse_repair_output",
    "parse_violating_paths",
    "parse_wns_tns",
]
