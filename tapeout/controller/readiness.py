"""Tapeout checklist evaluation and readiness scoring.

A fixed catalog of checklist items is resolved against evidence found in
the design run directory (and, optionally, a SignoffReport), then scored
per category and combined into a single weighted readiness score.

The documentation category is scored and displayed but is not part of the
overall score.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable

from tapeout.parsers.gds import inspect_gds
from tapeout.parsers.timing import parse_wns_tns

from .types import (
    DEFAULT_CATEGORY_WEIGHTS,
    CheckCategory,
    ChecklistConfig,
    ChecklistItem,
    ChecklistItemTemplate,
    ChecklistRequirements,
    ChecklistStatus,
    CheckStatus,
    CheckType,
    DesignSnapshot,
    FoundryDeliverable,
    FoundryReadiness,
    GDSChecks,
    QuickReadiness,
    ReadinessScore,
    SignoffReport,
    TapeoutChecklist,
)

logger = logging.getLogger(__name__)


def _item(
    item_id: str,
    category: CheckCategory,
    name: str,
    description: str,
    required: bool,
    weight: float,
    fix_suggestion: str,
) -> ChecklistItemTemplate:
    return ChecklistItemTemplate(item_id, category, name, description, required, weight, fix_suggestion)


_F = CheckCategory.DESIGN_FILES
_V = CheckCategory.DRC_LVS
_T = CheckCategory.TIMING
_P = CheckCategory.POWER
_PH = CheckCategory.PHYSICAL
_D = CheckCategory.DOCUMENTATION

CHECKLIST_CATALOG: tuple[ChecklistItemTemplate, ...] = (
    _item("gds_exists", _F, "GDS File Present", "Final GDS/GDSII file exists", True, 10,
          "Run complete flow to generate GDS file"),
    _item("def_exists", _F, "DEF File Present", "Final DEF file exists with routing", True, 8,
          "Run detailed routing stage"),
    _item("netlist_exists", _F, "Netlist Present", "Final Verilog netlist exists", True, 8,
          "Run synthesis and export netlist"),
    _item("spef_exists", _F, "SPEF Present", "Parasitic extraction file exists", True, 7,
          "Run parasitic extraction (RCX)"),
    _item("sdc_exists", _F, "SDC Constraints", "Timing constraints file exists", True, 8,
          "Create SDC file with clock definitions"),
    _item("lef_exists", _F, "LEF File Present", "Technology LEF file available", True, 6,
          "Verify platform LEF files are configured"),
    _item("drc_clean", _V, "DRC Clean", "No design rule violations", True, 10,
          "Fix DRC violations or get waiver from foundry"),
    _item("lvs_clean", _V, "LVS Clean", "Layout matches schematic", True, 10,
          "Debug LVS mismatches in extracted netlist"),
    _item("antenna_clean", _V, "Antenna Clean", "No antenna rule violations", True, 8,
          "Insert antenna diodes or add metal jumpers"),
    _item("density_check", _V, "Metal Density", "Metal density within foundry limits", True, 7,
          "Add fill cells or adjust routing density"),
    _item("erc_clean", _V, "ERC Clean", "No electrical rule check violations", False, 5,
          "Fix floating nets and unconnected pins"),
    _item("setup_met", _T, "Setup Timing Met", "All setup timing constraints satisfied", True, 10,
          "Run ECO timing optimization or relax constraints"),
    _item("hold_met", _T, "Hold Timing Met", "All hold timing constraints satisfied", True, 10,
          "Insert hold buffers via repair_timing -hold"),
    _item("clock_skew", _T, "Clock Skew Acceptable", "Clock tree skew within limits", True, 7,
          "Re-run CTS with tighter skew target"),
    _item("max_transition", _T, "Max Transition Met", "No max transition violations", True, 6,
          "Insert buffers for slew violations"),
    _item("max_capacitance", _T, "Max Capacitance Met", "No max capacitance violations", True, 6,
          "Split high fanout nets with buffers"),
    _item("ir_drop_ok", _P, "IR Drop Acceptable", "IR drop within specification", True, 8,
          "Strengthen power grid or add decaps"),
    _item("power_grid_connected", _P, "Power Grid Connected", "All cells connected to power/ground", True, 10,
          "Run PDN analysis and fix unconnected cells"),
    _item("em_check", _P, "EM Check Clean", "No electromigration violations", False, 6,
          "Widen critical power wires"),
    _item("filler_cells", _PH, "Filler Cells Inserted", "All gaps filled with filler cells", True, 5,
          "Run filler cell insertion"),
    _item("io_placement", _PH, "IO Placement Complete", "All IOs placed correctly", True, 7,
          "Verify IO pad placement matches package"),
    _item("macro_placement", _PH, "Macro Placement Valid", "All macros properly placed with halos", False, 5,
          "Adjust macro placement and halos"),
    _item("routing_complete", _PH, "Routing Complete", "All nets routed with no opens", True, 10,
          "Re-run detailed routing"),
    _item("timing_report", _D, "Timing Report Generated", "Final timing report available", True, 3,
          "Generate timing report via OpenSTA"),
    _item("power_report", _D, "Power Report Generated", "Power analysis report available", False, 2,
          "Run power analysis"),
    _item("area_report", _D, "Area Report Generated", "Area utilization report available", False, 2,
          "Generate area report"),
)

_CATALOG_BY_ID = {template.id: template for template in CHECKLIST_CATALOG}

DESIGN_FILE_PATTERNS: dict[str, list[str]] = {
    "gds_exists": ["results/final.gds", "results/*.gds", "*.gds"],
    "def_exists": ["results/final.def", "results/route.def", "*.def"],
    "netlist_exists": ["results/final.v", "results/*.v", "results/final.nl.v"],
    "spef_exists": ["results/final.spef", "results/*.spef"],
    "sdc_exists": ["results/final.sdc", "constraint.sdc", "*.sdc"],
    "lef_exists": ["*.lef", "platforms/*.lef"],
}

DOCUMENTATION_PATTERNS: dict[str, list[str]] = {
    "timing_report": ["reports/timing.rpt", "reports/final_timing.rpt"],
    "power_report": ["reports/power.rpt", "reports/final_power.rpt"],
    "area_report": ["reports/area.rpt", "reports/final_area.rpt"],
}

FOUNDRY_DELIVERABLES: tuple[tuple[str, str, bool], ...] = (
    ("GDS File", "results/final.gds", True),
    ("Netlist", "results/final.v", True),
    ("SDC Constraints", "results/final.sdc", True),
    ("SPEF File", "results/final.spef", True),
    ("DEF File", "results/final.def", False),
    ("Timing Report", "reports/timing.rpt", True),
    ("DRC Report", "reports/signoff/drc.rpt", True),
    ("LVS Report", "reports/signoff/lvs.rpt", True),
)

QUICK_CHECK_FILES = ("results/final.gds", "results/final.def", "results/final.v")

DENSITY_REPORT = "reports/density.rpt"
TIMING_REPORT = "reports/timing.rpt"
_DENSITY_VALUE = re.compile(r"density[^\d\n]*(\d+(?:\.\d+)?)\s*%?", re.IGNORECASE)
_CELL_NAME = re.compile(r"^[A-Za-z0-9_$?]+$")


def find_file(run_dir: str | Path, patterns: list[str]) -> Path | None:
    """
    Return the first file matching any of the patterns, tried in order.

    Patterns are run-directory relative and may contain glob wildcards.
    """
    run_dir = Path(run_dir)
    for pattern in patterns:
        if any(ch in pattern for ch in "*?["):
            matches = sorted(p for p in run_dir.glob(pattern) if p.is_file())
            if matches:
                return matches[0]
        else:
            candidate = run_dir / pattern
            if candidate.is_file():
                return candidate
    return None


def _resolved(template_id: str, status: ChecklistStatus, details: str) -> ChecklistItem:
    return ChecklistItem(template=_CATALOG_BY_ID[template_id], status=status, details=details)


# =============================================================================
# Evidence checks (one per category)
# =============================================================================


def check_design_files(snapshot: DesignSnapshot) -> list[ChecklistItem]:
    items = []
    for item_id, patterns in DESIGN_FILE_PATTERNS.items():
        found = find_file(snapshot.run_dir, patterns)
        if found:
            items.append(_resolved(item_id, ChecklistStatus.PASS, f"Found: {found.relative_to(snapshot.run_dir)}"))
        else:
            items.append(_resolved(item_id, ChecklistStatus.FAIL, "File not found"))
    return items


def _status_from_check(report: SignoffReport | None, check_type: CheckType) -> tuple[ChecklistStatus, str]:
    if report is None:
        return ChecklistStatus.NOT_RUN, "No signoff report"
    check = report.get_check(check_type)
    if check is None:
        return ChecklistStatus.NOT_RUN, f"{check_type.display_name} not in signoff report"
    if check.status == CheckStatus.PASS:
        return ChecklistStatus.PASS, f"{check.name} passed"
    if check.status == CheckStatus.WARNING:
        return ChecklistStatus.WARNING, f"{check.name}: {check.violation_count} violations within tolerance"
    if check.status == CheckStatus.ERROR:
        return ChecklistStatus.NOT_RUN, f"{check.name} could not be run"
    if check.status == CheckStatus.SKIPPED:
        return ChecklistStatus.SKIPPED, f"{check.name} skipped"
    return ChecklistStatus.FAIL, f"{check.name}: {check.violation_count} violations"


def check_drc_lvs(
    snapshot: DesignSnapshot,
    report: SignoffReport | None,
    requirements: ChecklistRequirements,
) -> list[ChecklistItem]:
    items = [
        _resolved(item_id, *_status_from_check(report, check_type))
        for item_id, check_type in (
            ("drc_clean", CheckType.DRC),
            ("lvs_clean", CheckType.LVS),
            ("antenna_clean", CheckType.ANTENNA),
        )
    ]
    items.append(_density_item(snapshot, requirements))
    items.append(_resolved("erc_clean", ChecklistStatus.SKIPPED, "ERC not available in open-source flow"))
    return items


def _density_item(snapshot: DesignSnapshot, requirements: ChecklistRequirements) -> ChecklistItem:
    density_path = snapshot.resolve(DENSITY_REPORT)
    if not density_path.is_file():
        return _resolved("density_check", ChecklistStatus.NOT_RUN, "Density report not found")

    if requirements.min_density is None and requirements.max_density is None:
        return _resolved("density_check", ChecklistStatus.PASS, "Density report available")

    match = _DENSITY_VALUE.search(density_path.read_text(errors="replace"))
    if not match:
        return _resolved("density_check", ChecklistStatus.WARNING, "Density value not found in report")

    density = float(match.group(1))
    too_low = requirements.min_density is not None and density < requirements.min_density
    too_high = requirements.max_density is not None and density > requirements.max_density
    if too_low or too_high:
        return _resolved("density_check", ChecklistStatus.FAIL, f"Density {density}% outside limits")
    return _resolved("density_check", ChecklistStatus.PASS, f"Density {density}% within limits")


def check_timing(snapshot: DesignSnapshot, report: SignoffReport | None) -> list[ChecklistItem]:
    wns = _signoff_wns(report)
    source = "signoff report"
    hold_known = wns is not None

    if wns is None:
        timing_path = snapshot.resolve(TIMING_REPORT)
        if timing_path.is_file():
            wns, _ = parse_wns_tns(timing_path.read_text(errors="replace"))
            source = TIMING_REPORT

    items = []
    if wns is None:
        items.append(_resolved("setup_met", ChecklistStatus.NOT_RUN, "No timing data"))
    elif wns >= 0:
        items.append(_resolved("setup_met", ChecklistStatus.PASS, f"WNS: {wns:.3f} ns ({source})"))
    else:
        items.append(_resolved("setup_met", ChecklistStatus.FAIL, f"WNS: {wns:.3f} ns ({source})"))

    if hold_known and wns >= 0:
        items.append(_resolved("hold_met", ChecklistStatus.PASS, "No timing violations"))
    elif hold_known:
        items.append(_resolved("hold_met", ChecklistStatus.WARNING, "Hold analysis requires separate check"))
    else:
        items.append(_resolved("hold_met", ChecklistStatus.NOT_RUN, "No hold timing data"))

    for item_id in ("clock_skew", "max_transition", "max_capacitance"):
        items.append(_resolved(item_id, ChecklistStatus.NOT_RUN, "Requires detailed timing analysis"))
    return items


def _signoff_wns(report: SignoffReport | None) -> float | None:
    if report is None:
        return None
    check = report.get_check(CheckType.TIMING)
    if check is None or check.status == CheckStatus.ERROR:
        return None
    return check.metrics.get("wns_ns")


def check_power(snapshot: DesignSnapshot, report: SignoffReport | None) -> list[ChecklistItem]:
    items = [_resolved("ir_drop_ok", *_status_from_check(report, CheckType.IR_DROP))]
    if snapshot.resolve(snapshot.def_file).is_file():
        items.append(_resolved("power_grid_connected", ChecklistStatus.PASS, "Power grid present in DEF"))
    else:
        items.append(_resolved("power_grid_connected", ChecklistStatus.NOT_RUN, "DEF not found"))
    items.append(_resolved("em_check", ChecklistStatus.SKIPPED, "EM analysis requires special tools"))
    return items


def check_physical(snapshot: DesignSnapshot) -> list[ChecklistItem]:
    def_path = snapshot.resolve(snapshot.def_file)
    if not def_path.is_file():
        return [
            _resolved("filler_cells", ChecklistStatus.NOT_RUN, "DEF not found"),
            _resolved("io_placement", ChecklistStatus.NOT_RUN, "DEF not found"),
            _resolved("macro_placement", ChecklistStatus.SKIPPED, "Design may not have macros"),
            _resolved("routing_complete", ChecklistStatus.NOT_RUN, "DEF not found"),
        ]

    content = def_path.read_text(errors="replace")
    has_filler = "filler" in content.lower()
    has_pins = re.search(r"^\s*PINS\s+\d+", content, re.MULTILINE) is not None
    has_routing = "ROUTED" in content

    return [
        _resolved(
            "filler_cells",
            ChecklistStatus.PASS if has_filler else ChecklistStatus.WARNING,
            "Filler cells found in DEF" if has_filler else "No filler cells detected",
        ),
        _resolved(
            "io_placement",
            ChecklistStatus.PASS if has_pins else ChecklistStatus.NOT_RUN,
            "PINS section present in DEF" if has_pins else "No PINS section in DEF",
        ),
        _resolved("macro_placement", ChecklistStatus.SKIPPED, "Design may not have macros"),
        _resolved(
            "routing_complete",
            ChecklistStatus.PASS if has_routing else ChecklistStatus.FAIL,
            "Routing found in DEF" if has_routing else "No routing in DEF",
        ),
    ]


def check_documentation(snapshot: DesignSnapshot) -> list[ChecklistItem]:
    items = []
    for item_id, patterns in DOCUMENTATION_PATTERNS.items():
        found = find_file(snapshot.run_dir, patterns)
        if found:
            items.append(_resolved(item_id, ChecklistStatus.PASS, f"Found: {found.relative_to(snapshot.run_dir)}"))
        elif _CATALOG_BY_ID[item_id].required:
            items.append(_resolved(item_id, ChecklistStatus.FAIL, "Report not found"))
        else:
            items.append(_resolved(item_id, ChecklistStatus.SKIPPED, "Report not found"))
    return items


# =============================================================================
# Scoring
# =============================================================================

GradeRule = tuple[Callable[[float, bool], bool], str]

# (overall, has_missing_critical) -> grade; first match wins
GRADE_RULES: list[GradeRule] = [
    (lambda overall, missing: overall >= 90 and not missing, "A"),
    (lambda overall, missing: overall >= 80, "B"),
    (lambda overall, missing: overall >= 70, "C"),
    (lambda overall, missing: overall >= 60, "D"),
    (lambda overall, missing: True, "F"),
]

TAPEOUT_READY_MIN_SCORE = 90.0


def category_percent(items: list[ChecklistItem], category: CheckCategory) -> float:
    """
    Percent of a category's weight earned: pass earns full weight, warning
    half. A category with no weight scores 0.
    """
    # Sorted so the result does not depend on item order.
    in_category = sorted((i for i in items if i.category == category), key=lambda i: i.id)
    max_score = sum(i.weight for i in in_category)
    if max_score == 0:
        return 0.0
    score = sum(i.weight for i in in_category if i.status == ChecklistStatus.PASS)
    score += sum(0.5 * i.weight for i in in_category if i.status == ChecklistStatus.WARNING)
    return score / max_score * 100


def calculate_readiness_score(
    items: list[ChecklistItem],
    category_weights: dict[CheckCategory, float] | None = None,
) -> ReadinessScore:
    """
    Score resolved checklist items.

    Args:
        items: Resolved checklist items (order does not matter)
        category_weights: Contribution of each scored category to the
            overall score (defaults to DEFAULT_CATEGORY_WEIGHTS)

    Returns:
        ReadinessScore with overall score, per-category breakdown (all six
        categories, including documentation), grade and blockers
    """
    weights = category_weights or DEFAULT_CATEGORY_WEIGHTS
    breakdown = {category: category_percent(items, category) for category in CheckCategory}

    overall = round(sum(breakdown[category] * weight for category, weight in weights.items()), 2)
    missing_critical = [
        i.name
        for i in sorted(items, key=lambda i: i.id)
        if i.required and i.status == ChecklistStatus.FAIL
    ]

    grade = next(g for rule, g in GRADE_RULES if rule(overall, bool(missing_critical)))

    return ReadinessScore(
        overall=overall,
        breakdown=breakdown,
        grade=grade,
        tapeout_ready=not missing_critical and overall >= TAPEOUT_READY_MIN_SCORE,
        missing_critical=missing_critical,
    )


# =============================================================================
# Foundry deliverables
# =============================================================================


def check_gds(gds_path: Path | None, density_ok: bool) -> GDSChecks:
    """Inspect the final GDS stream (if any) for basic submission sanity."""
    if gds_path is None:
        return GDSChecks()

    try:
        info = inspect_gds(gds_path)
    except OSError as e:
        logger.warning(f"Could not read GDS {gds_path}: {e}")
        return GDSChecks(file_exists=True)

    return GDSChecks(
        file_exists=True,
        valid_format=info.valid_format,
        cell_name_valid=bool(info.top_cells) and all(_CELL_NAME.match(n) for n in info.cell_names),
        layer_map_valid=bool(info.layers)
        and all(0 <= layer <= 255 and 0 <= datatype <= 255 for layer, datatype in info.layers),
        density_met=density_ok,
    )


def check_foundry_readiness(
    run_dir: str | Path,
    requirements: ChecklistRequirements | None = None,
) -> FoundryReadiness:
    """
    Inspect the run directory for the foundry submission package.

    Returns:
        FoundryReadiness; ``gds_ready`` requires a GDS file and every
        required deliverable
    """
    run_dir = Path(run_dir)
    deliverables = [
        FoundryDeliverable(name=name, path=path, required=required, present=(run_dir / path).is_file())
        for name, path, required in FOUNDRY_DELIVERABLES
    ]

    gds_path = find_file(run_dir, DESIGN_FILE_PATTERNS["gds_exists"])
    density = _density_item(DesignSnapshot(run_dir=run_dir), requirements or ChecklistRequirements())
    gds_checks = check_gds(gds_path, density.status == ChecklistStatus.PASS)

    missing = [d for d in deliverables if d.required and not d.present]
    return FoundryReadiness(
        gds_ready=gds_path is not None and not missing,
        gds_checks=gds_checks,
        deliverables=deliverables,
    )


# =============================================================================
# Entry points
# =============================================================================


def run_tapeout_checklist(
    snapshot: DesignSnapshot,
    config: ChecklistConfig | None = None,
) -> TapeoutChecklist:
    """
    Resolve the full checklist against a run directory and score it.

    Args:
        snapshot: Design run to evaluate
        config: Checklist configuration (signoff report, requirements,
            category weights); validated before anything is read

    Returns:
        TapeoutChecklist with items, score, blockers and foundry status

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config = config or ChecklistConfig()
    config.validate()
    report = config.signoff_report

    logger.info(f"Running tapeout checklist for {snapshot.design}")
    items: list[ChecklistItem] = []
    items.extend(check_design_files(snapshot))
    items.extend(check_drc_lvs(snapshot, report, config.requirements))
    items.extend(check_timing(snapshot, report))
    items.extend(check_power(snapshot, report))
    items.extend(check_physical(snapshot))
    items.extend(check_documentation(snapshot))

    score = calculate_readiness_score(items, config.category_weights)

    blockers = []
    recommendations = []
    for item in items:
        if item.required and item.status == ChecklistStatus.FAIL:
            blockers.append(f"{item.name}: {item.details or 'Failed'}")
            if item.fix_suggestion:
                recommendations.append(f"{item.name}: {item.fix_suggestion}")

    logger.info(f"Readiness score {score.overall:.1f} (grade {score.grade})")
    return TapeoutChecklist(
        design=snapshot.design,
        platform=snapshot.platform,
        timestamp=datetime.now().isoformat(),
        items=items,
        score=score,
        blockers=blockers,
        recommendations=recommendations,
        foundry=check_foundry_readiness(snapshot.run_dir, config.requirements),
    )


def quick_readiness_check(run_dir: str | Path) -> QuickReadiness:
    """
    Check only the three critical output files, 33 points each.

    Returns:
        QuickReadiness; ready when none are missing
    """
    run_dir = Path(run_dir)
    blockers = []
    score = 0
    for relative in QUICK_CHECK_FILES:
        if (run_dir / relative).is_file():
            score += 33
        else:
            blockers.append(f"Missing: {relative}")
    return QuickReadiness(ready=not blockers, score=min(score, 100), blockers=blockers)
