"""TCL script generation for OpenROAD, Magic and Netgen runs.

All paths in generated scripts are relative to the design run directory;
the caller is responsible for running the tool from inside that directory.
"""

from pathlib import Path

from tapeout.controller.types import CheckType, DesignSnapshot
from tapeout.toolchain.adapter import RepairOptions


def generate_design_load_commands(snapshot: DesignSnapshot) -> str:
    """
    Generate commands that load a routed design for STA.

    Platform LEF/liberty come from the platform ``.vars`` file when it is
    present, otherwise from ``<platform>.lef`` / ``<platform>.lib``.
    """
    platform = snapshot.platform
    return f"""# Load design
if {{[file exists {platform}.vars]}} {{
    source {platform}.vars
    read_lef $TECH_LEF
    read_lef $SC_LEF
    foreach lib $LIB_FILES {{ read_liberty $lib }}
}} else {{
    read_lef {platform}.lef
    read_liberty {platform}.lib
}}
read_def {snapshot.def_file}
read_sdc {snapshot.sdc_file}
"""


def generate_timing_report_script(
    snapshot: DesignSnapshot,
    path_type: str,
    max_paths: int = 100,
) -> str:
    """
    Generate an OpenSTA path report script.

    Args:
        snapshot: Design to analyze
        path_type: "max" for setup paths, "min" for hold paths
        max_paths: Maximum number of violating paths to report

    Returns:
        TCL script content

    Raises:
        ValueError: If path_type is not "max" or "min"
    """
    if path_type not in ("max", "min"):
        raise ValueError(f"Unsupported path_type: {path_type}")

    return f"""# Tapeout - violating path report
# Design: {snapshot.design}
# Path type: {path_type}

{generate_design_load_commands(snapshot)}
report_checks -path_delay {path_type} -slack_max 0 -group_count {max_paths} -format full_clock_expanded
"""


def generate_repair_script(snapshot: DesignSnapshot, options: RepairOptions) -> str:
    """
    Generate a repair (or measure-only) script.

    The script always finishes with ``report_wns`` / ``report_tns`` so the
    resulting timing can be scraped from stdout.
    """
    if options.repair_design:
        repair_cmd = "repair_design -max_wire_length 100 -slew_margin 20 -cap_margin 20"
        write_cmd = "write_def results/eco_repaired.def"
    elif options.measure_only:
        repair_cmd = "# measure only"
        write_cmd = ""
    else:
        repair_cmd = build_repair_timing_command(options)
        write_cmd = f"write_def {snapshot.def_file}"

    return f"""# Tapeout - timing repair
# Design: {snapshot.design}

{generate_design_load_commands(snapshot)}
set_wire_rc -signal -layer met2
estimate_parasitics -placement

{repair_cmd}
{write_cmd}

report_wns
report_tns
"""


def build_repair_timing_command(options: RepairOptions) -> str:
    """Build a single ``repair_timing`` command line from repair options."""
    parts = ["repair_timing"]
    if options.setup:
        parts.append("-setup")
    if options.hold:
        parts.append("-hold")
    if options.setup:
        parts.append(f"-setup_margin {options.setup_margin_ns}")
    if options.hold:
        parts.append(f"-hold_margin {options.hold_margin_ns}")
    parts.append(f"-max_utilization {options.max_utilization}")
    if options.skip_vt_swap:
        parts.append("-skip_vt_swap")
    if options.skip_pin_swap:
        parts.append("-skip_pin_swap")
    return " ".join(parts)


def generate_check_script(check_type: CheckType, snapshot: DesignSnapshot) -> str:
    """
    Generate an OpenROAD script for the OpenROAD-hosted checks.

    Args:
        check_type: ANTENNA, IR_DROP or TIMING
        snapshot: Design to check

    Returns:
        TCL script content

    Raises:
        ValueError: For checks that are not run inside OpenROAD
    """
    load = generate_design_load_commands(snapshot)
    if check_type == CheckType.ANTENNA:
        body = "check_antennas -verbose"
    elif check_type == CheckType.IR_DROP:
        body = "analyze_power_grid -net VDD\nanalyze_power_grid -net VSS"
    elif check_type == CheckType.TIMING:
        body = (
            "report_checks -path_delay max -format full_clock_expanded\n"
            "report_checks -path_delay min -format full_clock_expanded\n"
            "report_wns\n"
            "report_tns"
        )
    else:
        raise ValueError(f"{check_type.value} is not an OpenROAD check")

    return f"""# Tapeout - {check_type.display_name} check
# Design: {snapshot.design}

{load}
{body}
"""


def generate_magic_drc_script(snapshot: DesignSnapshot) -> str:
    """Generate a Magic batch script that counts DRC errors on the final GDS."""
    return f"""drc euclidean on
drc style drc(full)
gds read {snapshot.gds_file}
load {snapshot.design}
select top cell
drc check
drc catchup
drc count total
quit -noprompt
"""


def generate_netgen_lvs_command(snapshot: DesignSnapshot, report_path: str) -> str:
    """Generate the Netgen batch LVS command line."""
    platform = snapshot.platform
    return (
        f"netgen -batch lvs "
        f"'{snapshot.gds_file} {snapshot.design}' "
        f"'{snapshot.netlist_file} {snapshot.design}' "
        f"{platform}_setup.tcl {report_path}"
    )


def write_script(content: str, script_path: str | Path) -> Path:
    """
    Write a generated script to disk.

    Args:
        content: Script content
        script_path: Destination path

    Returns:
        Path of the written script
    """
    script_path = Path(script_path)
    script_path.parent.mkdir(parents=True, exist_ok=True)
    script_path.write_text(content)
    return script_path
