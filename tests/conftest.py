"""Shared fixtures: a scripted in-memory toolchain and report builders."""

from pathlib import Path

import klayout.db as pya
import pytest

from tapeout.controller.types import CheckType, DesignSnapshot
from tapeout.toolchain.adapter import CheckOutcome, RepairOutcome, ToolchainAdapter


class FakeToolchainAdapter(ToolchainAdapter):
    """
    Toolchain double driven by scripted results.

    ``repairs`` is consumed one entry per ``apply_repair`` call; the last
    entry repeats once the script runs out. Entries are RepairOutcome
    instances, ``(wns_ns, tns_ns, changes)`` tuples, or exceptions to raise.
    ``reports`` maps "max"/"min" to report text or an exception to raise.
    ``checks`` maps a CheckType to tool output, a CheckOutcome, or an
    exception to raise.
    """

    def __init__(self, repairs=None, reports=None, checks=None):
        self.repairs = list(repairs or [])
        self.reports = dict(reports or {})
        self.checks = dict(checks or {})
        self.repair_calls = []
        self.timing_calls = []
        self.check_calls = []
        self.closed = False

    def run_timing_analysis(self, snapshot, path_type, max_paths=100):
        self.timing_calls.append(path_type)
        report = self.reports.get(path_type, "")
        if isinstance(report, Exception):
            raise report
        return report

    def apply_repair(self, snapshot, options):
        self.repair_calls.append(options)
        if not self.repairs:
            raise AssertionError("apply_repair called with nothing scripted")
        item = self.repairs.pop(0) if len(self.repairs) > 1 else self.repairs[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, RepairOutcome):
            return item
        wns, tns, changes = item
        return RepairOutcome(success=True, wns_ns=wns, tns_ns=tns, changes=changes)

    def run_check(self, check_type, snapshot, limits, timeout_seconds=None):
        self.check_calls.append(check_type)
        item = self.checks.get(check_type, "")
        if isinstance(item, Exception):
            raise item
        if isinstance(item, CheckOutcome):
            return item
        return CheckOutcome(check_type=check_type, output=item, duration_seconds=0.5)

    def close(self):
        self.closed = True


def make_path_report(*paths: tuple[str, str, float], clock: str = "core_clock") -> str:
    """Build an OpenSTA ``report_checks`` report from (start, end, slack) tuples."""
    blocks = []
    for start, end, slack in paths:
        status = "VIOLATED" if slack < 0 else "MET"
        blocks.append(
            f"Startpoint: {start} (rising edge-triggered flip-flop clocked by {clock})\n"
            f"Endpoint: {end} (rising edge-triggered flip-flop clocked by {clock})\n"
            f"Path Group: {clock}\n"
            "Path Type: max\n"
            "\n"
            "  Delay    Time   Description\n"
            "---------------------------------------------------------\n"
            f"   0.00    0.00   clock {clock} (rise edge)\n"
            "   1.20    1.20   data arrival time\n"
            "\n"
            "   1.00    1.00   data required time\n"
            "---------------------------------------------------------\n"
            f"  {slack:.3f}   slack ({status})\n"
        )
    return "\n".join(blocks)


CLEAN_CHECK_OUTPUTS = {
    CheckType.DRC: "Total DRC errors: 0\n",
    CheckType.LVS: "Circuits match uniquely.\n",
    CheckType.ANTENNA: "No antenna violations found.\n",
    CheckType.IR_DROP: "Worst IR drop: 12.5 mV\nAverage IR drop: 4.1 mV\n",
    CheckType.TIMING: "wns 0.050\ntns 0.000\n",
}


@pytest.fixture
def adapter():
    """Empty scripted adapter; tests fill in repairs/reports/checks."""
    return FakeToolchainAdapter()


@pytest.fixture
def clean_adapter():
    """Adapter whose every signoff check passes."""
    return FakeToolchainAdapter(checks=dict(CLEAN_CHECK_OUTPUTS))


@pytest.fixture
def snapshot(tmp_path: Path) -> DesignSnapshot:
    return DesignSnapshot(run_dir=tmp_path, platform="sky130hd", design="gcd")


@pytest.fixture
def path_report():
    return make_path_report


def make_gds(path: Path, cells=("gcd",), layers=((68, 20),)) -> Path:
    """Write a tiny GDSII layout with one box per layer in each cell."""
    layout = pya.Layout()
    layout.dbu = 0.001
    for name in cells:
        cell = layout.create_cell(name)
        for layer, datatype in layers:
            cell.shapes(layout.layer(layer, datatype)).insert(pya.Box(0, 0, 1000, 1000))
    path.parent.mkdir(parents=True, exist_ok=True)
    layout.write(str(path))
    return path


@pytest.fixture
def build_gds():
    return make_gds


ROUTED_DEF = """VERSION 5.8 ;
DESIGN gcd ;
UNITS DISTANCE MICRONS 1000 ;
DIEAREA ( 0 0 ) ( 100000 100000 ) ;
COMPONENTS 3 ;
  - _1_ sky130_fd_sc_hd__inv_1 + PLACED ( 1000 1000 ) N ;
  - FILLER_0_1 sky130_fd_sc_hd__fill_1 + PLACED ( 2000 1000 ) N ;
  - FILLER_0_2 sky130_fd_sc_hd__fill_2 + PLACED ( 3000 1000 ) N ;
END COMPONENTS
PINS 1 ;
  - clk + NET clk + DIRECTION INPUT + USE SIGNAL + PLACED ( 0 5000 ) E ;
END PINS
NETS 1 ;
  - clk ( PIN clk ) ( _1_ A )
    + ROUTED met1 ( 0 5000 ) ( 1000 5000 ) ;
END NETS
END DESIGN
"""


@pytest.fixture
def complete_run(tmp_path: Path, build_gds) -> DesignSnapshot:
    """A run directory holding every output and report the checklist looks for."""
    files = {
        "results/final.def": ROUTED_DEF,
        "results/final.v": "module gcd(clk); input clk; endmodule\n",
        "results/final.spef": "*SPEF \"IEEE 1481-1998\"\n",
        "results/final.sdc": "create_clock -period 10 [get_ports clk]\n",
        "platform.lef": "VERSION 5.8 ;\n",
        "reports/timing.rpt": "wns 0.020\ntns 0.000\n",
        "reports/power.rpt": "Total power 1.2 mW\n",
        "reports/area.rpt": "Design area 1200 u^2\n",
        "reports/density.rpt": "Metal density: 55.0%\n",
        "reports/signoff/drc.rpt": "Total DRC errors: 0\n",
        "reports/signoff/lvs.rpt": "Circuits match uniquely.\n",
    }
    for relative, content in files.items():
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    build_gds(tmp_path / "results/final.gds")
    return DesignSnapshot(run_dir=tmp_path, platform="sky130hd", design="gcd")
