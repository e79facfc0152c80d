"""Tests for STA report and repair output parsing."""

import pytest

from tapeout.controller.exceptions import TimingReportParseError
from tapeout.controller.types import ViolationType
from tapeout.parsers.patterns import STAPatterns, ToolPatterns, get_patterns, register_patterns
from tapeout.parsers.timing import (
    parse_repair_output,
    parse_violating_paths,
    parse_wns_tns,
    report_has_no_paths,
)


class TestParseViolatingPaths:
    """Extraction of failing paths from report_checks output."""

    def test_extracts_violations_in_report_order(self, path_report):
        report = path_report(
            ("u_core/reg_a", "u_core/reg_b", -0.250),
            ("u_core/reg_c", "u_core/reg_d", -0.010),
        )

        violations = parse_violating_paths(report, ViolationType.SETUP)

        assert [v.endpoint for v in violations] == ["u_core/reg_b", "u_core/reg_d"]
        first = violations[0]
        assert first.violation_type == ViolationType.SETUP
        assert first.startpoint == "u_core/reg_a"
        assert first.slack_ns == pytest.approx(-0.25)
        assert first.clock == "core_clock"
        assert first.arrival_time_ns == pytest.approx(1.2)
        assert first.required_time_ns == pytest.approx(1.0)
        assert first.path == "u_core/reg_a -> u_core/reg_b"
        assert first.severity_ns == pytest.approx(0.25)

    def test_met_paths_are_dropped(self, path_report):
        report = path_report(
            ("a", "b", 0.120),
            ("c", "d", -0.300),
            ("e", "f", 0.000),
        )

        violations = parse_violating_paths(report, ViolationType.HOLD)

        assert len(violations) == 1
        assert violations[0].endpoint == "d"
        assert violations[0].violation_type == ViolationType.HOLD

    def test_empty_report_yields_nothing(self):
        assert parse_violating_paths("", ViolationType.SETUP) == []
        assert parse_violating_paths("No paths found.\n", ViolationType.SETUP) == []

    def test_slack_after_label_is_accepted(self):
        report = "Startpoint: in1\nEndpoint: out1\nslack (VIOLATED) -0.42\n"

        violations = parse_violating_paths(report, ViolationType.SETUP)

        assert violations[0].slack_ns == pytest.approx(-0.42)
        assert violations[0].clock == "clk"

    def test_truncated_block_raises(self, path_report):
        report = path_report(("a", "b", -0.1)) + "\nStartpoint: c\nEndpoint: d\n"

        with pytest.raises(TimingReportParseError, match="no slack line"):
            parse_violating_paths(report, ViolationType.SETUP)

    def test_block_without_endpoint_raises(self):
        with pytest.raises(TimingReportParseError):
            parse_violating_paths("Startpoint: a\n  -0.1 slack (VIOLATED)\n", ViolationType.SETUP)


class TestParseWnsTns:
    def test_report_wns_tns_output(self):
        wns, tns = parse_wns_tns("wns -0.125\ntns -3.400\n")
        assert wns == pytest.approx(-0.125)
        assert tns == pytest.approx(-3.4)

    def test_missing_values_are_none(self):
        assert parse_wns_tns("nothing here") == (None, None)

    def test_colon_separated(self):
        wns, tns = parse_wns_tns("WNS: 0.010\nTNS: 0.0")
        assert wns == pytest.approx(0.01)
        assert tns == 0.0

    def test_path_delay_qualified_form(self):
        wns, tns = parse_wns_tns("wns max -0.210\ntns max -4.75\n")
        assert wns == pytest.approx(-0.21)
        assert tns == pytest.approx(-4.75)

    def test_exponent_notation(self):
        wns, tns = parse_wns_tns("wns -1.25e-01\ntns -3E+00\n")
        assert wns == pytest.approx(-0.125)
        assert tns == pytest.approx(-3.0)


class TestParseRepairOutput:
    def test_last_wns_wins_and_changes_are_summed(self):
        output = (
            "wns -0.500\ntns -12.0\n"
            "[INFO RSZ-0040] Inserted 12 buffers inserted\n"
            "[INFO RSZ-0051] 30 cells resized\n"
            "[INFO RSZ-0090] 4 instances swapped\n"
            "wns -0.120\ntns -1.5\n"
        )

        metrics = parse_repair_output(output)

        assert metrics.wns_ns == pytest.approx(-0.12)
        assert metrics.tns_ns == pytest.approx(-1.5)
        assert metrics.changes == 46

    def test_qualified_values_after_repair(self):
        metrics = parse_repair_output("wns max -0.4\ntns max -9.0\nwns max -2e-02\ntns max 0\n")

        assert metrics.wns_ns == pytest.approx(-0.02)
        assert metrics.tns_ns == 0.0

    def test_no_metrics(self):
        metrics = parse_repair_output("repair_timing: nothing to do")
        assert metrics.wns_ns is None
        assert metrics.tns_ns is None
        assert metrics.changes == 0


def test_report_has_no_paths():
    assert report_has_no_paths("No paths found.")
    assert not report_has_no_paths("Startpoint: a")


def test_pattern_registry_lookup_is_case_insensitive():
    assert get_patterns("OpenROAD") is get_patterns("openroad")
    with pytest.raises(KeyError):
        get_patterns("primetime")


def test_registered_patterns_are_used_by_parsers():
    import re

    custom = ToolPatterns(sta=STAPatterns(wns=re.compile(r"worst slack\s+(-?\d+(?:\.\d+)?)")))
    register_patterns("custom_sta", custom)

    wns, _ = parse_wns_tns("worst slack -0.33", tool="custom_sta")

    assert wns == pytest.approx(-0.33)
