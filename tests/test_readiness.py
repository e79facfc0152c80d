"""Tests for the tapeout checklist, readiness scoring and foundry checks."""

import random

import pytest

from tapeout.controller.exceptions import CategoryWeightError, ChecklistWeightError
from tapeout.controller.readiness import (
    CHECKLIST_CATALOG,
    TAPEOUT_READY_MIN_SCORE,
    calculate_readiness_score,
    category_percent,
    check_drc_lvs,
    check_foundry_readiness,
    check_gds,
    check_physical,
    check_timing,
    find_file,
    quick_readiness_check,
    run_tapeout_checklist,
)
from tapeout.controller.types import (
    DEFAULT_CATEGORY_WEIGHTS,
    CheckCategory,
    ChecklistConfig,
    ChecklistItem,
    ChecklistItemTemplate,
    ChecklistRequirements,
    ChecklistStatus,
    CheckStatus,
    CheckType,
    SignoffCheckResult,
    SignoffReport,
)


def _signoff_report(**statuses) -> SignoffReport:
    """SignoffReport with one result per keyword (drc=..., timing=...)."""
    checks = []
    for name, status in statuses.items():
        check_type = CheckType(name)
        metrics = {}
        if check_type == CheckType.TIMING:
            metrics = {"wns_ns": 0.05 if status == CheckStatus.PASS else -0.2}
        checks.append(
            SignoffCheckResult(
                check_type=check_type,
                status=status,
                violation_count=0 if status == CheckStatus.PASS else 3,
                metrics=metrics,
            )
        )
    return SignoffReport(design="gcd", timestamp="2026-01-01T00:00:00", checks=checks)


def _clean_report() -> SignoffReport:
    return _signoff_report(
        drc=CheckStatus.PASS,
        lvs=CheckStatus.PASS,
        antenna=CheckStatus.PASS,
        ir_drop=CheckStatus.PASS,
        timing=CheckStatus.PASS,
    )


def _all_items(status: ChecklistStatus) -> list[ChecklistItem]:
    return [ChecklistItem(template=t, status=status) for t in CHECKLIST_CATALOG]


def _by_id(items: list[ChecklistItem]) -> dict[str, ChecklistItem]:
    return {i.id: i for i in items}


class TestCatalog:
    def test_catalog_shape(self):
        ids = [t.id for t in CHECKLIST_CATALOG]
        assert len(ids) == 26
        assert len(set(ids)) == len(ids)
        assert {t.category for t in CHECKLIST_CATALOG} == set(CheckCategory)

    def test_weights_in_range(self):
        assert all(0 <= t.weight <= 10 for t in CHECKLIST_CATALOG)

    def test_template_rejects_weight_out_of_range(self):
        with pytest.raises(ChecklistWeightError):
            ChecklistItemTemplate("x", CheckCategory.POWER, "X", "", True, 11)


class TestEvidenceChecks:
    """Item statuses derived from files and signoff results."""

    def test_empty_run_dir(self, snapshot):
        checklist = run_tapeout_checklist(snapshot)
        items = _by_id(checklist.items)

        assert len(checklist.items) == 26
        assert items["gds_exists"].status == ChecklistStatus.FAIL
        assert items["drc_clean"].status == ChecklistStatus.NOT_RUN
        assert items["setup_met"].status == ChecklistStatus.NOT_RUN
        assert items["routing_complete"].status == ChecklistStatus.NOT_RUN
        assert items["erc_clean"].status == ChecklistStatus.SKIPPED
        assert items["timing_report"].status == ChecklistStatus.FAIL
        assert items["power_report"].status == ChecklistStatus.SKIPPED
        assert not any(i.status == ChecklistStatus.PASS for i in checklist.items)
        assert checklist.score.grade == "F"
        assert not checklist.score.tapeout_ready
        assert checklist.score.breakdown[CheckCategory.DESIGN_FILES] == 0.0
        design_file_names = {t.name for t in CHECKLIST_CATALOG if t.category == CheckCategory.DESIGN_FILES}
        assert len(design_file_names) == 6
        assert design_file_names <= set(checklist.score.missing_critical)
        assert "GDS File Present: File not found" in checklist.blockers
        assert any("Run complete flow" in r for r in checklist.recommendations)

    def test_complete_run_with_clean_signoff(self, complete_run):
        checklist = run_tapeout_checklist(complete_run, ChecklistConfig(signoff_report=_clean_report()))
        items = _by_id(checklist.items)

        for item_id in ("gds_exists", "def_exists", "netlist_exists", "spef_exists", "sdc_exists", "lef_exists"):
            assert items[item_id].status == ChecklistStatus.PASS, item_id
        for item_id in ("drc_clean", "lvs_clean", "antenna_clean", "density_check", "setup_met", "hold_met",
                        "ir_drop_ok", "power_grid_connected", "filler_cells", "io_placement",
                        "routing_complete", "timing_report", "power_report", "area_report"):
            assert items[item_id].status == ChecklistStatus.PASS, item_id
        assert checklist.blockers == []
        assert checklist.score.breakdown[CheckCategory.DESIGN_FILES] == pytest.approx(100.0)
        assert checklist.score.breakdown[CheckCategory.DRC_LVS] == pytest.approx(35 / 40 * 100)
        assert checklist.summary["failed"] == 0
        assert checklist.summary["total"] == 26

    def test_missing_evidence_never_passes(self, snapshot):
        report = _signoff_report(drc=CheckStatus.PASS)

        items = _by_id(check_drc_lvs(snapshot, report, ChecklistRequirements()))

        assert items["drc_clean"].status == ChecklistStatus.PASS
        assert items["lvs_clean"].status == ChecklistStatus.NOT_RUN
        assert items["antenna_clean"].status == ChecklistStatus.NOT_RUN
        assert items["density_check"].status == ChecklistStatus.NOT_RUN

    @pytest.mark.parametrize(
        "check_status,expected",
        [
            (CheckStatus.PASS, ChecklistStatus.PASS),
            (CheckStatus.WARNING, ChecklistStatus.WARNING),
            (CheckStatus.FAIL, ChecklistStatus.FAIL),
            (CheckStatus.SKIPPED, ChecklistStatus.SKIPPED),
            (CheckStatus.ERROR, ChecklistStatus.NOT_RUN),
        ],
    )
    def test_drc_status_mapping(self, snapshot, check_status, expected):
        report = _signoff_report(drc=check_status)

        items = _by_id(check_drc_lvs(snapshot, report, ChecklistRequirements()))

        assert items["drc_clean"].status == expected

    def test_timing_from_signoff_failure(self, snapshot):
        items = _by_id(check_timing(snapshot, _signoff_report(timing=CheckStatus.FAIL)))

        assert items["setup_met"].status == ChecklistStatus.FAIL
        assert items["hold_met"].status == ChecklistStatus.WARNING
        assert items["clock_skew"].status == ChecklistStatus.NOT_RUN

    def test_timing_error_is_not_run(self, snapshot):
        report = SignoffReport(
            design="gcd",
            timestamp="t",
            checks=[SignoffCheckResult(CheckType.TIMING, CheckStatus.ERROR, violation_count=-1)],
        )

        items = _by_id(check_timing(snapshot, report))

        assert items["setup_met"].status == ChecklistStatus.NOT_RUN
        assert items["hold_met"].status == ChecklistStatus.NOT_RUN

    def test_timing_from_report_file(self, snapshot):
        (snapshot.run_dir / "reports").mkdir()
        (snapshot.run_dir / "reports/timing.rpt").write_text("wns -0.150\ntns -2.0\n")

        items = _by_id(check_timing(snapshot, None))

        assert items["setup_met"].status == ChecklistStatus.FAIL
        assert "reports/timing.rpt" in items["setup_met"].details
        assert items["hold_met"].status == ChecklistStatus.NOT_RUN

    def test_unparseable_timing_report_is_not_run(self, snapshot):
        (snapshot.run_dir / "reports").mkdir()
        (snapshot.run_dir / "reports/timing.rpt").write_text("report truncated\n")

        items = _by_id(check_timing(snapshot, None))

        assert items["setup_met"].status == ChecklistStatus.NOT_RUN

    @pytest.mark.parametrize(
        "requirements,expected",
        [
            (ChecklistRequirements(), ChecklistStatus.PASS),
            (ChecklistRequirements(min_density=40, max_density=70), ChecklistStatus.PASS),
            (ChecklistRequirements(min_density=60), ChecklistStatus.FAIL),
            (ChecklistRequirements(max_density=50), ChecklistStatus.FAIL),
        ],
    )
    def test_density_requirements(self, complete_run, requirements, expected):
        items = _by_id(check_drc_lvs(complete_run, None, requirements))
        assert items["density_check"].status == expected

    def test_physical_without_filler_or_routing(self, snapshot):
        (snapshot.run_dir / "results").mkdir()
        (snapshot.run_dir / "results/final.def").write_text("DESIGN gcd ;\nCOMPONENTS 0 ;\nEND DESIGN\n")

        items = _by_id(check_physical(snapshot))

        assert items["filler_cells"].status == ChecklistStatus.WARNING
        assert items["io_placement"].status == ChecklistStatus.NOT_RUN
        assert items["macro_placement"].status == ChecklistStatus.SKIPPED
        assert items["routing_complete"].status == ChecklistStatus.FAIL

    def test_find_file_tries_patterns_in_order(self, tmp_path):
        (tmp_path / "results").mkdir()
        (tmp_path / "results/b.gds").write_text("")
        (tmp_path / "results/a.gds").write_text("")
        (tmp_path / "top.gds").write_text("")

        assert find_file(tmp_path, ["results/final.gds", "results/*.gds", "*.gds"]).name == "a.gds"
        assert find_file(tmp_path, ["missing.gds"]) is None


class TestScoring:
    """Weighted readiness score and grade."""

    def test_all_pass_is_ready(self):
        score = calculate_readiness_score(_all_items(ChecklistStatus.PASS))

        assert score.overall == pytest.approx(100.0)
        assert score.grade == "A"
        assert score.tapeout_ready
        assert score.missing_critical == []

    def test_all_warning_scores_half(self):
        score = calculate_readiness_score(_all_items(ChecklistStatus.WARNING))

        assert score.overall == pytest.approx(50.0)
        assert score.grade == "F"
        assert not score.tapeout_ready

    def test_required_failure_blocks_tapeout_and_grade_a(self):
        items = _all_items(ChecklistStatus.PASS)
        items[0] = ChecklistItem(template=items[0].template, status=ChecklistStatus.FAIL)

        score = calculate_readiness_score(items)

        assert score.overall >= TAPEOUT_READY_MIN_SCORE
        assert score.grade == "B"
        assert not score.tapeout_ready
        assert score.missing_critical == ["GDS File Present"]

    def test_optional_failure_is_not_critical(self):
        items = [
            ChecklistItem(template=t, status=ChecklistStatus.FAIL if t.id == "erc_clean" else ChecklistStatus.PASS)
            for t in CHECKLIST_CATALOG
        ]

        score = calculate_readiness_score(items)

        assert score.missing_critical == []
        assert score.breakdown[CheckCategory.DRC_LVS] == pytest.approx(35 / 40 * 100)

    def test_documentation_excluded_from_overall(self):
        passing = _all_items(ChecklistStatus.PASS)
        without_docs = [
            ChecklistItem(
                template=i.template,
                status=ChecklistStatus.SKIPPED if i.category == CheckCategory.DOCUMENTATION else i.status,
            )
            for i in passing
        ]

        with_docs_score = calculate_readiness_score(passing)
        without_docs_score = calculate_readiness_score(without_docs)

        assert without_docs_score.breakdown[CheckCategory.DOCUMENTATION] == 0.0
        assert with_docs_score.breakdown[CheckCategory.DOCUMENTATION] == 100.0
        assert without_docs_score.overall == with_docs_score.overall

    def test_order_invariance(self, complete_run):
        items = run_tapeout_checklist(complete_run, ChecklistConfig(signoff_report=_clean_report())).items
        shuffled = list(items)
        random.Random(7).shuffle(shuffled)

        assert calculate_readiness_score(shuffled) == calculate_readiness_score(items)

    def test_idempotent(self, complete_run):
        config = ChecklistConfig(signoff_report=_clean_report())

        first = run_tapeout_checklist(complete_run, config)
        second = run_tapeout_checklist(complete_run, config)

        assert first.score == second.score
        assert [i.status for i in first.items] == [i.status for i in second.items]

    def test_custom_weights(self):
        items = [
            ChecklistItem(
                template=t,
                status=ChecklistStatus.PASS if t.category == CheckCategory.TIMING else ChecklistStatus.FAIL,
            )
            for t in CHECKLIST_CATALOG
        ]
        weights = {c: 0.0 for c in DEFAULT_CATEGORY_WEIGHTS}
        weights[CheckCategory.TIMING] = 1.0

        score = calculate_readiness_score(items, weights)

        assert score.overall == pytest.approx(100.0)
        assert not score.tapeout_ready

    def test_category_without_items_scores_zero(self):
        assert category_percent([], CheckCategory.POWER) == 0.0

    @pytest.mark.parametrize(
        "weights",
        [
            {CheckCategory.TIMING: 1.0},
            {**DEFAULT_CATEGORY_WEIGHTS, CheckCategory.TIMING: 0.5},
            {**DEFAULT_CATEGORY_WEIGHTS, CheckCategory.DOCUMENTATION: 0.0},
        ],
    )
    def test_invalid_weights_rejected_before_probing(self, snapshot, weights):
        with pytest.raises(CategoryWeightError):
            run_tapeout_checklist(snapshot, ChecklistConfig(category_weights=weights))


class TestFoundryReadiness:
    def test_complete_package(self, complete_run):
        foundry = check_foundry_readiness(complete_run.run_dir)

        assert foundry.gds_ready
        assert foundry.missing_required == []
        checks = foundry.gds_checks
        assert checks.file_exists
        assert checks.valid_format
        assert checks.cell_name_valid
        assert checks.layer_map_valid
        assert checks.density_met

    def test_missing_deliverables(self, complete_run):
        (complete_run.run_dir / "reports/signoff/lvs.rpt").unlink()
        (complete_run.run_dir / "results/final.def").unlink()

        foundry = check_foundry_readiness(complete_run.run_dir)

        assert not foundry.gds_ready
        assert foundry.missing_required == ["LVS Report"]
        def_entry = next(d for d in foundry.deliverables if d.name == "DEF File")
        assert not def_entry.present
        assert not def_entry.required

    def test_empty_directory(self, tmp_path):
        foundry = check_foundry_readiness(tmp_path)

        assert not foundry.gds_ready
        assert not foundry.gds_checks.file_exists
        assert len(foundry.missing_required) == 7

    def test_placeholder_gds_fails_format_check(self, tmp_path):
        gds = tmp_path / "final.gds"
        gds.write_bytes(b"\xff\xfe not a stream \x00")

        checks = check_gds(gds, density_ok=False)

        assert checks.file_exists
        assert not checks.valid_format
        assert not checks.cell_name_valid
        assert not checks.layer_map_valid

    def test_gds_cell_name_and_layer_limits(self, tmp_path, build_gds):
        bad_name = build_gds(tmp_path / "a.gds", cells=("gcd-top",))
        bad_layer = build_gds(tmp_path / "b.gds", layers=((300, 0),))

        name_checks = check_gds(bad_name, density_ok=True)
        layer_checks = check_gds(bad_layer, density_ok=True)

        assert name_checks.valid_format and not name_checks.cell_name_valid
        assert name_checks.layer_map_valid
        assert layer_checks.cell_name_valid and not layer_checks.layer_map_valid

    def test_no_gds(self):
        checks = check_gds(None, density_ok=True)
        assert not checks.file_exists
        assert not checks.density_met


class TestQuickReadiness:
    def test_empty(self, tmp_path):
        result = quick_readiness_check(tmp_path)

        assert not result.ready
        assert result.score == 0
        assert len(result.blockers) == 3

    def test_complete(self, complete_run):
        result = quick_readiness_check(complete_run.run_dir)

        assert result.ready
        assert result.score == 99
        assert result.blockers == []

    def test_partial(self, tmp_path):
        (tmp_path / "results").mkdir()
        (tmp_path / "results/final.v").write_text("")

        result = quick_readiness_check(tmp_path)

        assert result.score == 33
        assert result.blockers == ["Missing: results/final.gds", "Missing: results/final.def"]
