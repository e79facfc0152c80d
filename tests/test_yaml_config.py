"""Tests for YAML engine configuration loading."""

from pathlib import Path

import pytest
import yaml

from tapeout.controller.exceptions import (
    CategoryWeightError,
    ContradictoryFlagsError,
    IterationBudgetError,
    NoChecksEnabledError,
    YAMLConfigError,
)
from tapeout.controller.types import CheckCategory, CheckType
from tapeout.controller.yaml_config import load_engine_config, parse_engine_config


def write_config(tmp_path: Path, data) -> Path:
    path = tmp_path / "engine.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


FULL_CONFIG = {
    "design": {"run_dir": "runs/gcd", "platform": "nangate45", "design": "gcd"},
    "eco": {"max_iterations": 8, "target_wns_ns": -0.05, "enable_vt_swap": False},
    "signoff": {
        "checks": {"ir_drop": False},
        "limits": {"max_ir_drop_mv": 40, "max_drc_violations": 3},
        "check_timeout_seconds": 120,
        "parallel": True,
    },
    "checklist": {
        "requirements": {"min_density": 40, "max_density": 80},
        "category_weights": {
            "design_files": 0.2,
            "drc_lvs": 0.3,
            "timing": 0.3,
            "power": 0.1,
            "physical": 0.1,
        },
    },
}


class TestLoading:
    def test_full_config(self, tmp_path):
        config = load_engine_config(write_config(tmp_path, FULL_CONFIG))

        assert config.snapshot.run_dir == tmp_path / "runs/gcd"
        assert config.snapshot.platform == "nangate45"
        assert config.eco.max_iterations == 8
        assert config.eco.target_wns_ns == -0.05
        assert not config.eco.enable_vt_swap
        assert CheckType.IR_DROP not in config.signoff.checks.enabled()
        assert config.signoff.limits.max_ir_drop_mv == 40
        assert config.signoff.limits.max_drc_violations == 3
        assert config.signoff.check_timeout_seconds == 120
        assert config.signoff.parallel
        assert config.checklist.requirements.max_density == 80
        assert config.checklist.category_weights[CheckCategory.TIMING] == 0.3

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = load_engine_config(path)

        assert config.snapshot is None
        assert config.eco.max_iterations == 5
        assert len(config.signoff.checks.enabled()) == 5

    def test_absolute_run_dir_is_kept(self, tmp_path):
        run_dir = tmp_path / "elsewhere"
        config = load_engine_config(write_config(tmp_path, {"design": {"run_dir": str(run_dir)}}))

        assert config.snapshot.run_dir == run_dir

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_engine_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("eco: [unclosed\n")

        with pytest.raises(YAMLConfigError, match="Invalid YAML"):
            load_engine_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- eco\n- signoff\n")

        with pytest.raises(YAMLConfigError, match="mapping"):
            load_engine_config(path)


class TestRejection:
    @pytest.mark.parametrize(
        "data, message",
        [
            ({"optimizer": {}}, "Unknown key"),
            ({"eco": {"max_iters": 3}}, "Unknown key"),
            ({"eco": {"max_iterations": "five"}}, "wrong type"),
            ({"eco": {"enable_vt_swap": 1}}, "wrong type"),
            ({"eco": {"max_iterations": True}}, "wrong type"),
            ({"eco": {"max_iterations": 2.5}}, "wrong type"),
            ({"eco": {"max_iterations": None}}, "cannot be null"),
            ({"eco": {"target_wns_ns": None}}, "cannot be null"),
            ({"signoff": {"limits": {"max_ir_drop_mv": None}}}, "cannot be null"),
            ({"eco": ["max_iterations"]}, "mapping"),
            ({"design": {"platform": "sky130hd"}}, "run_dir is required"),
            ({"design": {"run_dir": "x", "pdk": "sky130"}}, "Unknown key"),
            ({"signoff": {"checks": {"erc": True}}}, "Unknown key"),
            ({"signoff": {"parallel": "yes"}}, "wrong type"),
            ({"checklist": {"category_weights": {"routing": 1.0}}}, "Unknown checklist category"),
        ],
    )
    def test_bad_values(self, data, message):
        with pytest.raises(YAMLConfigError, match=message):
            parse_engine_config(data)

    def test_error_code(self):
        with pytest.raises(YAMLConfigError) as exc_info:
            parse_engine_config({"bogus": 1})

        assert exc_info.value.error_code == "TO-E-008"
        assert exc_info.value.details["unknown"] == ["bogus"]


class TestValidation:
    def test_eco_range_checked(self):
        with pytest.raises(IterationBudgetError):
            parse_engine_config({"eco": {"max_iterations": 0}})

    def test_no_signoff_checks(self):
        checks = {name: False for name in ("drc", "lvs", "antenna", "ir_drop", "timing")}

        with pytest.raises(NoChecksEnabledError):
            parse_engine_config({"signoff": {"checks": checks}})

    def test_weights_must_sum_to_one(self):
        weights = dict(FULL_CONFIG["checklist"]["category_weights"], timing=0.5)

        with pytest.raises(CategoryWeightError):
            parse_engine_config({"checklist": {"category_weights": weights}})

    def test_documentation_cannot_be_weighted(self):
        weights = dict(FULL_CONFIG["checklist"]["category_weights"], documentation=0.0)

        with pytest.raises(CategoryWeightError):
            parse_engine_config({"checklist": {"category_weights": weights}})

    def test_contradictory_density(self):
        requirements = {"min_density": 80, "max_density": 40}

        with pytest.raises(ContradictoryFlagsError):
            parse_engine_config({"checklist": {"requirements": requirements}})

    def test_integer_accepted_for_float_field(self):
        config = parse_engine_config({"eco": {"target_wns_ns": 0, "max_utilization": 85}})

        assert config.eco.target_wns_ns == 0
        assert config.eco.max_utilization == 85

    def test_null_optional_limit(self):
        config = parse_engine_config({"signoff": {"limits": {"max_drc_violations": None}}})

        assert config.signoff.limits.max_drc_violations is None
