"""YAML-based engine configuration loader.

A single file configures the design under test and every engine stage:

    design:
      run_dir: runs/gcd_final
      platform: sky130hd
      design: gcd
    eco:
      max_iterations: 8
      target_wns_ns: 0.0
    signoff:
      checks: {drc: true, lvs: true, antenna: true, ir_drop: false, timing: true}
      limits: {max_ir_drop_mv: 40}
      parallel: false
    checklist:
      requirements: {min_density: 40, max_density: 80}
      category_weights: {design_files: 0.15, drc_lvs: 0.30, timing: 0.25, power: 0.15, physical: 0.15}

Every section is optional. Unknown keys are rejected.
"""

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import YAMLConfigError
from .types import (
    CheckCategory,
    ChecklistConfig,
    ChecklistRequirements,
    DesignSnapshot,
    ECOConfig,
    SignoffChecks,
    SignoffConfig,
    SignoffLimits,
)

_SECTIONS = {"design", "eco", "signoff", "checklist"}


@dataclass
class EngineConfig:
    """Everything loaded from one configuration file."""

    snapshot: DesignSnapshot | None = None  # None when the file has no design section
    eco: ECOConfig = dataclasses.field(default_factory=ECOConfig)
    signoff: SignoffConfig = dataclasses.field(default_factory=SignoffConfig)
    checklist: ChecklistConfig = dataclasses.field(default_factory=ChecklistConfig)


def load_engine_config(config_path: str | Path) -> EngineConfig:
    """
    Load engine configuration from a YAML file.

    A relative ``design.run_dir`` is resolved against the directory holding
    the configuration file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        EngineConfig with every stage configuration validated

    Raises:
        FileNotFoundError: If config file doesn't exist
        YAMLConfigError: If the file is not valid YAML or has unknown keys
            or badly typed values
        ConfigurationError: If a value is out of range
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Engine configuration not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise YAMLConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise YAMLConfigError(f"Top level of {config_path} must be a mapping")

    return parse_engine_config(data, base_dir=config_path.parent)


def parse_engine_config(data: dict[str, Any], base_dir: Path | None = None) -> EngineConfig:
    """Build and validate an EngineConfig from already-parsed YAML data."""
    _reject_unknown(data, _SECTIONS, "top level")

    config = EngineConfig(
        snapshot=_parse_design(data["design"], base_dir) if "design" in data else None,
        eco=_build(ECOConfig, _section(data, "eco"), "eco"),
        signoff=_parse_signoff(_section(data, "signoff")),
        checklist=_parse_checklist(_section(data, "checklist")),
    )

    config.eco.validate()
    config.signoff.validate()
    config.checklist.validate()
    return config


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise YAMLConfigError(f"{name} must be a mapping", {"section": name})
    return section


def _reject_unknown(section: dict[str, Any], allowed: set[str], where: str) -> None:
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise YAMLConfigError(
            f"Unknown key(s) in {where}: {', '.join(map(str, unknown))}",
            {"section": where, "unknown": unknown},
        )


def _check_type(value: Any, default: Any, where: str) -> Any:
    """Check a YAML value against the type of the field's default."""
    if isinstance(default, bool):
        ok = isinstance(value, bool)
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif isinstance(default, str):
        ok = isinstance(value, str)
    else:
        ok = True
    if not ok:
        raise YAMLConfigError(
            f"{where} has the wrong type: {value!r}",
            {"field": where, "value": value},
        )
    return value


def _build(cls, section: dict[str, Any], where: str):
    """Instantiate a flat config dataclass from a YAML mapping."""
    fields = {f.name: f for f in dataclasses.fields(cls)}
    _reject_unknown(section, set(fields), where)

    kwargs = {}
    for key, value in section.items():
        f = fields[key]
        default = f.default if f.default is not dataclasses.MISSING else None
        if value is None:
            if default is not None:
                raise YAMLConfigError(
                    f"{where}.{key} cannot be null", {"field": f"{where}.{key}", "value": None}
                )
            kwargs[key] = None
            continue
        # Optional numeric fields default to None
        kwargs[key] = _check_type(value, 0.0 if default is None else default, f"{where}.{key}")
    return cls(**kwargs)


def _parse_design(section: Any, base_dir: Path | None) -> DesignSnapshot:
    if not isinstance(section, dict):
        raise YAMLConfigError("design must be a mapping", {"section": "design"})

    run_dir = section.get("run_dir")
    if not run_dir:
        raise YAMLConfigError("design.run_dir is required")
    rest = {k: v for k, v in section.items() if k != "run_dir"}
    allowed = {f.name for f in dataclasses.fields(DesignSnapshot)} - {"run_dir"}
    _reject_unknown(rest, allowed, "design")
    for key, value in rest.items():
        _check_type(value, "", f"design.{key}")

    run_path = Path(str(run_dir))
    if not run_path.is_absolute() and base_dir is not None:
        run_path = base_dir / run_path
    return DesignSnapshot(run_dir=run_path, **rest)


def _parse_signoff(section: dict[str, Any]) -> SignoffConfig:
    _reject_unknown(section, {"checks", "limits", "check_timeout_seconds", "parallel"}, "signoff")

    checks_section = section.get("checks") or {}
    limits_section = section.get("limits") or {}
    if not isinstance(checks_section, dict) or not isinstance(limits_section, dict):
        raise YAMLConfigError("signoff.checks and signoff.limits must be mappings")

    config = SignoffConfig(
        checks=_build(SignoffChecks, checks_section, "signoff.checks"),
        limits=_build(SignoffLimits, limits_section, "signoff.limits"),
    )
    if "check_timeout_seconds" in section:
        config.check_timeout_seconds = _check_type(
            section["check_timeout_seconds"], 0.0, "signoff.check_timeout_seconds"
        )
    if "parallel" in section:
        config.parallel = _check_type(section["parallel"], False, "signoff.parallel")
    return config


def _parse_checklist(section: dict[str, Any]) -> ChecklistConfig:
    _reject_unknown(section, {"requirements", "category_weights"}, "checklist")

    requirements_section = section.get("requirements") or {}
    if not isinstance(requirements_section, dict):
        raise YAMLConfigError("checklist.requirements must be a mapping")
    config = ChecklistConfig(
        requirements=_build(ChecklistRequirements, requirements_section, "checklist.requirements")
    )

    weights_section = section.get("category_weights")
    if weights_section is not None:
        if not isinstance(weights_section, dict):
            raise YAMLConfigError("checklist.category_weights must be a mapping")
        weights = {}
        for name, weight in weights_section.items():
            try:
                category = CheckCategory(name)
            except ValueError:
                raise YAMLConfigError(
                    f"Unknown checklist category: {name}. "
                    f"Valid options: {', '.join(c.value for c in CheckCategory)}"
                )
            weights[category] = _check_type(weight, 0.0, f"checklist.category_weights.{name}")
        config.category_weights = weights

    return config
