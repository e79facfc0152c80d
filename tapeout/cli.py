#!/usr/bin/env python3
"""
Tapeout: post-layout timing closure and tapeout readiness for OpenROAD flows.

Command-line interface for running the ECO loop, signoff checks and the
tapeout checklist against a finished place-and-route run directory.
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from tapeout import __version__
from tapeout.controller.exceptions import (
    AdapterUnavailableError,
    ConfigurationError,
    MissingRunDirError,
)
from tapeout.controller.types import DesignSnapshot
from tapeout.controller.yaml_config import EngineConfig, load_engine_config
from tapeout.toolchain.adapter import ToolchainAdapter

# Exit codes
EXIT_OK = 0
EXIT_GATE_FAILED = 1
EXIT_CONFIG_ERROR = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with helpful usage messages."""
    parser = argparse.ArgumentParser(
        prog="tapeout",
        description=f"""
Tapeout v{__version__}: timing closure and tapeout readiness for OpenROAD

What it does:
  • Iterates OpenROAD timing repair until WNS converges or the target is met
  • Runs signoff checks (DRC, LVS, antenna, IR drop, timing)
  • Scores a tapeout checklist and checks foundry deliverables
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Close timing on a run directory
  tapeout eco --run-dir runs/gcd --design gcd --platform sky130hd

  # Full signoff with a Markdown report
  tapeout signoff --config closure.yaml --markdown reports/signoff.md

  # Tapeout checklist as JSON
  tapeout checklist --run-dir runs/gcd --json

  # Effort estimate for a design
  tapeout estimate --wns -1.2 --tns -40 --cells 250000

Exit status: 0 when the gate passes, 1 when it does not, 2 on configuration errors.
        """,
    )
    parser.add_argument("--version", action="version", version=f"tapeout {__version__}")

    # Options shared by every design-facing command
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="Engine configuration YAML file")
    common.add_argument("--run-dir", type=Path, help="Run directory (overrides design.run_dir)")
    common.add_argument("--platform", type=str, help="Platform name, e.g. sky130hd")
    common.add_argument("--design", type=str, help="Top-level design name")
    common.add_argument("--json", action="store_true", help="Print results as JSON")
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    toolchain = argparse.ArgumentParser(add_help=False)
    toolchain.add_argument(
        "--container",
        type=str,
        default="mcp4eda",
        help="Docker container with the tools (default: mcp4eda)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands", metavar="<command>")

    # === ECO command ===
    eco_parser = subparsers.add_parser(
        "eco",
        parents=[common, toolchain],
        help="Run the ECO timing convergence loop",
    )
    eco_parser.add_argument("--max-iterations", type=int, help="Override eco.max_iterations")
    eco_parser.add_argument("--target-wns", type=float, help="Override eco.target_wns_ns")
    eco_parser.add_argument("--plot", type=Path, help="Save a convergence chart (PNG)")

    # === SIGNOFF command ===
    signoff_parser = subparsers.add_parser(
        "signoff",
        parents=[common, toolchain],
        help="Run signoff verification checks",
    )
    signoff_parser.add_argument("--markdown", type=Path, help="Write a Markdown signoff report")
    signoff_parser.add_argument(
        "--parallel",
        action="store_true",
        help="Run checks concurrently on a local Ray instance",
    )

    # === CHECKLIST command ===
    checklist_parser = subparsers.add_parser(
        "checklist",
        parents=[common, toolchain],
        help="Score the tapeout checklist for a run directory",
    )
    checklist_parser.add_argument("--markdown", type=Path, help="Write a Markdown checklist")
    checklist_parser.add_argument(
        "--with-signoff",
        action="store_true",
        help="Run signoff first and use its results as checklist evidence",
    )
    checklist_parser.add_argument("--plot", type=Path, help="Save a readiness chart (PNG)")
    checklist_parser.add_argument(
        "--quick",
        action="store_true",
        help="Only check the three critical output files",
    )

    # === ESTIMATE command ===
    estimate_parser = subparsers.add_parser("estimate", help="Estimate timing closure effort")
    estimate_parser.add_argument("--wns", type=float, required=True, help="Worst negative slack (ns)")
    estimate_parser.add_argument("--tns", type=float, default=0.0, help="Total negative slack (ns)")
    estimate_parser.add_argument("--cells", type=int, default=0, help="Standard cell count")
    estimate_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    # === VALIDATE command ===
    subparsers.add_parser(
        "validate",
        parents=[common],
        help="Validate an engine configuration file",
    )

    return parser


# =============================================================================
# Helpers
# =============================================================================


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def _load_config(args: argparse.Namespace) -> EngineConfig:
    if args.config is None:
        return EngineConfig()
    return load_engine_config(args.config)


def resolve_snapshot(args: argparse.Namespace, config: EngineConfig) -> DesignSnapshot:
    """
    Combine the configured design with command-line overrides.

    Raises:
        ConfigurationError: If no run directory is known
    """
    snapshot = config.snapshot
    if args.run_dir is not None:
        snapshot = (
            dataclasses.replace(snapshot, run_dir=args.run_dir)
            if snapshot is not None
            else DesignSnapshot(run_dir=args.run_dir)
        )
    if snapshot is None:
        raise MissingRunDirError()

    overrides = {}
    if args.platform:
        overrides["platform"] = args.platform
    if args.design:
        overrides["design"] = args.design
    return dataclasses.replace(snapshot, **overrides) if overrides else snapshot


def create_adapter(args: argparse.Namespace) -> ToolchainAdapter:
    """Connect to the tool container."""
    from tapeout.toolchain.docker_runner import DockerRunConfig, DockerToolchainAdapter

    return DockerToolchainAdapter(DockerRunConfig(container_name=args.container))


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, default=str))


# =============================================================================
# Command handlers
# =============================================================================


def cmd_eco(args: argparse.Namespace) -> int:
    """Execute eco command."""
    from tapeout.controller.eco_optimizer import ECOOptimizer
    from tapeout.controller.summary_report import format_eco_result

    config = _load_config(args)
    snapshot = resolve_snapshot(args, config)
    eco_config = config.eco
    if args.max_iterations is not None:
        eco_config.max_iterations = args.max_iterations
    if args.target_wns is not None:
        eco_config.target_wns_ns = args.target_wns
    eco_config.validate()

    adapter = create_adapter(args)
    try:
        result = ECOOptimizer(adapter, eco_config).run(snapshot)
    finally:
        adapter.close()

    if args.json:
        _print_json(result.to_dict())
    else:
        print(format_eco_result(result))

    if args.plot and result.iterations:
        from tapeout.visualization import plot_eco_convergence, save_plot

        path = save_plot(plot_eco_convergence(result, eco_config.target_wns_ns), args.plot)
        print(f"Convergence chart: {path}", file=sys.stderr)

    return EXIT_OK if result.timing_met else EXIT_GATE_FAILED


def _run_signoff(args: argparse.Namespace, config: EngineConfig, snapshot: DesignSnapshot):
    from tapeout.controller.signoff import SignoffOrchestrator

    signoff_config = config.signoff
    if getattr(args, "parallel", False):
        signoff_config.parallel = True
    signoff_config.validate()

    if signoff_config.parallel:
        import ray

        ray.init(ignore_reinit_error=True)

    adapter = create_adapter(args)
    try:
        return SignoffOrchestrator(adapter, signoff_config).run(snapshot)
    finally:
        adapter.close()


def cmd_signoff(args: argparse.Namespace) -> int:
    """Execute signoff command."""
    from tapeout.controller.summary_report import format_signoff_report, write_signoff_report

    config = _load_config(args)
    snapshot = resolve_snapshot(args, config)
    report = _run_signoff(args, config, snapshot)

    if args.json:
        _print_json(report.to_dict())
    else:
        print(format_signoff_report(report))

    if args.markdown:
        path = write_signoff_report(report, args.markdown)
        print(f"Signoff report: {path}", file=sys.stderr)

    return EXIT_OK if report.tapeout_ready else EXIT_GATE_FAILED


def cmd_checklist(args: argparse.Namespace) -> int:
    """Execute checklist command."""
    from tapeout.controller.readiness import quick_readiness_check, run_tapeout_checklist
    from tapeout.controller.summary_report import (
        format_checklist_summary,
        write_checklist_markdown,
    )

    config = _load_config(args)
    snapshot = resolve_snapshot(args, config)

    if args.quick:
        quick = quick_readiness_check(snapshot.run_dir)
        if args.json:
            _print_json(quick.to_dict())
        else:
            print(f"Quick readiness: {quick.score}/100 ({'READY' if quick.ready else 'NOT READY'})")
            for blocker in quick.blockers:
                print(f"  [X] {blocker}")
        return EXIT_OK if quick.ready else EXIT_GATE_FAILED

    checklist_config = config.checklist
    if args.with_signoff:
        checklist_config.signoff_report = _run_signoff(args, config, snapshot)

    checklist = run_tapeout_checklist(snapshot, checklist_config)

    if args.json:
        _print_json(checklist.to_dict())
    else:
        print(format_checklist_summary(checklist))

    if args.markdown:
        path = write_checklist_markdown(checklist, args.markdown)
        print(f"Checklist: {path}", file=sys.stderr)

    if args.plot:
        from tapeout.visualization import plot_readiness_breakdown, save_plot

        path = save_plot(plot_readiness_breakdown(checklist.score), args.plot)
        print(f"Readiness chart: {path}", file=sys.stderr)

    return EXIT_OK if checklist.score.tapeout_ready else EXIT_GATE_FAILED


def cmd_estimate(args: argparse.Namespace) -> int:
    """Execute estimate command."""
    from tapeout.controller.eco import estimate_timing_closure_effort

    estimate = estimate_timing_closure_effort(args.wns, args.tns, args.cells)
    if args.json:
        _print_json(estimate.to_dict())
        return EXIT_OK

    print(f"Difficulty: {estimate.difficulty.value}")
    print(f"Estimated ECO iterations: {estimate.estimated_iterations}")
    for recommendation in estimate.recommendations:
        print(f"  - {recommendation}")
    return EXIT_OK


def cmd_validate(args: argparse.Namespace) -> int:
    """Execute validate command."""
    if args.config is None:
        print("Error: validate needs --config", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    config = load_engine_config(args.config)
    print(f"✓ Configuration is valid: {args.config}")
    if config.snapshot is not None:
        print(f"  Design: {config.snapshot.design} ({config.snapshot.platform})")
        print(f"  Run directory: {config.snapshot.run_dir}")
    print(f"  ECO: max {config.eco.max_iterations} iterations, target WNS {config.eco.target_wns_ns} ns")
    print(
        "  Signoff checks: "
        + ", ".join(c.display_name for c in config.signoff.checks.enabled())
    )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle no command (show help)
    if not args.command:
        parser.print_help()
        return EXIT_OK

    configure_logging(getattr(args, "verbose", False))

    command_map = {
        "eco": cmd_eco,
        "signoff": cmd_signoff,
        "checklist": cmd_checklist,
        "estimate": cmd_estimate,
        "validate": cmd_validate,
    }

    handler = command_map[args.command]
    try:
        return handler(args)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except AdapterUnavailableError as e:
        print(f"❌ Toolchain unavailable: {e}", file=sys.stderr)
        return EXIT_GATE_FAILED
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
