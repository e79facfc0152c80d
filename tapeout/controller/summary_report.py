"""Human-readable reports for ECO, signoff and checklist results.

Plain-text console summaries and Markdown documents. Every result type
also has ``to_dict()`` for machine consumption; these are for people.
"""

import math
from dataclasses import dataclass
from pathlib import Path

from .types import (
    CheckCategory,
    ChecklistStatus,
    ECOResult,
    SignoffReport,
    TapeoutChecklist,
)

_STATUS_LABELS = {
    ChecklistStatus.PASS: "PASS",
    ChecklistStatus.FAIL: "FAIL",
    ChecklistStatus.WARNING: "WARN",
    ChecklistStatus.SKIPPED: "SKIP",
    ChecklistStatus.NOT_RUN: "N/A",
}


@dataclass
class ReportConfig:
    """Configuration for report generation."""

    max_recommendations: int = 5  # ECO fixes / checklist advice shown in summaries
    rule_width: int = 60


class ReportGenerator:
    """Format engine results for operators."""

    def __init__(self, config: ReportConfig | None = None) -> None:
        self.config = config or ReportConfig()

    def format_eco_result(self, result: ECOResult) -> str:
        """
        Format an ECO run as a short plain-text summary.

        Args:
            result: ECO run result

        Returns:
            Multi-line summary
        """
        lines = ["=== ECO Optimization Results ===", ""]
        lines.append(f"Status: {'TIMING MET' if result.timing_met else 'TIMING NOT MET'}")
        lines.append(f"Final state: {result.final_state.value}")
        lines.append(f"Duration: {result.duration_seconds / 60:.1f} minutes")
        lines.append(f"Iterations: {len(result.iterations)}")
        failed = sum(1 for it in result.iterations if it.failed)
        if failed:
            lines.append(f"Failed iterations: {failed}")
        lines.append(f"Total fixes applied: {result.total_fixes_applied}")
        if result.error:
            lines.append(f"Error: {result.error}")
        lines.append("")
        lines.append("Timing Improvement:")
        lines.append(f"  WNS: {_ns(result.initial_wns_ns)} -> {_ns(result.final_wns_ns)} ns")
        lines.append(f"  TNS: {_ns(result.initial_tns_ns)} -> {_ns(result.final_tns_ns)} ns")

        if result.recommendations:
            limit = self.config.max_recommendations
            lines.append("")
            lines.append("Remaining recommendations:")
            for fix in result.recommendations[:limit]:
                lines.append(f"  - {fix.fix_type.value} at {fix.location} ({fix.priority.value})")
            if len(result.recommendations) > limit:
                lines.append(f"  ... and {len(result.recommendations) - limit} more")

        return "\n".join(lines)

    def format_signoff_report(self, report: SignoffReport) -> str:
        """Format a signoff report as Markdown."""
        lines = [
            "# Signoff Report",
            f"Design: {report.design}",
            f"Timestamp: {report.timestamp}",
            f"Overall Status: {report.overall_status.value.upper()}",
            f"Tapeout Ready: {'YES' if report.tapeout_ready else 'NO'}",
            "",
            "## Check Results",
        ]

        for check in report.checks:
            lines.append("")
            lines.append(f"### {check.name}")
            lines.append(f"- Status: {check.status.value.upper()}")
            lines.append(f"- Violations: {check.violation_count}")
            lines.append(f"- Duration: {check.duration_seconds:.1f}s")
            lines.extend(f"- {detail}" for detail in check.details)

        lines.append("")
        lines.append("## Blockers")
        lines.extend([f"- {b}" for b in report.blockers] or ["None"])
        lines.append("")
        lines.append("## Warnings")
        lines.extend([f"- {w}" for w in report.warnings] or ["None"])
        return "\n".join(lines)

    def format_checklist_summary(self, checklist: TapeoutChecklist) -> str:
        """Format a checklist run as a console summary."""
        rule = "=" * self.config.rule_width
        summary = checklist.summary
        score = checklist.score

        lines = [rule, "TAPEOUT CHECKLIST SUMMARY", rule, ""]
        lines.append(f"Design: {checklist.design}")
        lines.append(f"Platform: {checklist.platform}")
        lines.append(f"Timestamp: {checklist.timestamp}")
        lines.append("")
        lines.append("--- Summary ---")
        lines.append(f"Total checks: {summary['total']}")
        lines.append(f"  Passed:   {summary['passed']}")
        lines.append(f"  Failed:   {summary['failed']}")
        lines.append(f"  Warnings: {summary['warnings']}")
        lines.append(f"  Skipped:  {summary['skipped']}")
        lines.append(f"  Not Run:  {summary['not_run']}")
        lines.append("")
        lines.append("--- GDS Readiness Score ---")
        lines.append(f"Overall Score: {score.overall:.1f}/100 (Grade: {score.grade})")
        for category in CheckCategory:
            suffix = " (not scored)" if category == CheckCategory.DOCUMENTATION else ""
            label = f"{category.display_name}:"
            lines.append(f"  {label:<22}{score.breakdown[category]:.0f}%{suffix}")
        lines.append("")
        lines.append(f"TAPEOUT READY: {'YES' if score.tapeout_ready else 'NO'}")

        if checklist.blockers:
            lines.append("")
            lines.append("--- Blockers ---")
            lines.extend(f"  [X] {b}" for b in checklist.blockers)

        if checklist.recommendations:
            lines.append("")
            lines.append("--- Recommendations ---")
            lines.extend(
                f"  -> {r}" for r in checklist.recommendations[: self.config.max_recommendations]
            )

        lines.append("")
        lines.append("--- Foundry Deliverables ---")
        for d in checklist.foundry.deliverables:
            status = "[OK]" if d.present else "[MISSING]" if d.required else "[N/A]"
            lines.append(f"  {status} {d.name}")
        lines.append("")
        lines.append(rule)
        return "\n".join(lines)

    def format_checklist_markdown(self, checklist: TapeoutChecklist) -> str:
        """Format a checklist run as a Markdown document."""
        summary = checklist.summary
        score = checklist.score
        lines = [
            "# Tapeout Checklist",
            "",
            f"**Design:** {checklist.design}",
            f"**Platform:** {checklist.platform}",
            f"**Generated:** {checklist.timestamp}",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| Total Checks | {summary['total']} |",
            f"| Passed | {summary['passed']} |",
            f"| Failed | {summary['failed']} |",
            f"| Warnings | {summary['warnings']} |",
            f"| GDS Readiness | {score.overall:.1f}/100 ({score.grade}) |",
            f"| Tapeout Ready | {'YES' if score.tapeout_ready else 'NO'} |",
            "",
            "## Readiness Score Breakdown",
            "",
        ]
        for category in CheckCategory:
            suffix = " (not included in overall score)" if category == CheckCategory.DOCUMENTATION else ""
            lines.append(f"- {category.display_name}: {score.breakdown[category]:.0f}%{suffix}")
        lines.append("")

        for category in CheckCategory:
            items = [i for i in checklist.items if i.category == category]
            if not items:
                continue
            lines.append(f"## {category.display_name}")
            lines.append("")
            lines.append("| Check | Status | Required | Details |")
            lines.append("|-------|--------|----------|---------|")
            for item in items:
                lines.append(
                    f"| {item.name} | {_STATUS_LABELS[item.status]} | "
                    f"{'Yes' if item.required else 'No'} | {item.details or '-'} |"
                )
            lines.append("")

        if checklist.blockers:
            lines.append("## Blockers")
            lines.append("")
            lines.extend(f"- {b}" for b in checklist.blockers)
            lines.append("")

        if checklist.recommendations:
            lines.append("## Recommendations")
            lines.append("")
            lines.extend(f"- {r}" for r in checklist.recommendations)
            lines.append("")

        lines.append("## Foundry Deliverables")
        lines.append("")
        lines.append("| Deliverable | Required | Status |")
        lines.append("|-------------|----------|--------|")
        for d in checklist.foundry.deliverables:
            lines.append(
                f"| {d.name} | {'Yes' if d.required else 'No'} | {'Present' if d.present else 'Missing'} |"
            )
        return "\n".join(lines)


def _ns(value: float) -> str:
    return "n/a" if math.isnan(value) else f"{value:.3f}"


def format_eco_result(result: ECOResult) -> str:
    return ReportGenerator().format_eco_result(result)


def format_signoff_report(report: SignoffReport) -> str:
    return ReportGenerator().format_signoff_report(report)


def format_checklist_summary(checklist: TapeoutChecklist) -> str:
    return ReportGenerator().format_checklist_summary(checklist)


def format_checklist_markdown(checklist: TapeoutChecklist) -> str:
    return ReportGenerator().format_checklist_markdown(checklist)


def write_signoff_report(report: SignoffReport, output_path: str | Path) -> Path:
    """
    Write a signoff report as Markdown.

    Args:
        report: Signoff report
        output_path: Destination file (parent directories are created)

    Returns:
        Path of the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(format_signoff_report(report))
    return output_path


def write_checklist_markdown(checklist: TapeoutChecklist, output_path: str | Path) -> Path:
    """Write a checklist run as Markdown and return the written path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(format_checklist_markdown(checklist))
    return output_path
