"""Readiness score breakdown chart."""

from __future__ import annotations

import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from tapeout.controller.readiness import TAPEOUT_READY_MIN_SCORE
from tapeout.controller.types import CheckCategory, ReadinessScore


def _bar_color(percent: float) -> str:
    if percent >= 90:
        return "#2ecc71"  # Green
    if percent >= 70:
        return "#f39c12"  # Orange
    return "#e74c3c"  # Red


def plot_readiness_breakdown(
    score: ReadinessScore,
    title: str | None = None,
    figsize: tuple[float, float] = (12, 8),
    dpi: int = 150,
) -> Figure:
    """
    Generate a horizontal bar chart of per-category readiness.

    The documentation category is drawn hatched and grey because it does
    not contribute to the overall score.

    Args:
        score: Readiness score to visualize
        title: Plot title (auto-generated if None)
        figsize: Figure size in inches (width, height)
        dpi: Resolution in dots per inch

    Returns:
        matplotlib Figure object
    """
    categories = list(CheckCategory)
    labels = [c.display_name for c in categories]
    values = [score.breakdown.get(c, 0.0) for c in categories]

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    bars = ax.barh(labels, values, edgecolor="black", linewidth=0.8)

    for bar, category, value in zip(bars, categories, values):
        if category == CheckCategory.DOCUMENTATION:
            bar.set_color("#bdc3c7")
            bar.set_hatch("//")
            bar.set_edgecolor("black")
            label = f"{value:.0f}% (not scored)"
        else:
            bar.set_color(_bar_color(value))
            bar.set_edgecolor("black")
            label = f"{value:.0f}%"
        ax.text(
            value + 1,
            bar.get_y() + bar.get_height() / 2,
            label,
            va="center",
            fontsize=10,
        )

    ax.axvline(
        x=TAPEOUT_READY_MIN_SCORE, color="black", linestyle="--", linewidth=1, alpha=0.5
    )
    ax.set_xlim(0, 115)
    ax.invert_yaxis()
    ax.set_xlabel("Readiness (%)", fontsize=12, fontweight="bold")
    ax.grid(True, axis="x", alpha=0.3, linestyle="--", linewidth=0.5)

    if title is None:
        ready = "READY" if score.tapeout_ready else "NOT READY"
        title = f"Tapeout Readiness: {score.overall:.1f}/100 (Grade {score.grade}, {ready})"
    ax.set_title(title, fontsize=14, fontweight="bold", pad=20)

    plt.tight_layout()
    return fig
