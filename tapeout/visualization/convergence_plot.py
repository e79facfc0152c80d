"""ECO convergence visualization.

Plots WNS and TNS per ECO iteration, starting from the baseline measurement,
so a stalled or regressing loop is visible at a glance.
"""

from __future__ import annotations

import math
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from tapeout.controller.types import ECOResult


def convergence_series(result: ECOResult) -> tuple[list[int], list[float], list[float]]:
    """
    Extract (iteration, WNS, TNS) series from an ECO result.

    Iteration 0 is the baseline. Failed iterations are left out since they
    carry no new measurement.

    Raises:
        ValueError: If the result has no baseline measurement
    """
    if math.isnan(result.initial_wns_ns):
        raise ValueError("ECO result has no baseline measurement to plot")

    iterations = [0]
    wns = [result.initial_wns_ns]
    tns = [result.initial_tns_ns]
    for it in result.iterations:
        if it.failed:
            continue
        iterations.append(it.iteration)
        wns.append(it.after_wns_ns)
        tns.append(it.after_tns_ns)
    return iterations, wns, tns


def plot_eco_convergence(
    result: ECOResult,
    target_wns_ns: float = 0.0,
    title: str | None = None,
    figsize: tuple[float, float] = (12, 8),
    dpi: int = 150,
) -> Figure:
    """
    Generate a WNS/TNS convergence chart for one ECO run.

    Args:
        result: ECO run result
        target_wns_ns: WNS target drawn as a horizontal line
        title: Plot title (auto-generated if None)
        figsize: Figure size in inches (width, height)
        dpi: Resolution in dots per inch

    Returns:
        matplotlib Figure object

    Raises:
        ValueError: If the result has no baseline measurement
    """
    iterations, wns, tns = convergence_series(result)

    fig, (ax_wns, ax_tns) = plt.subplots(2, 1, figsize=figsize, dpi=dpi, sharex=True)

    ax_wns.plot(
        iterations,
        wns,
        marker="o",
        linewidth=2.5,
        markersize=8,
        color="blue",
        label="WNS",
        zorder=3,
    )

    # Trend over measured iterations
    if len(iterations) >= 2:
        z = np.polyfit(iterations, wns, 1)
        p = np.poly1d(z)
        ax_wns.plot(
            iterations,
            p(iterations),
            linestyle=":",
            linewidth=2,
            color="orange",
            label="Trend",
            alpha=0.8,
            zorder=1,
        )

    ax_wns.axhline(y=target_wns_ns, color="green", linestyle="--", linewidth=1.5, alpha=0.6)
    ax_wns.text(
        iterations[-1],
        target_wns_ns,
        " Target",
        verticalalignment="bottom",
        fontsize=10,
        color="green",
    )

    failed = [it.iteration for it in result.iterations if it.failed]
    for index in failed:
        ax_wns.axvline(x=index, color="red", linestyle=":", linewidth=1, alpha=0.5)

    ax_wns.set_ylabel("WNS (ns)", fontsize=12, fontweight="bold")
    ax_wns.grid(True, alpha=0.3, linestyle="--", linewidth=0.5)
    ax_wns.legend(loc="best", frameon=True, shadow=True)

    ax_tns.bar(iterations, tns, color="#e74c3c", alpha=0.7, label="TNS")
    ax_tns.set_xlabel("Iteration (0 = baseline)", fontsize=12, fontweight="bold")
    ax_tns.set_ylabel("TNS (ns)", fontsize=12, fontweight="bold")
    ax_tns.set_xticks(iterations)
    ax_tns.grid(True, alpha=0.3, linestyle="--", linewidth=0.5)

    if title is None:
        status = "timing met" if result.timing_met else "timing not met"
        title = f"ECO Convergence ({result.final_state.value}, {status})"
    ax_wns.set_title(title, fontsize=14, fontweight="bold", pad=20)

    plt.tight_layout()
    return fig


def save_plot(fig: Figure, output_path: Path | str) -> Path:
    """
    Save a figure to file and close it.

    Args:
        fig: matplotlib Figure object
        output_path: Destination (format taken from the suffix)

    Returns:
        Path of the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, bbox_inches="tight")
    plt.close(fig)
    return output_path
