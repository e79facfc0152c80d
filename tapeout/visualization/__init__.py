"""
Visualization module - ECO convergence and readiness charts.
"""

from .convergence_plot import (
    convergence_series,
    plot_eco_convergence,
    save_plot,
)
from .readiness_chart import plot_readiness_breakdown

__all__ = [
    "convergence_series",
    "plot_eco_convergence",
    "plot_readiness_breakdown",
    "save_plot",
]
