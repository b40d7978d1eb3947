"""Visualization functions for tipcascade."""

from tipcascade.visualization.timeseries import create_stress_plot

__all__ = [
    "create_stress_plot",
]
