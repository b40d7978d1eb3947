"""
Stress time series with tipping markers.
"""

from typing import TYPE_CHECKING
from pathlib import Path
import logging
import numpy as np
import matplotlib.pyplot as plt

from tipcascade.core.elements import ELEMENTS
from tipcascade.core.engine import CRITICAL_BAND_STRESS, WARNING_BAND_STRESS

if TYPE_CHECKING:
    from tipcascade.core.results import RunHistory

logger = logging.getLogger(__name__)


def create_stress_plot(
    history: "RunHistory",
    filepath: str | Path,
    dpi: int = 150,
) -> None:
    """
    Plot temperature and per-element stress over a run.
    
    Top panel: global temperature anomaly. Bottom panel: stress of every
    element with the 70 / 85 hazard bands shaded and a marker where each
    element tipped (hollow for a first tip, filled for a cascade).
    
    Parameters
    ----------
    history : RunHistory
        Run to plot.
    filepath : str or Path
        Output PNG file path.
    dpi : int, optional
        Resolution. Default is 150.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    
    logger.info(f"Creating stress plot: {filepath}")
    
    scenario = history.final_run.scenario
    title = scenario.name if scenario else "No scenario"
    
    plt.style.use("dark_background")
    fig, (ax_temp, ax_stress) = plt.subplots(
        2, 1, figsize=(12, 8), sharex=True,
        gridspec_kw={"height_ratios": [1, 2], "hspace": 0.08},
    )
    fig.patch.set_facecolor("#0c1222")
    
    for ax in (ax_temp, ax_stress):
        ax.set_facecolor("#1a1a2e")
        ax.grid(True, alpha=0.12, color="white", linewidth=0.4)
    
    ax_temp.plot(history.year, history.temperature, color="#f97316", linewidth=2)
    ax_temp.set_ylabel("Warming (°C)")
    ax_temp.set_title(f"Tipping cascade: {title}", fontsize=13, fontweight="bold")
    
    ax_stress.axhspan(WARNING_BAND_STRESS, CRITICAL_BAND_STRESS, color="#eab308", alpha=0.08)
    ax_stress.axhspan(CRITICAL_BAND_STRESS, 100, color="#ef4444", alpha=0.10)
    
    for key in history.element_ids:
        element = ELEMENTS.get(key)
        color = element.color if element else None
        label = element.full_name if element else key
        ax_stress.plot(history.year, history.stress[key], color=color, linewidth=1.6, label=label)
    
    for event in history.events:
        element = ELEMENTS.get(event.element_id)
        color = element.color if element else "white"
        ax_stress.scatter(
            [event.year], [100],
            s=70,
            facecolors=color if event.is_cascade else "none",
            edgecolors=color,
            linewidths=1.5,
            zorder=5,
        )
    
    ax_stress.set_ylim(0, 105)
    ax_stress.set_ylabel("Stress")
    ax_stress.set_xlabel("Year")
    ax_stress.legend(loc="upper left", fontsize=8, framealpha=0.3)
    ax_stress.set_xlim(np.min(history.year), max(np.max(history.year), np.min(history.year) + 1))
    
    fig.savefig(filepath, dpi=dpi, bbox_inches="tight", facecolor=fig.get_facecolor())
    plt.close(fig)
    
    logger.info(f"Stress plot saved: {filepath}")
