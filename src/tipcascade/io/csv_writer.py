"""CSV export of run trajectories and cascade event logs."""

from typing import TYPE_CHECKING
from pathlib import Path
import logging

if TYPE_CHECKING:
    import pandas as pd
    from tipcascade.core.results import RunHistory

logger = logging.getLogger(__name__)


def _write_frame(df: "pd.DataFrame", filepath: str | Path, **kwargs) -> Path:
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, encoding="utf-8", **kwargs)
    return path


def write_csv(
    history: "RunHistory",
    filepath: str | Path,
    float_format: str = "%.4f",
) -> None:
    """
    Write a run trajectory, one row per simulated year.
    
    Columns are ``year``, ``temperature_celsius``, ``<id>_stress`` and
    ``<id>_tipped`` per element, and ``tipped_count``.
    
    Parameters
    ----------
    history : RunHistory
        Run to export.
    filepath : str or Path
        Output file path.
    float_format : str, optional
        Float format string. Default is "%.4f".
    """
    df = history.to_dataframe()
    path = _write_frame(df, filepath, float_format=float_format)
    logger.info(
        f"Trajectory written to {path}: {len(df)} years "
        f"({df['year'].iloc[0]}-{df['year'].iloc[-1]})"
    )


def write_events_csv(
    history: "RunHistory",
    filepath: str | Path,
) -> None:
    """Write the cascade event log in chronological order."""
    df = history.events_dataframe()
    path = _write_frame(df, filepath)
    logger.info(f"Event log written to {path}: {len(df)} events")
