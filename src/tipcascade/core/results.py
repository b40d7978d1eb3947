"""
Run history container with export functionality.
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from pathlib import Path
import logging
import numpy as np
from numpy.typing import NDArray

from tipcascade.core.state import CascadeEvent, SimulationRun

logger = logging.getLogger(__name__)


@dataclass
class RunHistory:
    """
    Year-by-year trajectory of one simulation run.
    
    Index 0 holds the state at the start year, before the first tick.
    
    Attributes
    ----------
    year : NDArray
        Simulated year per row.
    temperature : NDArray
        Global temperature anomaly per row (°C).
    stress : dict of NDArray
        Stress per element id per row.
    tipped : dict of NDArray
        Tipped flag per element id per row.
    final_run : SimulationRun
        State after the last tick.
    thresholds : dict
        Threshold sampled for each element.
    model_params : dict
        Model parameters used.
    simulation_params : dict
        Simulation parameters used.
    diagnostics : dict
        Pre-computed diagnostic quantities.
    """
    
    year: NDArray[np.int64]
    temperature: NDArray[np.float64]
    stress: Dict[str, NDArray[np.float64]]
    tipped: Dict[str, NDArray[np.bool_]]
    final_run: SimulationRun
    thresholds: Dict[str, float] = field(default_factory=dict)
    model_params: Dict[str, Any] = field(default_factory=dict)
    simulation_params: Dict[str, Any] = field(default_factory=dict)
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    
    @property
    def element_ids(self) -> List[str]:
        return list(self.stress.keys())
    
    @property
    def events(self) -> List[CascadeEvent]:
        return list(self.final_run.events)
    
    @property
    def scenario_id(self) -> Optional[str]:
        return self.final_run.scenario_id
    
    @property
    def terminal(self) -> bool:
        return self.final_run.terminal
    
    @property
    def n_ticks(self) -> int:
        return len(self.year) - 1
    
    def first_tip_year(self, element_id: str) -> Optional[int]:
        """Year the element tipped, or None."""
        for event in self.final_run.events:
            if event.element_id == element_id:
                return event.year
        return None
    
    def summary(self) -> Dict[str, Any]:
        """Generate summary statistics."""
        scenario = self.final_run.scenario
        events = self.final_run.events
        return {
            "scenario": self.scenario_id,
            "name": scenario.name if scenario else "None",
            "year_start": int(self.year[0]),
            "year_end": int(self.year[-1]),
            "final_temperature": float(self.temperature[-1]),
            "tipped_count": self.final_run.tipped_count,
            "n_elements": len(self.final_run.elements),
            "all_tipped": self.terminal,
            "first_tip_year": events[0].year if events else None,
            "cascade_tips": sum(1 for e in events if e.is_cascade),
            "tip_years": {key: self.first_tip_year(key) for key in self.element_ids},
            "thresholds": dict(self.thresholds),
            "n_ticks": self.n_ticks,
        }
    
    def to_dataframe(self):
        """Convert the trajectory to a pandas DataFrame, one row per year."""
        import pandas as pd
        
        data: Dict[str, Any] = {
            "year": self.year,
            "temperature_celsius": self.temperature,
        }
        for key in self.element_ids:
            data[f"{key}_stress"] = self.stress[key]
            data[f"{key}_tipped"] = self.tipped[key].astype(int)
        data["tipped_count"] = np.sum(
            [self.tipped[key] for key in self.element_ids], axis=0
        ).astype(int)
        
        return pd.DataFrame(data)
    
    def events_dataframe(self):
        """Cascade event log as a pandas DataFrame."""
        import pandas as pd
        
        columns = ["year", "element_id", "element", "icon", "temperature", "is_cascade"]
        return pd.DataFrame([e.as_dict() for e in self.final_run.events], columns=columns)
    
    def to_csv(
        self,
        filepath: str | Path,
        float_format: str = "%.4f",
    ) -> None:
        """
        Export the trajectory to a CSV file.
        
        Parameters
        ----------
        filepath : str or Path
            Output file path.
        float_format : str, optional
            Float format string. Default is "%.4f".
        """
        from tipcascade.io.csv_writer import write_csv
        write_csv(self, filepath, float_format)
    
    def events_to_csv(self, filepath: str | Path) -> None:
        """Export the cascade event log to a CSV file."""
        from tipcascade.io.csv_writer import write_events_csv
        write_events_csv(self, filepath)
    
    def to_png(
        self,
        filepath: str | Path,
        dpi: int = 150,
    ) -> None:
        """
        Create stress time series plot.
        
        Parameters
        ----------
        filepath : str or Path
            Output file path.
        dpi : int, optional
            Output resolution. Default is 150.
        """
        from tipcascade.visualization.timeseries import create_stress_plot
        create_stress_plot(self, filepath, dpi)
    
    def __repr__(self) -> str:
        scenario = self.final_run.scenario.name if self.final_run.scenario else "None"
        status = "ALL_TIPPED" if self.terminal else f"{self.final_run.tipped_count}_TIPPED"
        return (
            f"RunHistory(scenario='{scenario}', "
            f"years={int(self.year[0])}-{int(self.year[-1])}, "
            f"final_temperature={float(self.temperature[-1]):.2f}, "
            f"status={status})"
        )
