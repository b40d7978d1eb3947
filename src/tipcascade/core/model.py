"""
Headless batch runner for cascade simulations.
"""

from typing import Optional, Dict, List, Sequence, Tuple, Union
import logging
import numpy as np
from tqdm import tqdm

from tipcascade.core.engine import INTERACTION_STRENGTH, advance
from tipcascade.core.elements import ELEMENTS
from tipcascade.core.interactions import INTERACTIONS, Interaction, validate_interactions
from tipcascade.core.random_source import RandomSource
from tipcascade.core.results import RunHistory
from tipcascade.core.state import BASELINE_TEMP, START_YEAR, new_run
from tipcascade.scenarios import Scenario, get_scenario
from tipcascade.utils.logging import (
    start_step,
    end_step,
    log_error,
    log_calculation_issue,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_YEARS = 500


class CascadeModel:
    """
    Tipping cascade model run without a wall clock.
    
    Runs a fresh simulation tick by tick until every element has tipped
    or a year limit is reached, recording the whole trajectory.
    
    Parameters
    ----------
    interaction_strength : float, optional
        Global interaction scale K. Higher values make a tipped element
        push (or pull) its neighbours harder. Default is 0.35.
    start_year : int, optional
        Epoch year. Default is 2025.
    baseline_temp : float, optional
        Starting temperature anomaly in °C. Default is 1.1.
    interactions : Sequence[Interaction], optional
        Interaction table. Defaults to the built-in table. A table with
        unknown endpoints raises CatalogIntegrityError.
    
    Attributes
    ----------
    params : dict
        Model parameters.
    """
    
    def __init__(
        self,
        interaction_strength: float = INTERACTION_STRENGTH,
        start_year: int = START_YEAR,
        baseline_temp: float = BASELINE_TEMP,
        interactions: Sequence[Interaction] = INTERACTIONS,
    ):
        self.params = {
            "interaction_strength": interaction_strength,
            "start_year": start_year,
            "baseline_temp": baseline_temp,
        }
        self.interactions = list(interactions)
        validate_interactions(self.interactions)
        self._validate_params()
        logger.info(f"Initialized CascadeModel with params: {self.params}")
    
    def _validate_params(self) -> None:
        """Warn about parameters outside the calibrated range."""
        k = self.params["interaction_strength"]
        baseline = self.params["baseline_temp"]
        
        issues = []
        
        if not 0 <= k <= 2:
            msg = f"interaction_strength={k} outside typical range [0, 2]"
            logger.warning(msg)
            issues.append(msg)
        
        if not 0 <= baseline < 2:
            msg = f"baseline_temp={baseline} outside typical range [0, 2)"
            logger.warning(msg)
            issues.append(msg)
        
        if issues:
            log_calculation_issue(
                "Parameter validation",
                "Some parameters outside typical ranges",
                dict(self.params),
            )
    
    def run(
        self,
        scenario: Union[str, Scenario],
        max_years: int = DEFAULT_MAX_YEARS,
        seed: Optional[int] = None,
        rng: Optional[RandomSource] = None,
        show_progress: bool = True,
    ) -> RunHistory:
        """
        Run one simulation to completion.
        
        Parameters
        ----------
        scenario : str or Scenario
            Scenario key or definition.
        max_years : int
            Stop after this many ticks if not all elements tipped.
            Default 500.
        seed : int, optional
            Random seed. Ignored when ``rng`` is given.
        rng : RandomSource, optional
            Random source for thresholds and tipping draws.
        show_progress : bool
            Show a progress bar. Default True.
        
        Returns
        -------
        RunHistory
            Full trajectory and event log.
        """
        # =====================================================================
        # STEP 1: Setup
        # =====================================================================
        start_step("Setup run")
        
        try:
            scenario_def = get_scenario(scenario)
            if max_years <= 0:
                raise ValueError(f"max_years must be positive, got {max_years}")
            
            rng = rng if rng is not None else RandomSource(seed)
            run = new_run(
                scenario_def,
                rng=rng,
                start_year=self.params["start_year"],
                baseline_temp=self.params["baseline_temp"],
                running=True,
            )
            thresholds = {key: state.threshold for key, state in run.elements.items()}
            
            logger.info(f"Using scenario: {scenario_def.name}")
            logger.debug(f"Thresholds: {thresholds}")
            
            end_step(success=True)
            
        except Exception as e:
            log_error(e, "Setup run")
            end_step(success=False)
            raise
        
        # =====================================================================
        # STEP 2: Tick loop
        # =====================================================================
        start_step("Tick loop")
        
        try:
            element_ids = list(run.elements.keys())
            years = [run.year]
            temperatures = [run.temperature]
            stress = {key: [run.elements[key].stress] for key in element_ids}
            tipped = {key: [run.elements[key].tipped] for key in element_ids}
            
            with tqdm(
                total=max_years,
                desc=f"Simulating {scenario_def.id}",
                unit="yr",
                disable=not show_progress,
            ) as pbar:
                for _ in range(max_years):
                    run = advance(
                        run,
                        rng=rng,
                        interactions=self.interactions,
                        interaction_strength=self.params["interaction_strength"],
                    )
                    years.append(run.year)
                    temperatures.append(run.temperature)
                    for key in element_ids:
                        stress[key].append(run.elements[key].stress)
                        tipped[key].append(run.elements[key].tipped)
                    pbar.update(1)
                    if run.terminal:
                        break
            
            logger.info(
                f"Tick loop finished at year {run.year}: "
                f"{run.tipped_count}/{len(element_ids)} tipped"
            )
            end_step(success=True)
            
        except Exception as e:
            log_error(e, "Tick loop")
            end_step(success=False)
            raise
        
        # =====================================================================
        # STEP 3: Build results
        # =====================================================================
        start_step("Building results object")
        
        try:
            events = run.events
            history = RunHistory(
                year=np.asarray(years, dtype=np.int64),
                temperature=np.asarray(temperatures, dtype=np.float64),
                stress={k: np.asarray(v, dtype=np.float64) for k, v in stress.items()},
                tipped={k: np.asarray(v, dtype=bool) for k, v in tipped.items()},
                final_run=run,
                thresholds=thresholds,
                model_params=dict(self.params),
                simulation_params={
                    "scenario": scenario_def.id,
                    "max_years": max_years,
                    "seed": getattr(rng, "seed", None),
                },
                diagnostics={
                    "tipped_count": run.tipped_count,
                    "all_tipped": run.terminal,
                    "first_tip_year": events[0].year if events else None,
                    "cascade_tips": sum(1 for e in events if e.is_cascade),
                    "max_temperature": float(np.max(temperatures)),
                },
            )
            end_step(success=True)
            
        except Exception as e:
            log_error(e, "Building results object")
            end_step(success=False)
            raise
        
        return history
    
    def ensemble(
        self,
        scenario: Union[str, Scenario],
        n_runs: int = 200,
        max_years: int = DEFAULT_MAX_YEARS,
        seed: Optional[int] = None,
        show_progress: bool = True,
    ):
        """
        Monte Carlo ensemble of independent runs.
        
        Parameters
        ----------
        scenario : str or Scenario
            Scenario to run.
        n_runs : int
            Number of runs. Default 200.
        max_years : int
            Year limit per run. Default 500.
        seed : int, optional
            Seed for the parent random source.
        show_progress : bool
            Show a progress bar. Default True.
        
        Returns
        -------
        pandas.DataFrame
            One row per element: ``tip_probability``, ``mean_tip_year``,
            ``median_tip_year`` and ``cascade_share`` (share of its tips
            that followed an earlier tip).
        """
        import pandas as pd
        
        if n_runs <= 0:
            raise ValueError(f"n_runs must be positive, got {n_runs}")
        
        scenario_def = get_scenario(scenario)
        parent = RandomSource(seed)
        
        start_step(f"Ensemble: {scenario_def.id} x {n_runs}")
        
        try:
            tip_years: Dict[str, List[int]] = {key: [] for key in ELEMENTS}
            cascades: Dict[str, int] = {key: 0 for key in ELEMENTS}
            all_tipped = 0
            
            for _ in tqdm(range(n_runs), desc="Ensemble", disable=not show_progress):
                history = self.run(
                    scenario_def,
                    max_years=max_years,
                    rng=parent.spawn(),
                    show_progress=False,
                )
                all_tipped += int(history.terminal)
                for event in history.events:
                    tip_years[event.element_id].append(event.year)
                    cascades[event.element_id] += int(event.is_cascade)
            
            rows = []
            for key, years in tip_years.items():
                rows.append({
                    "element_id": key,
                    "full_name": ELEMENTS[key].full_name,
                    "tip_probability": len(years) / n_runs,
                    "mean_tip_year": float(np.mean(years)) if years else np.nan,
                    "median_tip_year": float(np.median(years)) if years else np.nan,
                    "cascade_share": cascades[key] / len(years) if years else np.nan,
                })
            
            df = pd.DataFrame(rows)
            df.attrs["scenario"] = scenario_def.id
            df.attrs["n_runs"] = n_runs
            df.attrs["all_tipped_probability"] = all_tipped / n_runs
            
            logger.info(
                f"Ensemble {scenario_def.id}: all elements tipped in "
                f"{all_tipped}/{n_runs} runs"
            )
            end_step(success=True)
            return df
            
        except Exception as e:
            log_error(e, f"Ensemble {scenario_def.id}")
            end_step(success=False)
            raise
    
    def sensitivity_analysis(
        self,
        scenario: Union[str, Scenario],
        strength_range: Tuple[float, float] = (0.0, 1.0),
        n_samples: int = 6,
        n_runs: int = 50,
        max_years: int = DEFAULT_MAX_YEARS,
        seed: Optional[int] = None,
    ):
        """
        Sweep the interaction scale K and measure cascade outcomes.
        
        Returns
        -------
        pandas.DataFrame
            One row per K with ``mean_tipped`` and ``all_tipped_probability``.
        """
        import pandas as pd
        
        scenario_def = get_scenario(scenario)
        parent = RandomSource(seed)
        strengths = np.linspace(strength_range[0], strength_range[1], n_samples)
        
        start_step(f"Sensitivity analysis: {scenario_def.id}")
        
        try:
            rows = []
            for k in tqdm(strengths, desc="Sensitivity analysis"):
                model = CascadeModel(
                    interaction_strength=float(k),
                    start_year=self.params["start_year"],
                    baseline_temp=self.params["baseline_temp"],
                    interactions=self.interactions,
                )
                tipped_counts = []
                for _ in range(n_runs):
                    history = model.run(
                        scenario_def,
                        max_years=max_years,
                        rng=parent.spawn(),
                        show_progress=False,
                    )
                    tipped_counts.append(history.final_run.tipped_count)
                
                counts = np.asarray(tipped_counts)
                rows.append({
                    "interaction_strength": float(k),
                    "mean_tipped": float(np.mean(counts)),
                    "all_tipped_probability": float(np.mean(counts == len(ELEMENTS))),
                })
                logger.debug(f"K={k:.3f}: mean tipped {np.mean(counts):.2f}")
            
            end_step(success=True)
            return pd.DataFrame(rows)
            
        except Exception as e:
            log_error(e, "Sensitivity analysis")
            end_step(success=False)
            raise
    
    def __repr__(self) -> str:
        return (
            f"CascadeModel(interaction_strength={self.params['interaction_strength']}, "
            f"start_year={self.params['start_year']}, "
            f"baseline_temp={self.params['baseline_temp']})"
        )
