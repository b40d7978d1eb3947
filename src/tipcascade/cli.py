"""
Command-line interface for tipcascade.

Usage:
    tipcascade run --scenario worst
    tipcascade run --all-scenarios --outputs csv
    tipcascade play --scenario current --interval 0.6
    tipcascade ensemble --scenario paris2 --n-runs 500
    tipcascade sensitivity --scenario current
    tipcascade list
    tipcascade elements
    tipcascade interactions
    tipcascade info worst
"""

import sys
import threading
import traceback
from pathlib import Path
import click

from tipcascade import (
    __version__,
    CascadeModel,
    ELEMENTS,
    INTERACTIONS,
    SCENARIOS,
    InvalidReferenceError,
    RandomSource,
    SimulationDriver,
    get_scenario,
    list_scenarios,
)
from tipcascade.core.driver import RunSnapshot
from tipcascade.utils.logging import (
    setup_logging,
    start_step,
    end_step,
    log_error,
    get_timing_logger,
)
from tipcascade.utils.config import load_config


@click.group()
@click.version_option(version=__version__, prog_name="tipcascade")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.option("--config", type=click.Path(), help="Config file path")
@click.pass_context
def main(ctx, verbose, debug, config):
    """
    tipcascade - Climate Tipping Cascade Simulator
    
    Simulates how crossing the threshold of one climate tipping element
    (Greenland, West Antarctica, AMOC, Amazon) raises or lowers the risk
    of the others tipping under a chosen warming scenario.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug


def _log_level(ctx) -> str:
    if ctx.obj.get("debug"):
        return "DEBUG"
    if ctx.obj.get("verbose"):
        return "INFO"
    return ctx.obj["config"]["logging"]["level"]


@main.command("run")
@click.option(
    "--scenario", "-s",
    type=click.Choice(list_scenarios()),
    help="Scenario to run",
)
@click.option(
    "--all-scenarios", "-a",
    is_flag=True,
    help="Run all built-in scenarios",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default=None,
    help="Output directory (default: from config)",
)
@click.option(
    "--outputs",
    type=click.Choice(["csv", "png"]),
    multiple=True,
    default=None,
    help="Output formats (default: from config)",
)
@click.option("--max-years", type=int, default=None, help="Year limit per run")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option(
    "--interaction-strength", "-k",
    type=float,
    default=None,
    help="Global interaction scale K (default: 0.35)",
)
@click.option("--log-dir", type=click.Path(), default=None, help="Log directory")
@click.option(
    "--log-name",
    type=str,
    default=None,
    help="Log file name (default: scenario id)",
)
@click.pass_context
def run(ctx, scenario, all_scenarios, output_dir, outputs, max_years, seed,
        interaction_strength, log_dir, log_name):
    """Run a simulation to completion and export its trajectory."""
    config = ctx.obj["config"]
    sim_config = config["simulation"]
    
    output_dir = Path(output_dir or config["outputs"]["base_dir"])
    outputs = list(outputs) if outputs else list(config["outputs"]["formats"])
    max_years = max_years if max_years is not None else sim_config["max_years"]
    seed = seed if seed is not None else sim_config["seed"]
    log_dir = log_dir or config["logging"]["log_dir"]
    if interaction_strength is None:
        interaction_strength = config["model"]["interaction_strength"]
    
    if all_scenarios:
        scenarios_to_run = list_scenarios()
    elif scenario:
        scenarios_to_run = [scenario]
    else:
        scenarios_to_run = [config["scenarios"]["default"]]
    
    if log_name is None:
        log_name = "all_scenarios" if all_scenarios else scenarios_to_run[0]
    
    logger = setup_logging(
        level=_log_level(ctx),
        log_dir=log_dir,
        log_name=log_name,
        format_style=config["logging"]["format_style"],
    )
    
    try:
        start_step("Initialize model")
        
        model = CascadeModel(
            interaction_strength=interaction_strength,
            start_year=sim_config["start_year"],
            baseline_temp=sim_config["baseline_temp"],
        )
        
        subdirs = {fmt: output_dir / config["outputs"]["subdirs"].get(fmt, fmt) for fmt in outputs}
        for subdir in subdirs.values():
            subdir.mkdir(parents=True, exist_ok=True)
        
        click.echo(f"\n{'═' * 60}")
        click.echo("  Model Parameters:")
        click.echo(f"{'─' * 60}")
        click.echo(f"  Interaction strength (K) = {model.params['interaction_strength']}")
        click.echo(f"  Start year               = {model.params['start_year']}")
        click.echo(f"  Baseline temperature     = {model.params['baseline_temp']}°C")
        click.echo(f"  Year limit               = {max_years}")
        click.echo(f"{'═' * 60}")
        
        end_step(success=True)
        
        failures = 0
        for scenario_key in scenarios_to_run:
            start_step(f"Scenario: {scenario_key}")
            
            try:
                info = get_scenario(scenario_key)
                click.echo(f"\n{'─' * 60}")
                click.echo(f"  {info.icon} {info.name}: {info.description}")
                click.echo(f"  Target {info.target_temp}°C in {info.years_to_target} years")
                
                history = model.run(
                    scenario=info,
                    max_years=max_years,
                    seed=seed,
                    show_progress=True,
                )
                
                if "csv" in outputs:
                    csv_path = subdirs["csv"] / f"{info.id}_trajectory.csv"
                    history.to_csv(csv_path)
                    events_path = subdirs["csv"] / f"{info.id}_events.csv"
                    history.events_to_csv(events_path)
                    click.echo(f"    ✓ CSV: {csv_path}")
                    click.echo(f"    ✓ CSV: {events_path}")
                
                if "png" in outputs:
                    png_path = subdirs["png"] / f"{info.id}_stress.png"
                    history.to_png(png_path, dpi=config["visualization"]["dpi"])
                    click.echo(f"    ✓ PNG: {png_path}")
                
                _echo_summary(history)
                
                logger.info(f"Scenario {scenario_key} completed successfully")
                end_step(success=True)
                
            except Exception as e:
                log_error(e, f"Scenario {scenario_key}")
                end_step(success=False)
                click.echo(f"\n  ✗ ERROR in scenario {scenario_key}: {e}", err=True)
                failures += 1
                continue
        
        click.echo(f"\nOutput Directory: {output_dir}")
        click.echo(f"Log Directory: {log_dir}")
        
        timing_logger = get_timing_logger()
        if timing_logger:
            click.echo(timing_logger.summary())
        
        if failures:
            sys.exit(1)
        
    except Exception as e:
        log_error(e, "Main execution")
        click.echo(f"\n  FATAL ERROR: {e}", err=True)
        click.echo(f"\nCheck log file in: {log_dir}", err=True)
        click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


def _echo_summary(history) -> None:
    summary = history.summary()
    click.echo("\n  Results Summary:")
    click.echo(f"    Years: {summary['year_start']}-{summary['year_end']}")
    click.echo(f"    Final temperature: {summary['final_temperature']:.2f}°C")
    click.echo(f"    Tipped: {summary['tipped_count']}/{summary['n_elements']}")
    click.echo(f"    Cascade tips: {summary['cascade_tips']}")
    click.echo("\n  Cascade Log:")
    if not history.events:
        click.echo("    (no element tipped)")
    for event in history.events:
        tag = "cascade" if event.is_cascade else "initial"
        click.echo(
            f"    {event.year}  {event.element.icon} {event.element.full_name} "
            f"at {event.temperature:.1f}°C ({tag})"
        )


def _format_tick(snapshot: RunSnapshot) -> str:
    gauges = "  ".join(
        f"{e.element.name}:{'TIPPED' if e.tipped else f'{e.stress:5.1f}'}"
        for e in snapshot.elements.values()
    )
    return f"{snapshot.year}  {snapshot.temperature:4.2f}°C [{snapshot.temperature_band}]  {gauges}"


@main.command("play")
@click.option(
    "--scenario", "-s",
    type=click.Choice(list_scenarios()),
    default=None,
    help="Scenario to play (default: from config)",
)
@click.option("--interval", type=float, default=None, help="Seconds per simulated year")
@click.option("--max-years", type=int, default=None, help="Stop after this many years")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.pass_context
def play(ctx, scenario, interval, max_years, seed):
    """Watch a simulation unfold in real time, one line per year."""
    config = ctx.obj["config"]
    sim_config = config["simulation"]
    
    scenario = scenario or config["scenarios"]["default"]
    interval = interval if interval is not None else sim_config["tick_interval"]
    max_years = max_years if max_years is not None else sim_config["max_years"]
    seed = seed if seed is not None else sim_config["seed"]
    
    setup_logging(level="WARNING" if not ctx.obj.get("debug") else "DEBUG", format_style="simple")
    
    done = threading.Event()
    
    def on_tick(snapshot: RunSnapshot) -> None:
        click.echo(_format_tick(snapshot))
        new_events = [e for e in snapshot.events if e.year == snapshot.year]
        for event in new_events:
            prefix = "CASCADE" if event.is_cascade else "TIPPED"
            click.echo(f"  ⚠ {prefix}: {event.element.full_name} at {event.temperature:.1f}°C")
        if snapshot.terminal or snapshot.year - sim_config["start_year"] >= max_years:
            done.set()
    
    driver = SimulationDriver(
        interval=interval,
        rng=RandomSource(seed),
        start_year=sim_config["start_year"],
        baseline_temp=sim_config["baseline_temp"],
        interaction_strength=config["model"]["interaction_strength"],
        on_tick=on_tick,
    )
    
    try:
        info = get_scenario(scenario)
        click.echo(f"\n{info.icon} {info.name}: {info.description}")
        click.echo("─" * 60)
        driver.select_scenario(info.id)
        while not done.wait(0.2):
            if driver.last_error is not None:
                raise driver.last_error
    except KeyboardInterrupt:
        click.echo("\nInterrupted")
    except InvalidReferenceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        log_error(e, "Play")
        click.echo(f"\nFATAL ERROR: {e}", err=True)
        sys.exit(1)
    finally:
        driver.close()
    
    snapshot = driver.snapshot()
    click.echo("─" * 60)
    if snapshot.terminal:
        click.echo(f"All {len(snapshot.elements)} elements tipped by {snapshot.year}.")
    else:
        click.echo(f"Stopped at {snapshot.year}: {snapshot.tipped_count}/{len(snapshot.elements)} tipped.")


@main.command("ensemble")
@click.option(
    "--scenario", "-s",
    type=click.Choice(list_scenarios()),
    required=True,
    help="Scenario to analyze",
)
@click.option("--n-runs", "-n", type=int, default=None, help="Number of runs")
@click.option("--max-years", type=int, default=None, help="Year limit per run")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option("--output", "-o", type=click.Path(), default=None, help="CSV output path")
@click.pass_context
def ensemble(ctx, scenario, n_runs, max_years, seed, output):
    """Estimate per-element tipping probabilities over many runs."""
    config = ctx.obj["config"]
    sim_config = config["simulation"]
    
    n_runs = n_runs if n_runs is not None else config["ensemble"]["n_runs"]
    max_years = max_years if max_years is not None else sim_config["max_years"]
    seed = seed if seed is not None else sim_config["seed"]
    
    setup_logging(level=_log_level(ctx), format_style="simple")
    
    try:
        model = CascadeModel(
            interaction_strength=config["model"]["interaction_strength"],
            start_year=sim_config["start_year"],
            baseline_temp=sim_config["baseline_temp"],
        )
        df = model.ensemble(scenario, n_runs=n_runs, max_years=max_years, seed=seed)
        
        click.echo(f"\nEnsemble: {get_scenario(scenario).name} ({n_runs} runs)")
        click.echo(df.to_string(index=False, float_format=lambda v: f"{v:.3f}"))
        click.echo(f"\nAll elements tipped in {df.attrs['all_tipped_probability']:.1%} of runs")
        
        if output:
            Path(output).parent.mkdir(parents=True, exist_ok=True)
            df.to_csv(output, index=False)
            click.echo(f"Results saved to: {output}")
        
    except Exception as e:
        log_error(e, "Ensemble")
        click.echo(f"\nFATAL ERROR: {e}", err=True)
        click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


@main.command("sensitivity")
@click.option(
    "--scenario", "-s",
    type=click.Choice(list_scenarios()),
    required=True,
    help="Scenario to analyze",
)
@click.option("--k-min", type=float, default=0.0, help="Minimum interaction strength")
@click.option("--k-max", type=float, default=1.0, help="Maximum interaction strength")
@click.option("--n-samples", type=int, default=6, help="Number of K values to test")
@click.option("--n-runs", type=int, default=50, help="Runs per K value")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default="./sensitivity",
    help="Output directory",
)
@click.pass_context
def sensitivity(ctx, scenario, k_min, k_max, n_samples, n_runs, seed, output_dir):
    """Sweep the interaction strength and report cascade outcomes."""
    config = ctx.obj["config"]
    sim_config = config["simulation"]
    
    setup_logging(level=_log_level(ctx), format_style="simple")
    
    try:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        
        model = CascadeModel(
            start_year=sim_config["start_year"],
            baseline_temp=sim_config["baseline_temp"],
        )
        df = model.sensitivity_analysis(
            scenario,
            strength_range=(k_min, k_max),
            n_samples=n_samples,
            n_runs=n_runs,
            max_years=sim_config["max_years"],
            seed=seed,
        )
        
        csv_path = output_dir / f"{scenario}_sensitivity.csv"
        df.to_csv(csv_path, index=False)
        
        click.echo(f"\nSensitivity Analysis: {scenario}")
        click.echo(df.to_string(index=False))
        click.echo(f"\nResults saved to: {csv_path}")
        
    except Exception as e:
        log_error(e, "Sensitivity analysis")
        click.echo(f"\nFATAL ERROR: {e}", err=True)
        click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


@main.command("list")
def list_command():
    """List available scenarios."""
    click.echo("\nAvailable Scenarios:")
    click.echo("─" * 60)
    
    for key, info in SCENARIOS.items():
        click.echo(f"\n  {key}:")
        click.echo(f"    Name: {info.icon} {info.name}")
        click.echo(f"    Target: {info.target_temp}°C in {info.years_to_target} years")
        click.echo(f"    Description: {info.description}")
    
    click.echo("\n" + "─" * 60)
    click.echo("\nRun one with:")
    click.echo("  tipcascade run --scenario worst")
    click.echo()


@main.command("elements")
def elements_command():
    """List tipping elements and their threshold ranges."""
    click.echo("\nTipping Elements:")
    click.echo("─" * 60)
    for key, element in ELEMENTS.items():
        click.echo(f"\n  {element.icon} {element.full_name} ({key})")
        click.echo(f"    Tipping: {element.tipping_name}")
        click.echo(f"    Threshold: {element.threshold_min}-{element.threshold_max}°C")
        click.echo(f"    Role: {element.role}")
    click.echo()


@main.command("interactions")
def interactions_command():
    """List interactions between tipping elements."""
    click.echo("\nInteractions (active once the source has tipped):")
    click.echo("─" * 60)
    for interaction in INTERACTIONS:
        click.echo(
            f"  {interaction.source:>9} → {interaction.target:<9} "
            f"{interaction.type.value:<13} strength {interaction.strength:<4}  "
            f"{interaction.label}"
        )
    click.echo()


@main.command("info")
@click.argument("scenario")
def info(scenario):
    """Show detailed information about a scenario."""
    try:
        scenario_info = get_scenario(scenario)
    except InvalidReferenceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    
    click.echo(f"\n{scenario_info.icon} {scenario_info.name}")
    click.echo("=" * 60)
    click.echo(f"Description: {scenario_info.description}")
    click.echo(f"Target temperature: {scenario_info.target_temp}°C")
    click.echo(f"Years to target: {scenario_info.years_to_target}")
    click.echo(f"Colour: {scenario_info.color}")
    click.echo()


if __name__ == "__main__":
    main()
