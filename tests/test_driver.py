"""Tests for the real-time driver and its state machine."""

import threading
import time

import pytest

from tipcascade import (
    CatalogIntegrityError,
    DriverState,
    Interaction,
    InteractionType,
    InvalidReferenceError,
    SimulationDriver,
)


@pytest.fixture
def cascade_rng(scripted_random):
    """Thresholds at their minimum, tips whenever possible."""
    return scripted_random(draw=0.0, fraction=0.0)


def manual_driver(rng, **kwargs):
    return SimulationDriver(rng=rng, threaded=False, **kwargs)


class TestStateMachine:
    def test_starts_idle(self, never_tip):
        driver = manual_driver(never_tip)
        snapshot = driver.snapshot()
        assert driver.state is DriverState.IDLE
        assert snapshot.scenario_id is None
        assert snapshot.year == 2025
        assert snapshot.temperature == 1.1
        assert all(e.stress == 0.0 for e in snapshot.elements.values())
        assert driver.tick() is None
    
    def test_select_pause_resume(self, never_tip):
        driver = manual_driver(never_tip)
        driver.select_scenario("worst")
        assert driver.state is DriverState.RUNNING
        
        driver.tick()
        driver.tick()
        assert driver.run.year == 2027
        
        paused = driver.pause()
        assert paused.state is DriverState.PAUSED
        assert not paused.running
        assert driver.tick() is None
        assert driver.run.year == 2027
        
        driver.resume()
        assert driver.tick().year == 2028
    
    def test_pause_keeps_content(self, never_tip):
        driver = manual_driver(never_tip)
        driver.select_scenario("current")
        for _ in range(5):
            driver.tick()
        before = driver.run
        driver.pause()
        driver.resume()
        after = driver.run
        assert after.elements == before.elements
        assert (after.year, after.temperature, after.events) == (before.year, before.temperature, before.events)
    
    def test_toggle(self, never_tip):
        driver = manual_driver(never_tip)
        driver.select_scenario("paris2")
        assert driver.toggle().state is DriverState.PAUSED
        assert driver.toggle().state is DriverState.RUNNING
    
    def test_reset(self, never_tip):
        driver = manual_driver(never_tip)
        driver.select_scenario("worst")
        driver.tick()
        snapshot = driver.reset()
        assert snapshot.state is DriverState.IDLE
        assert snapshot.scenario_id is None
        assert snapshot.year == 2025
        assert snapshot.events == ()
    
    def test_unknown_scenario_refused(self, never_tip):
        driver = manual_driver(never_tip)
        with pytest.raises(InvalidReferenceError):
            driver.select_scenario("ssp585")
        assert driver.state is DriverState.IDLE
        
        driver.select_scenario("worst")
        driver.tick()
        with pytest.raises(InvalidReferenceError):
            driver.select_scenario("nope")
        assert driver.state is DriverState.RUNNING
        assert driver.run.year == 2026
    
    def test_failing_callback_pauses_run(self, never_tip):
        def on_tick(snapshot):
            raise RuntimeError("display gone")
        
        driver = manual_driver(never_tip, on_tick=on_tick)
        driver.select_scenario("worst")
        with pytest.raises(RuntimeError, match="display gone"):
            driver.tick()
        
        assert driver.run.year == 2026
        assert driver.state is DriverState.PAUSED
        assert isinstance(driver.last_error, RuntimeError)
        
        driver.on_tick = None
        driver.resume()
        assert driver.tick().year == 2027
    
    def test_unknown_interaction_endpoint(self, never_tip):
        table = [Interaction("greenland", "amazn", InteractionType.DESTABILIZING, 1.0)]
        with pytest.raises(CatalogIntegrityError, match="amazn"):
            manual_driver(never_tip, interactions=table)
    
    def test_runs_to_terminal(self, cascade_rng):
        driver = manual_driver(cascade_rng, interaction_strength=1.0)
        driver.select_scenario("worst")
        for _ in range(500):
            if driver.tick() is None:
                break
        
        snapshot = driver.snapshot()
        assert snapshot.state is DriverState.TERMINAL
        assert snapshot.terminal and not snapshot.running
        assert snapshot.year == 2091
        assert [(e.year, e.element_id, e.is_cascade) for e in snapshot.events] == [
            (2026, "greenland", False),
            (2026, "wais", False),
            (2027, "amoc", True),
            (2091, "amazon", True),
        ]
        
        # Terminal is final until reset
        driver.resume()
        assert driver.tick() is None
        assert driver.run.year == 2091
        assert driver.reset().state is DriverState.IDLE
    
    def test_stale_timer_dropped(self, never_tip):
        driver = manual_driver(never_tip)
        driver.select_scenario("worst")
        stale = driver._generation
        driver.pause()
        driver.resume()
        driver._on_timer(stale)
        assert driver.run.year == 2025


class TestSnapshot:
    def test_event_order_and_interactions(self, cascade_rng):
        driver = manual_driver(cascade_rng, interaction_strength=1.0)
        driver.select_scenario("worst")
        driver.tick()
        driver.tick()
        
        oldest = driver.snapshot()
        newest = driver.snapshot(newest_first=True)
        assert [e.element_id for e in oldest.events] == ["greenland", "wais", "amoc"]
        assert [e.element_id for e in newest.events] == ["amoc", "wais", "greenland"]
        assert oldest.tipped_count == 3
        assert len(oldest.active_interactions) == 7
    
    def test_as_dict(self, never_tip):
        driver = manual_driver(never_tip)
        driver.select_scenario("paris15")
        driver.tick()
        data = driver.snapshot().as_dict()
        assert data["state"] == "running"
        assert data["scenario_id"] == "paris15"
        assert data["temperature_band"] == "safe"
        assert data["elements"]["amazon"]["full_name"] == "Amazon Rainforest"
        assert 0.0 <= data["elements"]["greenland"]["stress"] <= 100.0


class TestScheduler:
    def test_ticks_on_timer(self, never_tip):
        ticked = threading.Event()
        years = []
        
        def on_tick(snapshot):
            years.append(snapshot.year)
            if len(years) >= 3:
                ticked.set()
        
        with SimulationDriver(interval=0.01, rng=never_tip, on_tick=on_tick) as driver:
            driver.select_scenario("worst")
            assert ticked.wait(5)
        
        assert years[:3] == [2026, 2027, 2028]
    
    def test_pause_stops_ticks(self, never_tip):
        with SimulationDriver(interval=0.01, rng=never_tip) as driver:
            driver.select_scenario("worst")
            time.sleep(0.1)
            driver.pause()
            year = driver.run.year
            time.sleep(0.1)
            assert driver.run.year == year
            assert driver.state is DriverState.PAUSED
            
            driver.resume()
            time.sleep(0.1)
            assert driver.run.year > year
    
    def test_reset_cancels_pending_tick(self, never_tip):
        with SimulationDriver(interval=0.05, rng=never_tip) as driver:
            driver.select_scenario("worst")
            driver.reset()
            time.sleep(0.2)
            assert driver.state is DriverState.IDLE
            assert driver.run.year == 2025
    
    def test_pause_from_callback(self, never_tip):
        holder = {}
        
        def on_tick(snapshot):
            if snapshot.year == 2027:
                holder["driver"].pause()
        
        with SimulationDriver(interval=0.01, rng=never_tip, on_tick=on_tick) as driver:
            holder["driver"] = driver
            driver.select_scenario("worst")
            time.sleep(0.2)
            assert driver.state is DriverState.PAUSED
            assert driver.run.year == 2027
    
    def test_runs_to_terminal(self, cascade_rng):
        with SimulationDriver(interval=0.005, rng=cascade_rng, interaction_strength=1.0) as driver:
            driver.select_scenario("worst")
            assert driver.wait_until_terminal(timeout=10)
            assert driver.state is DriverState.TERMINAL
            year = driver.run.year
            time.sleep(0.05)
            assert driver.run.year == year
    
    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            SimulationDriver(interval=0)
    
    @pytest.mark.filterwarnings("ignore::pytest.PytestUnhandledThreadExceptionWarning")
    def test_failing_callback_stops_timer(self, never_tip):
        years = []
        
        def on_tick(snapshot):
            years.append(snapshot.year)
            raise RuntimeError("broken pipe")
        
        with SimulationDriver(interval=0.01, rng=never_tip, on_tick=on_tick) as driver:
            driver.select_scenario("worst")
            time.sleep(0.3)
            assert years == [2026]
            assert driver.state is DriverState.PAUSED
            assert not driver.run.running
            assert str(driver.last_error) == "broken pipe"
