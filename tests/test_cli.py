"""Smoke tests for the command-line interface."""

import pytest
from click.testing import CliRunner

import tipcascade.cli as cli
from tipcascade.cli import main


@pytest.fixture
def invoke(tmp_path):
    runner = CliRunner()
    config = tmp_path / "config.yaml"
    
    def _invoke(*args):
        return runner.invoke(main, ["--config", str(config), *args])
    return _invoke


class TestCLI:
    def test_list(self, invoke):
        result = invoke("list")
        assert result.exit_code == 0
        assert "paris15" in result.output
        assert "worst" in result.output
    
    def test_elements(self, invoke):
        result = invoke("elements")
        assert result.exit_code == 0
        assert "Greenland Ice Sheet" in result.output
        assert "3.5-4.5" in result.output
    
    def test_interactions(self, invoke):
        result = invoke("interactions")
        assert result.exit_code == 0
        assert "Meltwater weakens currents" in result.output
    
    def test_info(self, invoke):
        result = invoke("info", "worst")
        assert result.exit_code == 0
        assert "High Emissions" in result.output
    
    def test_info_unknown(self, invoke):
        result = invoke("info", "ssp585")
        assert result.exit_code == 1
    
    def test_run_csv(self, invoke, tmp_path):
        out = tmp_path / "outputs"
        result = invoke(
            "run", "-s", "worst", "--outputs", "csv", "-o", str(out),
            "--log-dir", str(tmp_path / "logs"), "--seed", "4", "--max-years", "120",
        )
        assert result.exit_code == 0, result.output
        assert (out / "csv" / "worst_trajectory.csv").exists()
        assert (out / "csv" / "worst_events.csv").exists()
        assert (tmp_path / "logs" / "worst.log").exists()
        assert "Results Summary" in result.output
    
    def test_play(self, invoke):
        result = invoke("play", "-s", "paris2", "--interval", "0.01", "--max-years", "3", "--seed", "1")
        assert result.exit_code == 0, result.output
        assert "2026" in result.output
        assert "Stopped at" in result.output or "elements tipped" in result.output
    
    def test_ensemble(self, invoke, tmp_path):
        out = tmp_path / "ensemble.csv"
        result = invoke("ensemble", "-s", "paris15", "-n", "5", "--max-years", "40", "-o", str(out))
        assert result.exit_code == 0, result.output
        assert out.exists()
    
    @pytest.mark.filterwarnings("ignore::pytest.PytestUnhandledThreadExceptionWarning")
    def test_play_display_failure_exits(self, invoke, monkeypatch):
        def broken_display(snapshot):
            raise OSError("broken pipe")
        
        monkeypatch.setattr(cli, "_format_tick", broken_display)
        result = invoke("play", "-s", "worst", "--interval", "0.01", "--seed", "1")
        assert result.exit_code == 1
        assert "broken pipe" in result.output
