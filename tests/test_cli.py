"""Tests for the command-line interface."""

from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import yaml
from typer.testing import CliRunner

from metrics_agent.cli import app
from metrics_agent.core.schemas import AgentConfig
from metrics_agent.exceptions import LimitsUpdateError, RuntimeUnavailableError

runner = CliRunner()


class TestInitConfig:
    def test_writes_loadable_config(self, tmp_path: Path) -> None:
        output = tmp_path / "agent.yaml"

        result = runner.invoke(app, ["init-config", "--output", str(output)])

        assert result.exit_code == 0
        config = AgentConfig.model_validate(yaml.safe_load(output.read_text()))
        assert config.interval_seconds == 300


class TestRequests:
    def test_counts_domain(self, tmp_path: Path) -> None:
        log = tmp_path / "access.log"
        today = date.today().isoformat()
        log.write_text(f'{{"RequestHost": "example.com", "StartUTC": "{today}T00:00:01Z"}}\n')

        result = runner.invoke(app, ["requests", "example.com", "--log", str(log)])

        assert result.exit_code == 0
        assert "1 today, 1 total" in result.output

    def test_missing_log_fails(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["requests", "example.com", "--log", str(tmp_path / "x")])
        assert result.exit_code == 1


class TestLimits:
    def test_requires_a_limit(self) -> None:
        result = runner.invoke(app, ["limits", "web-1"])
        assert result.exit_code == 1

    def test_applies_limits(self, runtime: MagicMock) -> None:
        with patch("metrics_agent.cli.DockerRuntime.connect", return_value=runtime):
            result = runner.invoke(app, ["limits", "web-1", "--cpus", "1.5"])

        assert result.exit_code == 0
        runtime.update.assert_called_once_with("web-1", nano_cpus=1_500_000_000)
        runtime.close.assert_called_once()

    def test_rejected(self, runtime: MagicMock) -> None:
        runtime.update.side_effect = LimitsUpdateError("web-1", "Minimum memory limit allowed")
        with patch("metrics_agent.cli.DockerRuntime.connect", return_value=runtime):
            result = runner.invoke(app, ["limits", "web-1", "--memory-mb", "1"])

        assert result.exit_code == 1
        assert "Minimum memory limit allowed" in result.output


class TestSnapshot:
    def test_prints_table(self, runtime: MagicMock) -> None:
        with patch("metrics_agent.cli.DockerRuntime.connect", return_value=runtime):
            result = runner.invoke(app, ["snapshot"])

        assert result.exit_code == 0
        assert "Container Stats" in result.output
        runtime.stats.assert_called_once()
        runtime.close.assert_called_once()

    def test_unreachable_docker(self) -> None:
        with patch(
            "metrics_agent.cli.DockerRuntime.connect",
            side_effect=RuntimeUnavailableError("Failed to connect to Docker"),
        ):
            result = runner.invoke(app, ["snapshot"])

        assert result.exit_code == 1


def test_serve_requires_token(monkeypatch) -> None:
    monkeypatch.delenv("METRICS_AGENT_TOKEN", raising=False)
    result = runner.invoke(app, ["serve"])
    assert result.exit_code == 1
    assert "METRICS_AGENT_TOKEN" in result.output
