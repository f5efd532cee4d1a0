"""CLI for the metrics agent.

Provides a rich command-line interface using Typer for:
- Serving the HTTP API with the background collector
- One-off stats snapshots of running containers
- Applying resource limits
- Counting requests in the access log
"""

from __future__ import annotations

import os
from pathlib import Path

import typer
from granian import Granian
from granian.constants import Interfaces
from rich.console import Console
from rich.table import Table

from metrics_agent import __version__
from metrics_agent.access_log import count_requests
from metrics_agent.api import CONFIG_PATH_ENV
from metrics_agent.core.config import config_from_env, load_config
from metrics_agent.core.schemas import AgentConfig, AllStats, ResourceLimits
from metrics_agent.engine import MetricsEngine
from metrics_agent.exceptions import MetricsAgentError
from metrics_agent.runtime.docker_runtime import DockerRuntime
from metrics_agent.utils.logging import get_logger, setup_logging

app = typer.Typer(
    name="metrics-agent",
    help="Container metrics sidecar",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _load(config: Path | None) -> AgentConfig:
    """Load the optional config file and overlay the environment."""
    try:
        base = load_config(config) if config is not None else None
        return config_from_env(base)
    except Exception as e:
        console.print(f"[bold red]Error loading config: {e}[/]")
        raise typer.Exit(1) from e


def _connect(config: AgentConfig) -> DockerRuntime:
    try:
        return DockerRuntime.connect(config.docker_host, timeout=config.call_timeout_seconds)
    except MetricsAgentError as e:
        console.print(f"[bold red]{e}[/]")
        raise typer.Exit(1) from e


@app.command()
def serve(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to agent configuration file (YAML/JSON)"
    ),
    host: str | None = typer.Option(None, "--host", help="Bind address (overrides config)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (overrides config)"),
    log_level: str = typer.Option("INFO", "--log-level", "-l", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Serve the HTTP API and run the background collector."""
    setup_logging(
        level=log_level, log_file=log_file, json_format=json_logs, rich_console=not json_logs
    )

    agent_config = _load(config)
    if agent_config.auth_token is None:
        console.print("[bold red]METRICS_AGENT_TOKEN is required[/]")
        raise typer.Exit(1)

    # Fail fast before the server starts if Docker is unreachable
    _connect(agent_config).close()

    # The server builds the app in its worker from the same sources
    if config is not None:
        os.environ[CONFIG_PATH_ENV] = str(config.resolve())
    os.environ["METRICS_AGENT_LOG_LEVEL"] = log_level

    bind_host = host or agent_config.host
    bind_port = port or agent_config.port
    logger.info(f"Starting metrics-agent v{__version__} on {bind_host}:{bind_port}")

    # One worker: the collector and its history live in-process
    Granian(
        "metrics_agent.api:app_from_env",
        address=bind_host,
        port=bind_port,
        interface=Interfaces.ASGI,
        workers=1,
        factory=True,
    ).serve()


@app.command()
def snapshot(
    config: Path | None = typer.Option(None, "--config", "-c", help="Agent configuration file"),
    name_filter: str | None = typer.Option(
        None, "--filter", "-f", help="Only containers whose name contains this"
    ),
) -> None:
    """Print current stats for all running containers."""
    setup_logging(level="WARNING")
    agent_config = _load(config)
    runtime = _connect(agent_config)

    try:
        stats = MetricsEngine(runtime, agent_config).all_stats(name_filter)
    except MetricsAgentError as e:
        console.print(f"[bold red]{e}[/]")
        raise typer.Exit(1) from e
    finally:
        runtime.close()

    _show_stats_table(stats)


@app.command()
def limits(
    container_id: str = typer.Argument(..., help="Container id or name"),
    cpus: float | None = typer.Option(None, "--cpus", help="CPU cores (e.g. 1.5)"),
    memory_mb: int | None = typer.Option(None, "--memory-mb", help="Memory limit in MB"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Agent configuration file"),
) -> None:
    """Apply CPU and/or memory limits to a container (swap is pinned to memory)."""
    if cpus is None and memory_mb is None:
        console.print("[bold red]Error:[/] Pass --cpus and/or --memory-mb.")
        raise typer.Exit(1)

    setup_logging(level="WARNING")
    agent_config = _load(config)
    runtime = _connect(agent_config)

    try:
        requested = ResourceLimits(cpu_cores=cpus, memory_mb=memory_mb)
        MetricsEngine(runtime, agent_config).set_limits(container_id, requested)
    except MetricsAgentError as e:
        console.print(f"[bold red]Failed to update {container_id}:[/] {e}")
        raise typer.Exit(1) from e
    finally:
        runtime.close()

    console.print(f"[bold green]Updated limits for {container_id}[/]")


@app.command()
def requests(
    domain: str = typer.Argument(..., help="Request host to count"),
    log: Path | None = typer.Option(None, "--log", help="Access log path (overrides config)"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Agent configuration file"),
) -> None:
    """Count requests for a domain in the access log."""
    log_path = log or _load(config).access_log_path

    try:
        stats = count_requests(log_path, domain)
    except OSError as e:
        console.print(f"[bold red]Cannot read {log_path}: {e}[/]")
        raise typer.Exit(1) from e

    console.print(f"[cyan]{stats.domain}[/]: {stats.today:,} today, {stats.total:,} total")


@app.command()
def init_config(
    output: Path = typer.Option(
        Path("metrics-agent.yaml"), "--output", "-o", help="Output configuration file"
    ),
) -> None:
    """Generate a sample configuration file."""
    sample_config = """\
# metrics-agent configuration
# Environment variables (METRICS_AGENT_TOKEN, PORT, TRAEFIK_LOG_PATH,
# DOCKER_HOST, METRICS_AGENT_INTERVAL) override these values.

# Sampling interval of the background collector (seconds)
interval_seconds: 300

# History points kept per series (288 = 24h at 5 minutes)
max_points: 288

# Budget for a single Docker API call (seconds)
call_timeout_seconds: 10

# Containers sampled concurrently per tick
max_workers: 4

# docker_host: unix:///var/run/docker.sock
access_log_path: /var/log/traefik/access.log

host: 0.0.0.0
port: 3000
"""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(sample_config)
    console.print(f"[bold green]Sample configuration written to {output}[/]")


def _show_stats_table(stats: AllStats) -> None:
    """Display current container stats."""
    if not stats.containers:
        console.print("[bold yellow]No running containers[/]")
        return

    table = Table(title=f"Container Stats ({stats.timestamp:%Y-%m-%d %H:%M:%S} UTC)")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("CPU %", justify="right")
    table.add_column("CPU Limit", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Mem %", justify="right")
    table.add_column("Net RX / TX (MB)", justify="right")

    for s in stats.containers:
        cpu = f"{s.cpu.usage_percent:.2f}"
        if s.cpu.estimated:
            cpu = f"[yellow]~{cpu}[/]"
        table.add_row(
            s.container_id,
            s.container_name,
            cpu,
            f"{s.cpu.limit_cores:g}",
            f"{s.memory.usage_mb:.1f} / {s.memory.limit_mb:.0f} MB",
            f"{s.memory.usage_percent:.1f}",
            f"{s.network.rx_mb:.1f} / {s.network.tx_mb:.1f}",
        )

    console.print(table)
    if any(s.cpu.estimated for s in stats.containers):
        console.print("[dim]~ CPU estimated from a single reading[/]")


if __name__ == "__main__":
    app()
