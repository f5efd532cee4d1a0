"""Utils module - Shared utilities."""

from __future__ import annotations

from metrics_agent.utils.logging import get_logger, setup_logging
from metrics_agent.utils.timestamps import from_unix, parse_runtime_timestamp

__all__ = ["from_unix", "get_logger", "parse_runtime_timestamp", "setup_logging"]
