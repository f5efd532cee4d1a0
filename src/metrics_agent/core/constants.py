"""Shared constants for the metrics agent.

Centralized constants to avoid duplication and ensure consistency across modules.
"""

from __future__ import annotations

# Sampling cadence of the background collector (5 minutes).
DEFAULT_INTERVAL_SECONDS = 300

# 24 hours of history at the default cadence (24 * 12).
MAX_HISTORY_POINTS = 288

# Stored series are keyed by the short form of the runtime container id.
SHORT_ID_LENGTH = 12

# Reported for a running container when no rate can be measured yet.
# A placeholder that keeps "running" distinguishable from "idle/unknown" (0),
# NOT a measured utilization.
RUNNING_CPU_SENTINEL = 0.1

NANO_CPUS_PER_CORE = 1_000_000_000

BYTES_PER_MB = 1024 * 1024

DEFAULT_CALL_TIMEOUT_SECONDS = 10.0

DEFAULT_ACCESS_LOG_PATH = "/var/log/traefik/access.log"

DEFAULT_PORT = 3000
