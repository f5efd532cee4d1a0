"""Request counting from a Traefik access log.

Traefik writes either JSON lines (``RequestHost``, ``StartUTC``, ``time``) or
Common Log Format text. JSON lines are matched on the exact request host;
text lines fall back to a substring match on the domain.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path

from metrics_agent.core.schemas import RequestStats

logger = logging.getLogger(__name__)


def _count_line(line: str, domain: str, today: str) -> tuple[int, int]:
    """Return ``(total, today)`` increments for one log line."""
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        entry = None

    if isinstance(entry, dict):
        if entry.get("RequestHost") != domain:
            return 0, 0
        start_utc = str(entry.get("StartUTC") or "")
        logged_at = str(entry.get("time") or "")
        is_today = start_utc.startswith(today) or logged_at.startswith(today)
        return 1, int(is_today)

    if domain in line:
        return 1, int(today in line)
    return 0, 0


def count_requests(log_path: Path | str, domain: str, today: date | None = None) -> RequestStats:
    """Count requests for ``domain`` in an access log.

    Args:
        log_path: Path to the access log
        domain: Request host to count
        today: Day counted as "today" (defaults to the local date)

    Returns:
        RequestStats with today's and all-time counts

    Raises:
        OSError: If the log cannot be opened
    """
    today_str = (today or date.today()).isoformat()
    total = 0
    today_count = 0

    with open(log_path, encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            line_total, line_today = _count_line(line, domain, today_str)
            total += line_total
            today_count += line_today

    logger.debug(f"Counted {total} requests ({today_count} today) for {domain} in {log_path}")
    return RequestStats(domain=domain, today=today_count, total=total)
