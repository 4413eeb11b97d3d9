"""Logging setup for graph builds.

The builder attaches its per-build counters to the "Built graph" record as
``extra={'graph_stats': {...}}``. Both output modes surface them:

- Human-readable: the counters are appended as ``key=value`` pairs.
- JSON: one object per line, counters under ``graph_stats``.

Usage:
    from newsgraph.logging_config import setup_logging

    setup_logging()                         # NEWSGRAPH_LOG_LEVEL / NEWSGRAPH_LOG_JSON
    setup_logging(level="DEBUG")
    setup_logging(json_format=True)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from newsgraph.settings import get_settings

_HUMAN_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Counters worth a glance on a terminal; the JSON line carries all of them
_HUMAN_STATS = (
    "results",
    "relationships_dropped",
    "nodes_pruned",
    "links_pruned",
    "links_closed",
    "links_reinforced",
)


def _stats_of(record: logging.LogRecord) -> Optional[Mapping[str, Any]]:
    stats = getattr(record, "graph_stats", None)
    return stats if isinstance(stats, Mapping) else None


class _StatsFormatter(logging.Formatter):
    """Human-readable lines, with selected graph counters appended."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        stats = _stats_of(record)
        if stats:
            pairs = " ".join(f"{key}={stats[key]}" for key in _HUMAN_STATS if key in stats)
            if pairs:
                line = f"{line} [{pairs}]"
        return line


class _JSONFormatter(logging.Formatter):
    """One JSON object per record: timestamp, severity, module, message,
    graph_stats when attached, exception text when present."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "severity": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        stats = _stats_of(record)
        if stats is not None:
            payload["graph_stats"] = dict(stats)
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Install a single stderr handler on the root logger.

    Safe to call repeatedly; earlier handlers are removed first.

    Args:
        level: Log level name; ``settings.log_level`` when None.
        json_format: JSON lines instead of text; ``settings.log_json`` when None.

    Raises:
        ValueError: If *level* is not a recognised log level name.
    """
    settings = get_settings()
    level = level or settings.log_level
    json_format = settings.log_json if json_format is None else json_format

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(_JSONFormatter() if json_format else _StatsFormatter(_HUMAN_FMT))
    root.addHandler(handler)
