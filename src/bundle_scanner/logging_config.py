"""
Logging for the Bundle Scanner.

One analysis fans out into hundreds of concurrent per-wallet RPC reads,
and their warnings interleave. Every record is therefore tagged with the
id of the analysis that issued it (``start_analysis`` sets it at the top
of ``analyze_bundle``), so one run can be grepped out of a shared log.

Output goes to stderr; stdout is left to the CLI report and ``--json``.

Settings via env vars:
- ``LOG_LEVEL``: DEBUG / INFO / WARNING / ERROR (default: INFO)
- ``LOG_FORMAT``: ``text`` (default) or ``json`` (one object per line)
"""

from __future__ import annotations

import json as json_mod
import logging
import sys
import uuid
from contextvars import ContextVar

from config import LOG_FORMAT, LOG_LEVEL

analysis_id_ctx: ContextVar[str] = ContextVar("analysis_id", default="-")

# httpx logs every request at INFO; a holdings fan-out alone is one per wallet
_CHATTY_LOGGERS = ("httpx", "httpcore")

_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(analysis_id)s) %(message)s"


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line tagged with its analysis."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "analysis_id": analysis_id_ctx.get("-"),
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json_mod.dumps(entry, default=str)


def setup_logging(level: str | None = None) -> None:
    """Install the single stderr handler on the root logger.

    *level* overrides ``LOG_LEVEL``. Calling it again replaces the handler.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if LOG_FORMAT == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, defaults={"analysis_id": "-"}))
    handler.addFilter(_AnalysisIdFilter())
    root.addHandler(handler)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def start_analysis() -> str:
    """Tag the current task (and the lookups it spawns) with a fresh id."""
    analysis_id = uuid.uuid4().hex[:12]
    analysis_id_ctx.set(analysis_id)
    return analysis_id


class _AnalysisIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.analysis_id = analysis_id_ctx.get("-")  # type: ignore[attr-defined]
        return True
