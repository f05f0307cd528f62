"""
Logging setup for ApplyOps.

setup_logging() configures the root logger once at startup: readable
console lines in development, JSON lines in production, plus a rotating
file when asked for. SyncRunLog records one Gmail sync run, optionally as
a JSON-lines file per run.
"""

import json
import logging
import logging.handlers
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

LOGS_DIR = Path(__file__).parent.parent / "logs"

LOG_LEVELS = {
    "development": logging.DEBUG,
    "production": logging.INFO,
    "testing": logging.WARNING,
}

# SDK loggers that are chatty at DEBUG/INFO
QUIET_LOGGERS = (
    "urllib3",
    "httpx",
    "httpcore",
    "werkzeug",
    "googleapiclient",
    "google_auth_oauthlib",
    "anthropic",
)

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
MAX_CONSOLE_MESSAGE = 500


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra={"data": {...}}`` is carried along."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": _now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Plain console lines; email bodies and prompts get cut short."""

    def __init__(self):
        super().__init__(CONSOLE_FORMAT, datefmt="%H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        if len(record.message) > MAX_CONSOLE_MESSAGE:
            record.message = record.message[:MAX_CONSOLE_MESSAGE] + "..."
        return super().formatMessage(record)


def setup_logging(
    level: Optional[str] = None,
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Log level name; defaults by FLASK_ENV
        json_logs: Emit JSON lines on the console
        log_file: Rotating log file path; production defaults to logs/applyops.log
    """
    env = os.environ.get("FLASK_ENV", "development")
    log_level = getattr(logging, level.upper(), logging.INFO) if level else LOG_LEVELS.get(env, logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else ConsoleFormatter())
    root.addHandler(console)

    if log_file is None and env == "production":
        LOGS_DIR.mkdir(exist_ok=True)
        log_file = str(LOGS_DIR / "applyops.log")

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class SyncRunLog:
    """
    Entries for one Gmail sync run.

    Every entry goes to the ``applyops.sync`` logger. When ``log_dir`` is
    given the entries are also appended to
    ``<log_dir>/sync_<user>_<started>_<run>.jsonl``, which makes a single
    run easy to inspect after the fact.
    """

    def __init__(self, user_id: str, log_dir: Optional[Path] = None):
        self.user_id = user_id
        self.run_id = uuid.uuid4().hex[:8]
        self.started_at = _now()
        self.entries: List[Dict[str, Any]] = []
        self.logger = get_logger("applyops.sync")

        self.log_file: Optional[Path] = None
        if log_dir is not None:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            stamp = self.started_at.strftime("%Y%m%d_%H%M%S")
            self.log_file = log_dir / f"sync_{user_id}_{stamp}_{self.run_id}.jsonl"

    def log(self, level: int, message: str, **data) -> None:
        entry = {
            "ts": _now().isoformat(),
            "run": self.run_id,
            "user_id": self.user_id,
            "level": logging.getLevelName(level),
            "message": message,
            **data,
        }
        self.entries.append(entry)
        self.logger.log(level, f"[sync {self.run_id}] {message}", extra={"data": data})

        if self.log_file is not None:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, default=str) + "\n")

    def info(self, message: str, **data) -> None:
        self.log(logging.INFO, message, **data)

    def warning(self, message: str, **data) -> None:
        self.log(logging.WARNING, message, **data)

    def error(self, message: str, **data) -> None:
        self.log(logging.ERROR, message, **data)

    def finish(self, message: str, **data) -> None:
        self.log(logging.INFO, message, finished=True, **data)

    def summary(self) -> Dict[str, Any]:
        levels = [entry["level"] for entry in self.entries]
        return {
            "run": self.run_id,
            "user_id": self.user_id,
            "started_at": self.started_at.isoformat(),
            "duration_seconds": round((_now() - self.started_at).total_seconds(), 2),
            "entries": len(self.entries),
            "errors": levels.count("ERROR"),
            "warnings": levels.count("WARNING"),
            "log_file": str(self.log_file) if self.log_file else None,
        }
