import json
import logging
import os
import sys
import typing as _t
from typing import Any, Dict, Optional

# Structured fields picked up from `extra=` and rendered by both formatters
_EXTRA_FIELDS = (
    "path",
    "event",
    "account_id",
    "game_id",
    "count",
    "duration_ms",
    "error",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                payload[key] = val
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """Human-friendly, colorized formatter that uses structured fields when present."""

    RESET = "\033[0m"
    DIM = "\033[90m"
    COLORS = {
        "DEBUG": "\033[36m",   # cyan
        "INFO": "\033[32m",    # green
        "WARNING": "\033[33m", # yellow
        "ERROR": "\033[31m",   # red
        "CRITICAL": "\033[35m",# magenta
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{self.RESET}"

    def _fields_str(self, record: logging.LogRecord) -> Optional[str]:
        fields: _t.List[str] = []
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is None:
                continue
            if key == "duration_ms":
                fields.append(f"{val}ms")
            else:
                fields.append(f"{key}={val}")
        return "[" + " ".join(fields) + "]" if fields else None

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        parts: _t.List[str] = [
            self._color(level, self.COLORS.get(level, "")),
            self.formatTime(record, datefmt="%H:%M:%S"),
            self._color(record.name, "\033[34m"),
        ]
        msg = record.getMessage()
        if msg:
            parts.extend(["-", msg])
        fields = self._fields_str(record)
        if fields:
            parts.append(self._color(fields, self.DIM))
        if record.exc_info:
            parts.append("\n" + self.formatException(record.exc_info))
        return " ".join(parts)


def _isatty(stream) -> bool:
    try:
        return hasattr(stream, "isatty") and stream.isatty()
    except Exception:
        return False


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure the root logger.

    - LOG_FORMAT=pretty forces the colorized format
    - LOG_FORMAT=json forces JSON
    - otherwise: pretty if stdout is a TTY, else JSON
    - LOG_COLOR=0 disables ANSI colors in pretty mode
    """
    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:
        root.removeHandler(h)

    fmt_env = os.getenv("LOG_FORMAT", "").lower()
    color_env = os.getenv("LOG_COLOR", "1").lower()
    use_pretty = (fmt_env == "pretty") or (fmt_env == "" and _isatty(sys.stdout))
    use_color = use_pretty and color_env not in ("0", "false", "no")

    handler = logging.StreamHandler(sys.stdout)
    if use_pretty:
        handler.setFormatter(ColorFormatter(use_color=use_color))
    else:
        handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    # SQLAlchemy echoes through its own loggers; keep them quiet unless debugging
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
    return root


def get_logger(name: str = "guessdb") -> logging.Logger:
    return logging.getLogger(name)
