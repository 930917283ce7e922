from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_TAGS = {
    logging.DEBUG: "[debug]",
    logging.INFO: "[info]",
    logging.WARNING: "[warn]",
    logging.ERROR: "[error]",
    logging.CRITICAL: "[crit]",
}


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    """Brief: Map a config level name (debug, info, warn, ...) to a logging level."""

    return _LEVELS.get(str(name or "").strip().lower(), default)


class TaggedFormatter(logging.Formatter):
    """Renders ``<UTC time> [level] logger: message``.

    Syslog stamps its own time, so the syslog handler uses
    ``TaggedFormatter(timestamps=False)``.
    """

    def __init__(self, timestamps: bool = True) -> None:
        fmt = "%(level_tag)s %(name)s: %(message)s"
        super().__init__(fmt="%(asctime)s " + fmt if timestamps else fmt)

    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )

    def format(self, record):
        record.level_tag = _TAGS.get(record.levelno, f"[lvl{record.levelno}]")
        return super().format(record)


def _file_handler(file_path: Any) -> Optional[logging.Handler]:
    if not isinstance(file_path, str) or not file_path.strip():
        return None
    path = os.path.abspath(os.path.expanduser(file_path.strip()))
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _syslog_handler(syslog_cfg: Any) -> logging.Handler:
    """Brief: Build a SysLogHandler from ``True`` or {address, facility}.

    Inputs:
      - syslog_cfg: True for /dev/log with facility USER, or a mapping where
        address is a socket path or [host, port].

    Outputs:
      - logging.handlers.SysLogHandler
    """

    handler_cls = logging.handlers.SysLogHandler
    opts = syslog_cfg if isinstance(syslog_cfg, dict) else {}
    address = opts.get("address", "/dev/log")
    if isinstance(address, list):
        address = tuple(address)
    facility = getattr(
        handler_cls,
        f"LOG_{str(opts.get('facility', 'USER')).upper()}",
        handler_cls.LOG_USER,
    )
    return handler_cls(address=address, facility=facility)


def init_logging(cfg: Optional[Dict[str, Any]], level_override: Optional[str] = None) -> None:
    """
    Initialize the root logger from the ``logging`` config section.

    Args:
        cfg: Logging configuration dictionary with optional keys:
            - level: debug, info, warn, error, crit (default: info)
            - stderr: log to stderr (default: True)
            - file: path of a log file to append to
            - syslog: True, or {address, facility}
        level_override: Level name from the command line; wins over cfg['level'].

    Replaces any handlers already on the root logger. A syslog socket that
    cannot be opened is logged and skipped.
    """
    cfg = cfg or {}

    root = logging.getLogger()
    root.setLevel(level_from_name(level_override or cfg.get("level", "info")))
    for h in list(root.handlers):
        root.removeHandler(h)

    handlers: List[logging.Handler] = []
    if cfg.get("stderr", True):
        handlers.append(logging.StreamHandler(sys.stderr))
    file_handler = _file_handler(cfg.get("file"))
    if file_handler is not None:
        handlers.append(file_handler)
    for h in handlers:
        h.setFormatter(TaggedFormatter())
        root.addHandler(h)

    if cfg.get("syslog"):
        try:
            syslog_handler = _syslog_handler(cfg["syslog"])
        except (OSError, ValueError) as e:
            root.warning("Failed to configure syslog: %s", e)
        else:
            syslog_handler.setFormatter(TaggedFormatter(timestamps=False))
            root.addHandler(syslog_handler)

    logging.captureWarnings(True)
