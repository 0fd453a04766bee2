"""Unified logging configuration for the tracer CLI and batch runs.

Provides consistent logging across generate, render and dump commands:
    - Console and file handlers with optional rotation
    - JSON output mode for log ingestion
    - Contextual fields (app, frame, command)
    - Warning capture (Python warnings → logging)
    - Uncaught exception logging

Public API:
    setup_logging(log_level="INFO", context={"app": "contour"})
    get_logger(name)
    push_context(frame="images12.png")
    pop_context(keys=["frame"])
    install_excepthook()

Format examples:
    Human: 2026-03-02T09:14:07.512Z | INFO     | app=contour frame=images12.png | Traced 214 segments
    JSON: {"t": "2026-03-02T09:14:07.512000+00:00", "lvl": "INFO", "frame": "images12.png", "msg": "..."}

Context uses contextvars so a frame label set by the batch orchestrator
appears on every record emitted while that frame is processed.
Idempotent: repeated setup_logging() calls replace the handlers installed
by the previous call and leave any other root handlers alone.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

_context_var: contextvars.ContextVar = contextvars.ContextVar('contour_log_context', default={})

_installed_handlers: List[logging.Handler] = []

_LEVEL_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}
_RESET = '\033[0m'


class ContextFormatter(logging.Formatter):
    """Formatter that appends contextual fields to every record.

    Parameters
    ----------
    fmt_mode : str
        "human" (pipe-separated text) or "json" (one object per line)
    use_color : bool
        Colorize the level name; only honoured when stderr is a TTY
    """

    def __init__(self, fmt_mode: str = "human", use_color: bool = True):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown format mode: {fmt_mode}")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        context = _context_var.get()
        if self.fmt_mode == "json":
            return self._json_line(record, ts, context)
        return self._human_line(record, ts, context)

    def _json_line(self, record: logging.LogRecord, ts: datetime, context: Dict[str, Any]) -> str:
        payload = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
            **context,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            payload['exc'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)

    def _human_line(self, record: logging.LogRecord, ts: datetime, context: Dict[str, Any]) -> str:
        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{_LEVEL_COLORS.get(record.levelname, '')}{level}{_RESET}"

        fields = [ts.strftime('%Y-%m-%dT%H:%M:%S.') + f"{ts.microsecond // 1000:03d}Z", level]
        if context:
            fields.append(' '.join(f"{k}={v}" for k, v in context.items()))
        fields.append(record.getMessage())

        line = ' | '.join(fields)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Configure the root logger (idempotent).

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : Union[str, Path], optional
        Also log to this file (parent directories are created)
    json : bool
        JSON lines in the log file instead of text, default False
    color : bool
        ANSI colors on the console, default True
    to_stderr : bool
        Log to stderr, default True
    rotate : dict, optional
        File rotation:
        - {"mode": "size", "max_bytes": 10_000_000, "backup_count": 5}
        - {"mode": "time", "when": "D", "interval": 1, "backup_count": 7}
    capture_warnings : bool
        Route Python warnings into logging, default True
    context : dict, optional
        Initial contextual fields (e.g., {"app": "contour"})

    Returns
    -------
    dict
        {"handlers": [...]} as installed on the root logger

    Raises
    ------
    ValueError
        If ``log_level`` or the rotation mode is unknown

    Examples
    --------
    >>> setup_logging(log_level="DEBUG", log_file="outputs/logs/generate.log",
    ...               context={"app": "contour"})
    """
    global _installed_handlers

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", use_color=color))
        handlers.append(console)
    if log_file:
        handlers.append(_file_handler(Path(log_file), rotate, json))

    reset_logging()
    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)
    _installed_handlers = handlers

    if context:
        push_context(**context)
    if capture_warnings:
        route_warnings()

    return {'handlers': handlers}


def _file_handler(path: Path, rotate: Optional[Dict[str, Any]], json_format: bool) -> logging.Handler:
    """File handler, rotating by size or time when ``rotate`` is given."""
    mode = rotate.get('mode', 'size') if rotate else None
    if mode not in (None, 'size', 'time'):
        raise ValueError(f"Unknown rotation mode: {mode}. Use 'size' or 'time'.")

    path.parent.mkdir(parents=True, exist_ok=True)
    if mode == 'size':
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=rotate.get('max_bytes', 10_000_000),
            backupCount=rotate.get('backup_count', 5),
        )
    elif mode == 'time':
        handler = logging.handlers.TimedRotatingFileHandler(
            path,
            when=rotate.get('when', 'D'),
            interval=rotate.get('interval', 1),
            backupCount=rotate.get('backup_count', 7),
        )
    else:
        handler = logging.FileHandler(path)

    handler.setFormatter(ContextFormatter("json" if json_format else "human", use_color=False))
    return handler


def reset_logging() -> None:
    """Remove and close the handlers installed by setup_logging()."""
    global _installed_handlers

    root = logging.getLogger()
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers = []


def get_logger(name: str) -> logging.Logger:
    """Logger by name (typically ``__name__``)."""
    return logging.getLogger(name)


def push_context(**fields: Any) -> None:
    """Add contextual fields to all subsequent log records.

    Examples
    --------
    >>> push_context(app="contour")
    >>> push_context(frame="images12.png")
    >>> logger.info("Traced")  # → "... | app=contour frame=images12.png | Traced"
    """
    _context_var.set({**_context_var.get(), **fields})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove the given contextual fields, or all of them when ``keys`` is None."""
    if keys is None:
        _context_var.set({})
        return
    _context_var.set({k: v for k, v in _context_var.get().items() if k not in keys})


def get_context() -> Dict[str, Any]:
    """Copy of the active contextual fields."""
    return dict(_context_var.get())


def install_excepthook() -> None:
    """Log uncaught exceptions at CRITICAL before the interpreter exits.

    KeyboardInterrupt goes straight to the default hook.
    """
    def _log_uncaught(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logging.getLogger(__name__).critical(
            "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = _log_uncaught


def route_warnings() -> None:
    """Route Python warnings to the ``py.warnings`` logger."""
    logging.captureWarnings(True)
    logging.getLogger('py.warnings').setLevel(logging.WARNING)
