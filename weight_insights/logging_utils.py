from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ENGINE_LOGGER_NAME = "WeightInsights.Engine"
LOG_FILENAME = "weight-insights-engine.log"
_HANDLER_MARKER = "_weight_insights_handler"
_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
# Engine logs are small per commit and render; one file holds several sessions.
LOG_MAX_BYTES = 256 * 1024
_TRUTHY = {"1", "true", "yes", "on"}


def resolve_logs_dir(log_dir_name: str = "weight-insights") -> Path:
    """
    Resolve the directory to store engine logs.

    Strategy:
    - Use WEIGHT_INSIGHTS_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    candidates = []

    env_override = os.environ.get("WEIGHT_INSIGHTS_LOG_DIR")
    if env_override:
        try:
            candidates.append(Path(env_override).expanduser())
        except Exception:
            pass

    state_home = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    cache_home = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    candidates.append(state_home / log_dir_name / "logs")
    candidates.append(cache_home / log_dir_name / "logs")
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except Exception:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback
    """Rotating handler for LOG_FILENAME; ``retention`` counts the live file plus its backups."""

def build_engine_file_handler(log_dir: Path, *, retention: int) -> RotatingFileHandler:
    """Rotating handler for LOG_FILENAME; ``retention`" . "` counts the live file plus its backups."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=LOG_MAX_BYTES,
        backupCount=max(1, retention) - 1,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)
    return handler


def env_flag(name: str) -> bool:
    value = os.environ.get(name)
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


def configure_engine_logger(
    *,
    log_dir: Optional[Path] = None,
    retention: int = 5,
    debug_enabled: Optional[bool] = None,
) -> logging.Logger:
    """Attach the rotating file handler to the engine logger once and set its level."""
    logger = logging.getLogger(ENGINE_LOGGER_NAME)
    if debug_enabled is None:
        debug_enabled = env_flag("WEIGHT_INSIGHTS_DEBUG")
    logger.setLevel(logging.DEBUG if debug_enabled else logging.INFO)
    logger.propagate = env_flag("WEIGHT_INSIGHTS_PROPAGATE_LOGS")
    if any(getattr(handler, _HANDLER_MARKER, False) for handler in logger.handlers):
        return logger
    logger.addHandler(
        build_engine_file_handler(
            log_dir if log_dir is not None else resolve_logs_dir(),
            retention=retention,
        )
    )
    return logger
