"""
Utility helpers for filesystem paths, storage URLs and calendar dates.

Centralizes logic for resolving the project data directory and blob store
connection string, plus the local-date helpers every analysis module shares.
"""

from __future__ import annotations

import logging
import math
import os
import random
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from sqlalchemy.engine import make_url

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent
_DEFAULT_DATA_DIR_NAME = "data"
_DEFAULT_DB_FILENAME = "expenses.db"

DATE_FORMAT = "%Y-%m-%d"
# Appended to stored dates so they parse as local midnight, not UTC.
LOCAL_MIDNIGHT_SUFFIX = "T00:00:00"


def prompt_user_choice(
    message: str,
    options: Dict[str, str],
    default: str,
    *,
    input_func: Optional[Callable[[str], str]] = None
) -> str:
    """
    Display an interactive prompt and return the selected option key.

    Args:
        message: Prompt message shown to the user.
        options: Mapping of option keys to human-readable descriptions.
        default: Option key to return when no interactive input is available.
        input_func: Optional callable to replace `input` (useful for testing).

    Returns:
        Selected option key from the provided mapping.
    """
    if not options:
        raise ValueError("prompt_user_choice requires at least one option.")

    if default not in options:
        raise ValueError(f"Default option '{default}' not present in options: {list(options)}")

    # Prefer non-blocking behavior when stdin is not interactive
    if input_func is None:
        if not sys.stdin or not sys.stdin.isatty():
            logger.debug("Non-interactive environment detected; using default option '%s'.", default)
            return default
        input_func = input  # type: ignore[assignment]

    prompt_suffix = " / ".join(f"{key}={desc}" for key, desc in options.items())
    while True:
        user_input = input_func(f"{message} ({prompt_suffix}) [{default}]: ").strip().lower()
        if not user_input:
            return default
        if user_input in options:
            return user_input
        logger.warning("Invalid choice '%s'. Valid options: %s", user_input, list(options))


def get_project_root() -> Path:
    """Return the repository root directory."""
    return _PROJECT_ROOT


def _coerce_path(path_value: str | Path, *, allow_relative: bool = True) -> Path:
    """
    Convert a string/Path into an absolute project-root based Path.

    Args:
        path_value: Candidate filesystem path.
        allow_relative: If False, value must already be absolute.

    Returns:
        Absolute Path instance.
    """
    path = Path(path_value)
    if path.is_absolute() or not allow_relative:
        return path
    return get_project_root() / path


def get_data_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """
    Resolve the data directory path without creating it.

    Args:
        config: Optional configuration dictionary.

    Returns:
        Path to the data directory (may not exist yet).
    """
    storage_config = (config or {}).get("storage") or {}
    data_dir_raw = storage_config.get("data_dir") or _DEFAULT_DATA_DIR_NAME
    return _coerce_path(data_dir_raw)


def ensure_data_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """
    Ensure the data directory exists and return its Path.

    Args:
        config: Optional configuration dictionary.

    Returns:
        Absolute Path to the ensured data directory.
    """
    data_dir = get_data_dir(config)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Failed to create data directory '%s': %s", data_dir, exc)
        raise
    return data_dir


def _ensure_sqlite_parent_dir(connection_string: str) -> None:
    """
    Ensure the parent directory for a SQLite database exists.

    Args:
        connection_string: SQLAlchemy connection string.
    """
    try:
        url = make_url(connection_string)
    except Exception as exc:  # pragma: no cover - logging only
        logger.debug("Unable to parse connection string '%s': %s", connection_string, exc)
        return

    if not url.drivername.startswith("sqlite"):
        return

    database = url.database
    if not database or database == ":memory:":
        return

    db_path = Path(database)
    if not db_path.is_absolute():
        db_path = get_project_root() / db_path

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Failed to create SQLite parent directory '%s': %s", db_path.parent, exc)
        raise


def resolve_connection_string(config: Optional[Dict[str, Any]] = None) -> str:
    """
    Resolve the blob store connection string using env var, config, or defaults.

    Order of precedence:
        1. DB_CONNECTION_STRING environment variable
        2. config['storage']['connection_string']
        3. Constructed from data_dir/path defaults

    Args:
        config: Optional configuration dictionary.

    Returns:
        SQLAlchemy connection string.
    """
    config = config or {}
    env_conn = os.environ.get("DB_CONNECTION_STRING")
    if env_conn:
        _ensure_sqlite_parent_dir(env_conn)
        return env_conn

    storage_config = config.get("storage") or {}
    config_conn = storage_config.get("connection_string")
    if config_conn:
        _ensure_sqlite_parent_dir(config_conn)
        return config_conn

    data_dir = ensure_data_dir(config)
    db_filename = storage_config.get("path") or _DEFAULT_DB_FILENAME
    db_path = Path(db_filename)
    if not db_path.is_absolute():
        db_path = data_dir / db_path
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)

    return f"sqlite:///{db_path.as_posix()}"


def resolve_log_path(log_path: str) -> Path:
    """
    Convert a log file path to an absolute path under the project root when needed.

    Args:
        log_path: Configured log file path (relative or absolute).

    Returns:
        Absolute Path for logging output.
    """
    resolved = _coerce_path(log_path)
    if resolved.parent != resolved:
        resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved


def generate_expense_id() -> str:
    """
    Build an expense id from the current epoch milliseconds plus a 0-999 suffix.

    Two ids created in the same millisecond collide when the random draw
    repeats; acceptable for a single local user, not for bulk imports.
    """
    return f"{int(time.time() * 1000)}{random.randint(0, 999)}"


def today_string(now: Optional[datetime] = None) -> str:
    """Return the local calendar date as YYYY-MM-DD."""
    now = now or datetime.now()
    return now.strftime(DATE_FORMAT)


def current_time_string(now: Optional[datetime] = None) -> str:
    """Return the local time of day as a short human-readable string (e.g. 09:45 AM)."""
    now = now or datetime.now()
    return now.strftime("%I:%M %p")


def parse_local_date(value: str) -> datetime:
    """
    Parse a stored YYYY-MM-DD date as local midnight of that calendar day.

    Args:
        value: Date string as stored on an expense

    Returns:
        Naive datetime at 00:00 local time

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    return datetime.fromisoformat(f"{value}{LOCAL_MIDNIGHT_SUFFIX}")


def format_date_label(value: str) -> str:
    """Format a stored date as a section label such as '25 Mar 2024'."""
    parsed = parse_local_date(value)
    return f"{parsed.day} {parsed.strftime('%b %Y')}"


def month_key(value: str) -> str:
    """Return the YYYY-MM prefix of a stored date."""
    return value[:7]


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves rounded up.

    Python's round() uses banker's rounding, which would turn 12.5 into 12.
    """
    return int(math.floor(value + 0.5))


def format_number(amount: float) -> str:
    """Format an amount without a trailing '.0' for whole numbers (1100.0 -> '1100')."""
    if amount == int(amount):
        return str(int(amount))
    return f"{amount:.2f}"
