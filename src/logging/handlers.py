# src/logging/handlers.py - v1
"""Ceremony log file: size-capped, with one ``.old`` backup by default.

When the active log passes the size cap it is moved to ``<name>.old``
(replacing any earlier backup) and a fresh file is started. Larger
retention values fall back to numbered backups (``<name>.1``, ``<name>.2``).
"""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

OLD_SUFFIX = ".old"

_SIZE_UNITS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}


def _parse_size(size_str: str) -> int:
    """Parse a size like '10MB' (KB, MB or GB, any case) into bytes."""
    match = re.match(r"^(\d+)\s*(KB|MB|GB)$", size_str.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2).upper()]


def _old_backup_name(default_name: str) -> str:
    # RotatingFileHandler names the first backup "<base>.1".
    base, _, _ = default_name.rpartition(".")
    return base + OLD_SUFFIX


def backup_path(log_file: str | Path) -> Path:
    """Path of the single rolled-over backup for ``log_file``."""
    path = Path(log_file).expanduser()
    return path.with_name(path.name + OLD_SUFFIX)


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 1,
) -> RotatingFileHandler:
    """Create the file handler for the ceremony log.

    Args:
        log_file: Path to the log file (``~`` is expanded).
        rotation: Size cap before the file rolls over (e.g. "10MB").
        retention: Backups to keep; 1 keeps a single ``.old`` file.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=_parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
    if retention == 1:
        handler.namer = _old_backup_name
    return handler


def read_recent_lines(log_file: str | Path, lines: int = 50) -> list[str]:
    """Last ``lines`` non-blank lines of the active log, oldest first."""
    path = Path(log_file).expanduser()
    if not path.exists():
        return []
    kept = [line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
    return kept[-lines:] if lines > 0 else []


def clear_log_files(log_file: str | Path) -> None:
    """Delete the active log and its ``.old`` backup if present."""
    for path in (Path(log_file).expanduser(), backup_path(log_file)):
        path.unlink(missing_ok=True)
