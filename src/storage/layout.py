# src/storage/layout.py - v1
"""Project state directory structure.

Defines path conventions for every persisted document under the state
directory (``.avc`` by default).
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_STATE_DIR = ".avc"

HISTORY_FILE = "ceremonies-history.json"
USAGE_FILE = "token-history.json"
PROFILES_FILE = "verification-profiles.json"
LOGS_DIR = "logs"

PROGRESS_SUFFIX = "-progress.json"


def history_path(state_dir: Path) -> Path:
    """Return the ceremony history ledger path."""
    return state_dir / HISTORY_FILE


def usage_path(state_dir: Path) -> Path:
    """Return the token usage ledger path."""
    return state_dir / USAGE_FILE


def progress_path(state_dir: Path, ceremony: str) -> Path:
    """Return the progress checkpoint path for one ceremony kind."""
    return state_dir / f"{ceremony}{PROGRESS_SUFFIX}"


def profiles_path(state_dir: Path) -> Path:
    """Return the verification rule profiles path."""
    return state_dir / PROFILES_FILE


def logs_dir(state_dir: Path) -> Path:
    """Return the directory holding verification reports."""
    return state_dir / LOGS_DIR
