"""Core constants and paths for clipsmith.

Single source of truth for global paths. Modules import from here instead of
hardcoding `Path.home() / ".clipsmith"`.
"""

from pathlib import Path

CLIPSMITH_DIR_NAME = ".clipsmith"

# HTTP-style status codes carried by CompletionResult
STATUS_OK = 200
STATUS_LOCAL_FAILURE = -1


def get_clipsmith_dir() -> Path:
    """Get ~/.clipsmith (global config directory)."""
    return Path.home() / CLIPSMITH_DIR_NAME


def get_credentials_path() -> Path:
    """Get the path of the file-backed credential store."""
    return get_clipsmith_dir() / "credentials.json"
