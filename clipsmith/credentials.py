"""Credential stores for the cloud API key.

The key is read once when the engine is built and can be replaced explicitly
afterwards; it is never cached anywhere beyond the process. Every store
treats "unavailable" the same as "absent": load() returns None and logs.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from clipsmith.config.schema import Config
from clipsmith.core.constants import get_credentials_path
from clipsmith.core.interfaces import CredentialStore
from clipsmith.core.secure_io import secure_mkdir, secure_write_atomic
from clipsmith.provider import apply_provider_defaults

logger = logging.getLogger(__name__)

# Entry name used in the credentials file
DEFAULT_ENTRY = "openai_api_key"


class EnvCredentialStore:
    """Reads the key from an environment variable."""

    def __init__(self, variable: str) -> None:
        self._variable = variable

    def load(self) -> str | None:
        if not self._variable:
            return None
        value = os.environ.get(self._variable, "").strip()
        if not value:
            logger.debug("No API key in $%s", self._variable)
            return None
        return value


class StaticCredentialStore:
    """Holds a key supplied directly (command line, tests)."""

    def __init__(self, secret: str | None) -> None:
        self._secret = secret or None

    def load(self) -> str | None:
        return self._secret


class FileCredentialStore:
    """Reads and writes keys in an owner-only JSON file.

    Example file:
        {"openai_api_key": "sk-..."}
    """

    def __init__(self, path: Path | None = None, entry: str = DEFAULT_ENTRY) -> None:
        self._path = path or get_credentials_path()
        self._entry = entry

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> str | None:
        try:
            if not self._path.is_file():
                return None
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Credential store unavailable (%s): %s", self._path, e)
            return None

        value = data.get(self._entry) if isinstance(data, dict) else None
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    def save(self, secret: str) -> None:
        """Store secret under the entry, keeping other entries.

        Raises:
            OSError: If the file cannot be written.
        """
        data: dict[str, str] = {}
        if self._path.is_file():
            try:
                loaded = json.loads(self._path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    data = loaded
            except ValueError:
                logger.warning("Overwriting unreadable credential file %s", self._path)
        data[self._entry] = secret
        secure_mkdir(self._path.parent)
        secure_write_atomic(self._path, json.dumps(data, indent=2))


def create_credential_store(config: Config) -> CredentialStore:
    """Build the credential store selected by config.credentials."""
    if config.credentials == "file":
        return FileCredentialStore()
    return EnvCredentialStore(apply_provider_defaults(config.cloud.provider).api_key_env)
