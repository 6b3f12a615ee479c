"""Secure file I/O utilities for clipsmith.

Atomic file writes with owner-only permissions, used for the credential file.
"""

import os
import stat
from pathlib import Path

# Owner only
SECURE_DIR_MODE: int = stat.S_IRWXU  # 0o700
SECURE_FILE_MODE: int = stat.S_IRUSR | stat.S_IWUSR  # 0o600


def secure_mkdir(path: Path) -> None:
    """Create directory (and parents) and ensure it is owner-only (0o700)."""
    path.mkdir(mode=SECURE_DIR_MODE, parents=True, exist_ok=True)
    # Always ensure correct permissions (handles existing dirs and umask)
    os.chmod(path, SECURE_DIR_MODE)


def secure_write_atomic(path: Path, content: str | bytes) -> None:
    """Atomically write to a file (new or existing) with secure permissions.

    Writes to a sibling temp file created with 0o600 and renames it over the
    target, so readers never observe a partially written file.

    Args:
        path: Path to the file to write.
        content: Content to write (str or bytes).
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        fd = os.open(
            str(temp_path),
            os.O_CREAT | os.O_TRUNC | os.O_WRONLY,
            SECURE_FILE_MODE,
        )
        try:
            os.write(fd, content)
            os.fsync(fd)
        finally:
            os.close(fd)

        os.replace(temp_path, path)

        # Some filesystems do not preserve the mode across replace
        os.chmod(path, SECURE_FILE_MODE)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
