"""Filesystem primitives used to commit generated artifacts.

Both functions are safe to call repeatedly: directories are created with
their parents if missing, and files are replaced atomically so a crashed
run never leaves a half-written module behind.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from sdkraft.exceptions import FileSystemError

FILE_MODE = 0o644


def create_directory(path: Union[str, Path]) -> Path:
    """Create *path* and any missing parents. Existing directories are fine.

    Raises:
        FileSystemError: If the directory cannot be created.
    """
    target = Path(path)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileSystemError(f"Cannot create directory {target}: {exc}") from exc
    return target


def write_file(path: Union[str, Path], data: Union[str, bytes]) -> Path:
    """Create or overwrite *path* atomically with mode ``0o644``.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.

    Raises:
        FileSystemError: If the file cannot be written.
    """
    target = Path(path)
    payload = data.encode("utf-8") if isinstance(data, str) else data
    create_directory(target.parent)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(payload)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.chmod(tmp_path, FILE_MODE)
        os.replace(tmp_path, target)
    except OSError as exc:
        if fd is not None:
            fd.close()
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise FileSystemError(f"Cannot write {target}: {exc}") from exc
    return target
