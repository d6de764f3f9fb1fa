"""Atomic file replacement shared by the object store, the index and HEAD."""

import os
from pathlib import Path


def write_atomic(path: Path, data: bytes) -> None:
    """Replace a file's content so readers never observe a partial write."""
    tmp_path = path.with_name(f'.{path.name}.{os.getpid()}.tmp')
    try:
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
