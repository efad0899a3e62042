# src/hookrunner/adapters/fs/probe.py
from __future__ import annotations
import os
import stat
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class FileInfo:
    path: Path
    exists: bool = False
    is_file: bool = False
    is_dir: bool = False


def probe(path: str | os.PathLike[str]) -> FileInfo:
    """Stat ``path`` without ever raising.

    Missing files, permission errors, broken symlinks and malformed paths all
    come back as "nothing here" so callers can treat them the same way.
    """
    p = Path(path)
    try:
        st = os.stat(p)
    except (OSError, ValueError):
        return FileInfo(path=p)
    return FileInfo(path=p, exists=True, is_file=stat.S_ISREG(st.st_mode), is_dir=stat.S_ISDIR(st.st_mode))
