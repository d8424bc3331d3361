"""
Filesystem helpers shared across pipeline tasks.
"""

from __future__ import annotations

import fnmatch
import hashlib
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from filelock import FileLock, Timeout

from ..errors import AssetflowError

logger = logging.getLogger(__name__)


def ensure_directory(path: Path | str) -> Path:
    """
    Ensure a directory exists, returning the resolved Path.
    """
    resolved = Path(path).expanduser().resolve()
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def _ensure_parent(target: Path) -> None:
    """Ensure the parent directory for target exists."""
    if target.parent and not target.parent.exists():
        target.parent.mkdir(parents=True, exist_ok=True)


def is_relative_to(path: Path, base: Path) -> bool:
    """Return True if path is under base."""
    try:
        path.relative_to(base)
    except ValueError:
        return False
    return True


def lock_path_for(target: Path | str) -> Path:
    """Location of the lock file guarding target (kept beside it, never inside)."""
    resolved = Path(target).expanduser().resolve()
    return resolved.parent / f".{resolved.name}.lock"


@contextmanager
def directory_lock(path: Path | str, *, timeout: float = -1):
    """
    Hold an inter-process lock for a directory tree.

    The lock file sits next to the directory so removing the tree does not
    remove the lock.
    """
    lock_path = lock_path_for(path)
    _ensure_parent(lock_path)
    try:
        with FileLock(str(lock_path), timeout=timeout):
            yield
    except Timeout as exc:
        raise AssetflowError(f"{path} is locked by another assetflow process ({lock_path})") from exc


@contextmanager
def _staged(target: Path) -> Iterator[Path]:
    """
    Yield a temp path beside target; it replaces target once the block exits cleanly.

    Readers (the dev server, a browser) never see a half-written file.
    """
    _ensure_parent(target)
    fd, staging = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    os.close(fd)
    staging_path = Path(staging)
    try:
        yield staging_path
        os.replace(staging_path, target)
    finally:
        staging_path.unlink(missing_ok=True)


def write_text_file(path: Path | str, content: str, encoding: str = "utf-8") -> Path:
    """
    Write text to a file atomically, creating parent directories as needed.
    """
    target = Path(path).expanduser().resolve()
    with _staged(target) as staging:
        with staging.open("wb") as handle:
            handle.write(content.encode(encoding))
            handle.flush()
            os.fsync(handle.fileno())
    return target


def copy_file(source: Path | str, destination: Path | str) -> Path:
    """
    Copy a file atomically, preserving its modification time.
    """
    target = Path(destination).expanduser().resolve()
    with _staged(target) as staging:
        shutil.copy2(Path(source), staging)
    return target


def remove_tree(path: Path | str) -> bool:
    """
    Recursively delete a directory tree.

    Returns False when nothing existed. Other failures propagate.
    """
    target = Path(path).expanduser().resolve()
    if not target.exists() and not target.is_symlink():
        return False
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    else:
        target.unlink()
    return True


def file_digest(path: Path | str) -> str:
    """sha256 of a file's content."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def iter_files(
    root: Path | str,
    *,
    exclude_dirs: Iterable[str] = (),
    exclude_patterns: Iterable[str] = (),
    suffixes: Optional[Iterable[str]] = None,
) -> Iterator[Path]:
    """
    Yield files under root in sorted order.

    Args:
        root: Directory to walk. A missing directory yields nothing.
        exclude_dirs: Directory names pruned at any depth.
        exclude_patterns: Globs matched against the path relative to root.
        suffixes: Lower-case extensions (without dot) to keep; None keeps all.
    """
    base = Path(root)
    if not base.is_dir():
        return
    pruned = set(exclude_dirs)
    patterns = list(exclude_patterns)
    wanted = {s.lower() for s in suffixes} if suffixes is not None else None
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames[:] = sorted(d for d in dirnames if d not in pruned)
        for name in sorted(filenames):
            candidate = Path(dirpath) / name
            if wanted is not None and candidate.suffix.lower().lstrip(".") not in wanted:
                continue
            relative = candidate.relative_to(base).as_posix()
            if any(fnmatch.fnmatch(relative, pattern) for pattern in patterns):
                continue
            yield candidate
