"""Dependency caches for build tracks.

Caches are keyed by ``<os>-<prefix>-<hash of lock files>``. On an exact
miss the newest entry sharing the ``<os>-<prefix>-`` prefix is restored
instead (a stale but usually useful cache). Caching is purely an
optimization: every failure is logged and swallowed.
"""

from __future__ import annotations

import hashlib
import io
import json
import platform
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pipewarden.core.logging import get_logger

LOGGER = get_logger(__name__)

_MANIFEST = "manifest.json"


@dataclass(frozen=True)
class CacheKey:
    """Exact cache key plus the prefix used for stale fallback."""

    key: str
    restore_prefix: str


def hash_files(root: Path, pattern: str) -> str:
    """Hash all files under ``root`` matching a glob pattern.

    Files are hashed in sorted order by relative path. Returns an empty
    string when nothing matches.
    """
    matches = sorted(p for p in root.glob(pattern) if p.is_file())
    if not matches:
        return ""
    digest = hashlib.sha256()
    for path in matches:
        digest.update(str(path.relative_to(root)).replace("\\", "/").encode("utf-8"))
        digest.update(b"\0")
        digest.update(path.read_bytes())
    return digest.hexdigest()


def _resolve_cache_path(project_root: Path, entry: str) -> Path:
    path = Path(entry).expanduser()
    if not path.is_absolute():
        path = project_root / path
    return path


def _safe_extract(tar: tarfile.TarFile, destination: Path) -> None:
    if hasattr(tarfile, "data_filter"):
        tar.extractall(path=destination, filter="data")
        return
    root = destination.resolve()
    for member in tar.getmembers():
        target = (destination / member.name).resolve()
        if root != target and root not in target.parents:
            raise tarfile.TarError(f"Refusing to extract outside destination: {member.name}")
    tar.extractall(path=destination)


class DependencyCache:
    """Filesystem-backed dependency cache shared across runs."""

    def __init__(
        self,
        cache_dir: Path,
        project_root: Path,
        os_name: Optional[str] = None,
    ) -> None:
        self._cache_dir = cache_dir
        self._project_root = project_root
        self._os_name = (os_name or platform.system() or "unknown").lower()

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def compute_key(self, prefix: str, lock_glob: str) -> CacheKey:
        """Build the cache key for a track.

        Args:
            prefix: Tool prefix, e.g. ``cargo`` or ``pip``.
            lock_glob: Glob over lock/manifest files, e.g. ``**/Cargo.lock``.
        """
        restore_prefix = f"{self._os_name}-{prefix}-"
        digest = hash_files(self._project_root, lock_glob)
        return CacheKey(key=f"{restore_prefix}{digest}", restore_prefix=restore_prefix)

    def _archive_for(self, key: str) -> Path:
        return self._cache_dir / f"{key}.tar.gz"

    def find(self, key: CacheKey) -> Optional[Path]:
        """Locate the best archive for a key: exact match, else newest prefix match."""
        exact = self._archive_for(key.key)
        if exact.exists():
            return exact
        if not self._cache_dir.exists():
            return None
        candidates = [
            p for p in self._cache_dir.glob(f"{key.restore_prefix}*.tar.gz") if p.is_file()
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda p: p.stat().st_mtime)

    def restore(self, key: CacheKey) -> Optional[str]:
        """Restore cached paths into place.

        Returns:
            The key that was restored, or None on a miss or error.
        """
        archive = self.find(key)
        if archive is None:
            LOGGER.info(f"Cache miss for {key.key}")
            return None

        restored_key = archive.name[: -len(".tar.gz")]
        try:
            with tempfile.TemporaryDirectory() as tmp:
                tmp_path = Path(tmp)
                with tarfile.open(archive, "r:gz") as tar:
                    _safe_extract(tar, tmp_path)
                manifest = json.loads((tmp_path / _MANIFEST).read_text(encoding="utf-8"))
                for index, entry in enumerate(manifest.get("paths", [])):
                    source = tmp_path / str(index)
                    if not source.exists():
                        continue
                    target = _resolve_cache_path(self._project_root, entry)
                    if source.is_dir():
                        shutil.copytree(source, target, dirs_exist_ok=True)
                    else:
                        target.parent.mkdir(parents=True, exist_ok=True)
                        shutil.copy2(source, target)
        except (OSError, tarfile.TarError, ValueError) as e:
            LOGGER.warning(f"Failed to restore cache {restored_key}: {e}")
            return None

        if restored_key == key.key:
            LOGGER.info(f"Cache restored from key: {restored_key}")
        else:
            LOGGER.info(f"Cache restored from stale key: {restored_key}")
        return restored_key

    def save(self, key: CacheKey, paths: List[str]) -> bool:
        """Archive existing cache paths under ``key``.

        Existing entries are never overwritten, matching immutable CI caches.

        Returns:
            True if a new cache entry was written.
        """
        archive = self._archive_for(key.key)
        if archive.exists():
            LOGGER.debug(f"Cache entry {key.key} already exists, not saving")
            return False

        present = [
            (i, p)
            for i, p in enumerate(paths)
            if _resolve_cache_path(self._project_root, p).exists()
        ]
        if not present:
            LOGGER.debug(f"No cache paths exist for {key.key}, not saving")
            return False

        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_archive = archive.with_suffix(".tmp")
            with tarfile.open(tmp_archive, "w:gz") as tar:
                for index, entry in present:
                    tar.add(_resolve_cache_path(self._project_root, entry), arcname=str(index))
                manifest = json.dumps({"paths": paths}).encode("utf-8")
                info = tarfile.TarInfo(_MANIFEST)
                info.size = len(manifest)
                tar.addfile(info, fileobj=io.BytesIO(manifest))
            tmp_archive.replace(archive)
        except (OSError, tarfile.TarError) as e:
            LOGGER.warning(f"Failed to save cache {key.key}: {e}")
            return False

        LOGGER.info(f"Cache saved with key: {key.key}")
        return True

