"""Tests for dependency caches."""

from __future__ import annotations

import os
import time
from pathlib import Path

from pipewarden.release.cache import DependencyCache, hash_files


def _project(tmp_path: Path) -> Path:
    project = tmp_path / "project"
    (project / "solana-contracts").mkdir(parents=True)
    (project / "solana-contracts" / "Cargo.lock").write_text("lock v1")
    return project


class TestHashFiles:
    def test_no_matches(self, tmp_path: Path) -> None:
        assert hash_files(tmp_path, "**/Cargo.lock") == ""

    def test_changes_with_content(self, tmp_path: Path) -> None:
        project = _project(tmp_path)
        first = hash_files(project, "**/Cargo.lock")
        (project / "solana-contracts" / "Cargo.lock").write_text("lock v2")
        assert hash_files(project, "**/Cargo.lock") != first


class TestDependencyCache:
    """Tests for DependencyCache."""

    def test_key_format(self, tmp_path: Path) -> None:
        project = _project(tmp_path)
        cache = DependencyCache(tmp_path / "cache", project, os_name="Linux")
        key = cache.compute_key("cargo", "**/Cargo.lock")
        assert key.restore_prefix == "linux-cargo-"
        assert key.key.startswith("linux-cargo-")
        assert len(key.key) > len(key.restore_prefix)

    def test_miss(self, tmp_path: Path) -> None:
        project = _project(tmp_path)
        cache = DependencyCache(tmp_path / "cache", project, os_name="linux")
        assert cache.restore(cache.compute_key("cargo", "**/Cargo.lock")) is None

    def test_save_and_restore_exact(self, tmp_path: Path) -> None:
        """Test that saved paths come back after being removed."""
        project = _project(tmp_path)
        target = project / "target"
        target.mkdir()
        (target / "built.o").write_text("object")

        cache = DependencyCache(tmp_path / "cache", project, os_name="linux")
        key = cache.compute_key("cargo", "**/Cargo.lock")
        assert cache.save(key, ["target/"]) is True

        (target / "built.o").unlink()
        assert cache.restore(key) == key.key
        assert (target / "built.o").read_text() == "object"

    def test_save_does_not_overwrite(self, tmp_path: Path) -> None:
        project = _project(tmp_path)
        (project / "target").mkdir()
        cache = DependencyCache(tmp_path / "cache", project, os_name="linux")
        key = cache.compute_key("cargo", "**/Cargo.lock")
        assert cache.save(key, ["target/"]) is True
        assert cache.save(key, ["target/"]) is False

    def test_save_nothing_present(self, tmp_path: Path) -> None:
        project = _project(tmp_path)
        cache = DependencyCache(tmp_path / "cache", project, os_name="linux")
        key = cache.compute_key("cargo", "**/Cargo.lock")
        assert cache.save(key, ["target/"]) is False

    def test_stale_prefix_fallback(self, tmp_path: Path) -> None:
        """Test that the newest entry sharing the prefix is restored on a miss."""
        project = _project(tmp_path)
        (project / "target").mkdir()
        (project / "target" / "old.o").write_text("old")
        cache = DependencyCache(tmp_path / "cache", project, os_name="linux")
        old_key = cache.compute_key("cargo", "**/Cargo.lock")
        cache.save(old_key, ["target/"])
        archive = tmp_path / "cache" / f"{old_key.key}.tar.gz"
        past = time.time() - 100
        os.utime(archive, (past, past))

        (project / "solana-contracts" / "Cargo.lock").write_text("lock v2")
        new_key = cache.compute_key("cargo", "**/Cargo.lock")
        assert new_key.key != old_key.key

        (project / "target" / "old.o").unlink()
        assert cache.restore(new_key) == old_key.key
        assert (project / "target" / "old.o").exists()

    def test_other_prefix_not_restored(self, tmp_path: Path) -> None:
        project = _project(tmp_path)
        (project / "target").mkdir()
        cache = DependencyCache(tmp_path / "cache", project, os_name="linux")
        cache.save(cache.compute_key("cargo", "**/Cargo.lock"), ["target/"])
        assert cache.restore(cache.compute_key("npm", "**/package-lock.json")) is None

    def test_corrupt_archive_is_swallowed(self, tmp_path: Path) -> None:
        project = _project(tmp_path)
        cache = DependencyCache(tmp_path / "cache", project, os_name="linux")
        key = cache.compute_key("cargo", "**/Cargo.lock")
        (tmp_path / "cache").mkdir()
        (tmp_path / "cache" / f"{key.key}.tar.gz").write_bytes(b"not a tarball")
        assert cache.restore(key) is None
