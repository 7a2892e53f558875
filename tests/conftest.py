"""Shared test fixtures for aumai-modelresolve."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import fsspec
import pytest

from aumai_modelresolve.backends import (
    LocalBackend,
    ObjectStorageBackend,
    StorageBackend,
    join_uri,
)


# ---------------------------------------------------------------------------
# Storage trees: the same layout written to disk or to an object store
# ---------------------------------------------------------------------------


class LocalTree:
    """A directory tree under pytest's ``tmp_path``."""

    def __init__(self, root: Path) -> None:
        root.mkdir(parents=True, exist_ok=True)
        self.base = str(root)
        self.backend: StorageBackend = LocalBackend()

    def path(self, rel: str = "") -> str:
        return os.path.join(self.base, rel) if rel else self.base

    def write(self, rel: str, data: bytes = b"\x00" * 16) -> str:
        target = Path(self.path(rel))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return str(target)

    def mkdir(self, rel: str) -> str:
        Path(self.path(rel)).mkdir(parents=True, exist_ok=True)
        return self.path(rel)


class MemoryTree:
    """A bucket in fsspec's in-memory filesystem, addressed by URI."""

    def __init__(self, fs: fsspec.AbstractFileSystem) -> None:
        self.fs = fs
        self.base = "memory://bucket"
        self.backend: StorageBackend = ObjectStorageBackend(fs)

    def path(self, rel: str = "") -> str:
        return join_uri(self.base, rel)

    def write(self, rel: str, data: bytes = b"\x00" * 16) -> str:
        self.fs.pipe_file(self.path(rel), data)
        return self.path(rel)

    def mkdir(self, rel: str) -> str:
        self.fs.makedirs(self.path(rel), exist_ok=True)
        return self.path(rel)


def write_tf_version(tree: LocalTree | MemoryTree, model: str, version: str) -> None:
    """Write a minimal valid TensorFlow SavedModel version directory."""
    tree.write(f"{model}/{version}/saved_model.pb")
    tree.write(f"{model}/{version}/variables/variables.index")
    tree.write(f"{model}/{version}/variables/variables.data-00000-of-00001")


@pytest.fixture()
def memory_fs() -> Iterator[fsspec.AbstractFileSystem]:
    fs = fsspec.filesystem("memory")
    fs.store.clear()
    fs.pseudo_dirs.clear()
    fs.pseudo_dirs.append("")
    yield fs
    fs.store.clear()
    fs.pseudo_dirs.clear()
    fs.pseudo_dirs.append("")


@pytest.fixture()
def local_tree(tmp_path: Path) -> LocalTree:
    return LocalTree(tmp_path / "store")


@pytest.fixture()
def memory_tree(memory_fs: fsspec.AbstractFileSystem) -> MemoryTree:
    return MemoryTree(memory_fs)


@pytest.fixture(params=["local", "memory"])
def tree(
    request: pytest.FixtureRequest, tmp_path: Path
) -> LocalTree | MemoryTree:
    """Parametrizes a test over both storage backends."""
    if request.param == "local":
        return LocalTree(tmp_path / "store")
    return MemoryTree(request.getfixturevalue("memory_fs"))


# ---------------------------------------------------------------------------
# Project layout
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    """A project directory holding ``models/mnist`` with two TF versions."""
    d = tmp_path / "project"
    tree = LocalTree(d)
    write_tf_version(tree, "models/mnist", "1600000000")
    write_tf_version(tree, "models/mnist", "1600000001")
    return d
