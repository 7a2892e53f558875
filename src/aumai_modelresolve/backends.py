"""Storage backends for aumai-modelresolve.

Every check the validator makes goes through :class:`StorageBackend`, so the
same algorithm runs against a local directory tree and an object store.
The object-storage implementation adapts any fsspec filesystem (``s3fs`` for
``s3://`` URIs).
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any

import fsspec
from fsspec.core import split_protocol

from .errors import BackendError, InvalidPathError

__all__ = [
    "LocalBackend",
    "ObjectStorageBackend",
    "StorageBackend",
    "backend_for_path",
    "is_remote_path",
    "is_valid_s3_path",
    "join_uri",
    "s3_path",
    "split_s3_path",
]

logger = logging.getLogger(__name__)

_LOCAL_PROTOCOLS = (None, "file", "local")


# ---------------------------------------------------------------------------
# URI helpers
# ---------------------------------------------------------------------------


def is_remote_path(path: str) -> bool:
    """Return True when *path* is a ``scheme://`` URI for a remote store."""
    protocol, _ = split_protocol(path)
    return protocol not in _LOCAL_PROTOCOLS


def is_valid_s3_path(path: str) -> bool:
    if not path.startswith("s3://"):
        return False
    bucket, _, _ = path[len("s3://"):].partition("/")
    return bool(bucket)


def split_s3_path(path: str) -> tuple[str, str]:
    """Split ``s3://bucket/some/key`` into ``("bucket", "some/key")``."""
    if not is_valid_s3_path(path):
        raise InvalidPathError(path, "not a valid s3 path (s3://bucket/key)")
    bucket, _, key = path[len("s3://"):].partition("/")
    return bucket, key


def s3_path(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key.lstrip('/')}"


def join_uri(base: str, *parts: str) -> str:
    """Join *parts* onto *base* with single ``/`` separators."""
    joined = base.rstrip("/")
    for part in parts:
        part = part.strip("/")
        if part:
            joined = f"{joined}/{part}"
    return joined


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _has_hidden_component(relative_path: str) -> bool:
    return any(_is_hidden(part) for part in relative_path.split("/"))


# ---------------------------------------------------------------------------
# Backend contract
# ---------------------------------------------------------------------------


class StorageBackend(ABC):
    """
    Capability set shared by the local filesystem and object storage.

    Hidden entries (names starting with ``.``) are skipped by
    :meth:`list_children` unless *include_hidden* is set. Failures of the
    underlying store are raised as
    :class:`~aumai_modelresolve.errors.BackendError`; nothing is retried here.
    """

    is_remote: bool = False

    @abstractmethod
    def list_children(
        self, path: str, include_hidden: bool = False
    ) -> list[str]:
        """Return the full paths of the immediate children of *path*."""

    @abstractmethod
    def list_descendants(
        self, path: str, include_hidden: bool = False
    ) -> list[str]:
        """Return every file below *path*, relative to it, ``/``-separated."""

    @abstractmethod
    def is_directory(self, path: str) -> bool: ...

    @abstractmethod
    def is_file(self, *paths: str) -> bool:
        """Return True only if every one of *paths* exists as a file."""

    @abstractmethod
    def join(self, base: str, *parts: str) -> str: ...

    @abstractmethod
    def split(self, path: str) -> tuple[str, str]:
        """Split *path* into ``(parent, base name)``."""

    def basename(self, path: str) -> str:
        return self.split(path)[1]

    def is_prefix_of_any(self, prefix: str) -> bool:
        """
        Return True if some file path starts with *prefix*.

        Used for sharded files whose exact suffix varies, e.g.
        ``variables/variables.data-00000-of-00004``.
        """
        parent, stem = self.split(prefix)
        if not self.is_directory(parent):
            return False
        return any(
            relative.startswith(stem)
            for relative in self.list_descendants(parent)
        )


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


class LocalBackend(StorageBackend):
    """Backend for absolute paths on the local filesystem."""

    def list_children(
        self, path: str, include_hidden: bool = False
    ) -> list[str]:
        try:
            names = sorted(os.listdir(path))
        except OSError as exc:
            raise BackendError(path, exc) from exc
        logger.debug("listed %d entries under %s", len(names), path)
        return [
            os.path.join(path, name)
            for name in names
            if include_hidden or not _is_hidden(name)
        ]

    def list_descendants(
        self, path: str, include_hidden: bool = False
    ) -> list[str]:
        if not os.path.isdir(path):
            raise BackendError(
                path, NotADirectoryError(f"{path!r} is not a directory")
            )

        def _on_error(exc: OSError) -> None:
            raise exc

        results: list[str] = []
        try:
            for root, dirs, files in os.walk(path, onerror=_on_error):
                if not include_hidden:
                    dirs[:] = [d for d in dirs if not _is_hidden(d)]
                for name in files:
                    if not include_hidden and _is_hidden(name):
                        continue
                    relative = os.path.relpath(os.path.join(root, name), path)
                    results.append(relative.replace(os.sep, "/"))
        except OSError as exc:
            raise BackendError(path, exc) from exc
        return sorted(results)

    def is_directory(self, path: str) -> bool:
        return os.path.isdir(path)

    def is_file(self, *paths: str) -> bool:
        return all(os.path.isfile(path) for path in paths)

    def join(self, base: str, *parts: str) -> str:
        return os.path.join(base, *parts)

    def split(self, path: str) -> tuple[str, str]:
        return os.path.split(path.rstrip(os.sep) or path)


# ---------------------------------------------------------------------------
# Object storage
# ---------------------------------------------------------------------------


class ObjectStorageBackend(StorageBackend):
    """
    Backend for object-storage URIs, built on an fsspec filesystem.

    Paths are passed around as full URIs (``s3://bucket/key``); listings
    are rebuilt from base names so callers always get URIs back.
    """

    is_remote = True

    def __init__(self, fs: fsspec.AbstractFileSystem) -> None:
        self._fs = fs

    @classmethod
    def from_uri(cls, uri: str, **storage_options: Any) -> ObjectStorageBackend:
        protocol, _ = split_protocol(uri)
        return cls(fsspec.filesystem(protocol, **storage_options))

    @property
    def fs(self) -> fsspec.AbstractFileSystem:
        return self._fs

    def _root(self, path: str) -> str:
        return self._fs._strip_protocol(path).rstrip("/")

    def list_children(
        self, path: str, include_hidden: bool = False
    ) -> list[str]:
        root = self._root(path)
        try:
            entries = self._fs.ls(root, detail=False, refresh=True)
        except OSError as exc:
            raise BackendError(path, exc) from exc

        names: set[str] = set()
        for entry in entries:
            entry = entry.rstrip("/")
            if entry == root:
                continue
            name = entry.rsplit("/", 1)[-1]
            if name and (include_hidden or not _is_hidden(name)):
                names.add(name)
        logger.debug("listed %d entries under %s", len(names), path)
        return [join_uri(path, name) for name in sorted(names)]

    def list_descendants(
        self, path: str, include_hidden: bool = False
    ) -> list[str]:
        if not self.is_directory(path):
            raise BackendError(
                path, NotADirectoryError(f"{path!r} is not a directory")
            )
        root = self._root(path)
        try:
            found = self._fs.find(root)
        except OSError as exc:
            raise BackendError(path, exc) from exc

        results: list[str] = []
        for name in found:
            if not name.startswith(root + "/"):
                continue
            relative = name[len(root) + 1:]
            if not include_hidden and _has_hidden_component(relative):
                continue
            results.append(relative)
        return sorted(results)

    def is_directory(self, path: str) -> bool:
        try:
            return self._fs.isdir(self._root(path))
        except OSError as exc:
            raise BackendError(path, exc) from exc

    def is_file(self, *paths: str) -> bool:
        try:
            return all(self._fs.isfile(self._root(path)) for path in paths)
        except OSError as exc:
            raise BackendError(", ".join(paths), exc) from exc

    def join(self, base: str, *parts: str) -> str:
        return join_uri(base, *parts)

    def split(self, path: str) -> tuple[str, str]:
        parent, _, name = path.rstrip("/").rpartition("/")
        return parent, name


def backend_for_path(
    path: str, storage_options: dict[str, Any] | None = None
) -> StorageBackend:
    """Return the backend that serves *path*."""
    if is_remote_path(path):
        return ObjectStorageBackend.from_uri(path, **(storage_options or {}))
    return LocalBackend()
