"""Resolution of declared model paths to absolute form."""

from __future__ import annotations

import os

from fsspec.core import split_protocol

from .backends import is_remote_path
from .errors import InvalidPathError

__all__ = ["resolve_path"]


def resolve_path(path: str, project_dir: str) -> str:
    """
    Return *path* in absolute form.

    Remote URIs are returned unchanged and a ``file://`` prefix is dropped.
    A leading ``~`` is expanded to the user's home directory; any other
    relative path is taken relative to *project_dir*. A trailing separator
    on *path* is preserved.
    """
    if is_remote_path(path):
        return path

    protocol, stripped = split_protocol(path)
    if protocol is not None:
        path = stripped

    if path.startswith("~"):
        expanded = os.path.expanduser(path)
        if expanded.startswith("~"):
            raise InvalidPathError(path, "unable to expand home directory")
        resolved = expanded
    else:
        resolved = os.path.join(project_dir, path)

    trailing = resolved.endswith(("/", os.sep))
    resolved = os.path.normpath(os.path.abspath(resolved))
    if trailing and not resolved.endswith(os.sep):
        resolved += os.sep
    return resolved
