"""Exceptions raised while resolving and validating model paths."""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "BackendError",
    "DuplicateAPINamesError",
    "DuplicateModelNamesError",
    "InvalidONNXModelPathError",
    "InvalidPathError",
    "InvalidPythonModelPathError",
    "InvalidSurgeOrUnavailableError",
    "InvalidTensorFlowModelPathError",
    "ModelResolveError",
    "ModelVersionPathMustBeDirectoryError",
    "NoVersionsFoundError",
    "PathNotDirectoryError",
]


def _render_listing(listing: Sequence[str]) -> str:
    if not listing:
        return "  (empty)"
    return "\n".join(f"  {entry}" for entry in listing)


class ModelResolveError(Exception):
    """Base class for every error raised by aumai-modelresolve."""

    kind = "model_resolve_error"


class InvalidPathError(ModelResolveError):
    """Raised when a declared path does not exist or cannot be resolved."""

    kind = "invalid_path"

    def __init__(self, path: str, reason: str | None = None) -> None:
        self.path = path
        self.reason = reason
        message = f"{path!r}: no such file or directory"
        if reason:
            message = f"{path!r}: {reason}"
        super().__init__(message)


class PathNotDirectoryError(ModelResolveError):
    """Raised when a path that must be a directory is something else."""

    kind = "path_not_directory"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"{path!r} is not a directory.")


class DuplicateModelNamesError(ModelResolveError):
    kind = "duplicate_model_names"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Cannot have multiple models with the same name ({name!r})."
        )


class DuplicateAPINamesError(ModelResolveError):
    kind = "duplicate_api_names"

    def __init__(self, name: str, count: int) -> None:
        self.name = name
        self.count = count
        super().__init__(
            f"{count} APIs are named {name!r}; API names must be unique."
        )


class InvalidSurgeOrUnavailableError(ModelResolveError):
    """Raised for a max_surge / max_unavailable value out of range."""

    kind = "invalid_surge_or_unavailable"

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"{value!r} is not valid; specify a non-negative integer "
            "(e.g. 2) or a percentage between 0 and 100 (e.g. 25%)."
        )


class NoVersionsFoundError(ModelResolveError):
    """Raised when a model directory has no children at all."""

    kind = "no_versions_found"

    def __init__(self, path: str, predictor_type: str) -> None:
        self.path = path
        self.predictor_type = predictor_type
        super().__init__(
            f"{path!r}: no versions found for {predictor_type} model; "
            "expected one or more version directories named after "
            "integers (e.g. 1600000000/)."
        )


class InvalidTensorFlowModelPathError(ModelResolveError):
    """
    Raised when a TensorFlow model directory does not follow the
    SavedModel versioned layout.
    """

    kind = "invalid_tensorflow_model_path"

    def __init__(
        self, path: str, listing: Sequence[str], is_neuron_export: bool
    ) -> None:
        self.path = path
        self.listing = list(listing)
        self.is_neuron_export = is_neuron_export
        if is_neuron_export:
            expected = (
                "  1523423423/  (version, usually a timestamp)\n"
                "    saved_model.pb"
            )
            flavour = "Neuron TensorFlow"
        else:
            expected = (
                "  1523423423/  (version, usually a timestamp)\n"
                "    saved_model.pb\n"
                "    variables/\n"
                "      variables.index\n"
                "      variables.data-00000-of-00001"
            )
            flavour = "TensorFlow"
        super().__init__(
            f"{path!r} is not a valid {flavour} model directory; "
            f"found:\n{_render_listing(self.listing)}\n"
            f"expected a structure like:\n{expected}"
        )


class InvalidONNXModelPathError(ModelResolveError):
    kind = "invalid_onnx_model_path"

    def __init__(self, path: str, listing: Sequence[str] = ()) -> None:
        self.path = path
        self.listing = list(listing)
        super().__init__(
            f"{path!r} is not a valid ONNX model path; "
            f"found:\n{_render_listing(self.listing)}\n"
            "expected a single *.onnx file, or version directories "
            "(e.g. 1523423423/) each holding exactly one *.onnx file."
        )


class InvalidPythonModelPathError(ModelResolveError):
    kind = "invalid_python_model_path"

    def __init__(self, path: str, listing: Sequence[str] = ()) -> None:
        self.path = path
        self.listing = list(listing)
        super().__init__(
            f"{path!r} is not a valid Python model directory; "
            f"found:\n{_render_listing(self.listing)}\n"
            "expected version directories named after integers "
            "(e.g. 1523423423/)."
        )


class ModelVersionPathMustBeDirectoryError(ModelResolveError):
    kind = "model_version_path_must_be_directory"

    def __init__(
        self, path: str, version_path: str, predictor_type: str
    ) -> None:
        self.path = path
        self.version_path = version_path
        self.predictor_type = predictor_type
        super().__init__(
            f"{version_path!r} in {predictor_type} model {path!r} "
            "must be a directory."
        )


class BackendError(ModelResolveError):
    """Wraps a storage failure (filesystem or object storage) for *path*."""

    kind = "backend_error"

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"{path!r}: {cause}")
