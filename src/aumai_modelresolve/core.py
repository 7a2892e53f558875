"""Core logic for aumai-modelresolve."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from .backends import StorageBackend, backend_for_path, is_remote_path
from .checks import (
    check_duplicate_models,
    find_duplicate_apis,
    validate_surge_or_unavailable,
)
from .errors import (
    DuplicateAPINamesError,
    InvalidONNXModelPathError,
    InvalidPathError,
    InvalidPythonModelPathError,
    InvalidTensorFlowModelPathError,
    ModelResolveError,
    ModelVersionPathMustBeDirectoryError,
    NoVersionsFoundError,
    PathNotDirectoryError,
)
from .models import (
    APIDeclaration,
    CuratedModelResource,
    ModelResource,
    PredictorType,
    ResolvedModel,
)
from .paths import resolve_path

__all__ = [
    "DirectoryModelDiscoverer",
    "LayoutPolicy",
    "ModelCurator",
    "ModelResolver",
    "VersionedLayoutValidator",
    "parse_version",
    "policy_for",
    "unique_versions",
]

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"[0-9]+")
_INT64_MAX = 2**63 - 1
_ONNX_SUFFIX = ".onnx"


def parse_version(name: str) -> int | None:
    """
    Parse a version directory name.

    Only plain base-10 digits are accepted (no sign, no whitespace); leading
    zeros are allowed. Returns ``None`` for anything else, including values
    that do not fit in a signed 64-bit integer.
    """
    if not _VERSION_RE.fullmatch(name):
        return None
    version = int(name)
    if version > _INT64_MAX:
        return None
    return version


def unique_versions(versions: Iterable[int]) -> list[int]:
    """Return the distinct *versions*, sorted ascending."""
    return sorted(set(versions))


def _ensure_directory(path: str, backend: StorageBackend) -> None:
    if backend.is_directory(path):
        return
    if backend.is_file(path):
        raise PathNotDirectoryError(path)
    raise InvalidPathError(path)


# ---------------------------------------------------------------------------
# Layout policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LayoutPolicy:
    """
    Structural contract of one version directory for a predictor type.

    ``required_files`` and ``required_prefixes`` are relative to the version
    directory. ``single_onnx_file`` demands exactly one ``*.onnx`` file and
    nothing else; ``tolerate_empty_versions`` drops empty version
    directories from the result instead of rejecting them.
    """

    predictor_type: PredictorType
    required_files: tuple[str, ...] = ()
    required_prefixes: tuple[str, ...] = ()
    single_onnx_file: bool = False
    tolerate_empty_versions: bool = False

    def invalid_layout(
        self, path: str, listing: Sequence[str]
    ) -> ModelResolveError:
        if self.predictor_type.is_tensorflow:
            return InvalidTensorFlowModelPathError(
                path, listing, self.predictor_type.is_neuron
            )
        if self.predictor_type is PredictorType.ONNX:
            return InvalidONNXModelPathError(path, listing)
        return InvalidPythonModelPathError(path, listing)

    def version_not_directory(
        self, path: str, version_path: str, listing: Sequence[str]
    ) -> ModelResolveError:
        if self.predictor_type.is_tensorflow:
            return self.invalid_layout(path, listing)
        return ModelVersionPathMustBeDirectoryError(
            path, version_path, self.predictor_type.value
        )


_POLICIES: dict[PredictorType, LayoutPolicy] = {
    PredictorType.TENSORFLOW: LayoutPolicy(
        PredictorType.TENSORFLOW,
        required_files=("saved_model.pb", "variables/variables.index"),
        required_prefixes=("variables/variables.data-00000-of",),
    ),
    PredictorType.TENSORFLOW_NEURON: LayoutPolicy(
        PredictorType.TENSORFLOW_NEURON,
        required_files=("saved_model.pb",),
    ),
    PredictorType.ONNX: LayoutPolicy(
        PredictorType.ONNX,
        single_onnx_file=True,
    ),
    PredictorType.PYTHON: LayoutPolicy(
        PredictorType.PYTHON,
        tolerate_empty_versions=True,
    ),
}


def policy_for(predictor_type: PredictorType) -> LayoutPolicy:
    return _POLICIES[PredictorType(predictor_type)]


# ---------------------------------------------------------------------------
# VersionedLayoutValidator
# ---------------------------------------------------------------------------


class VersionedLayoutValidator:
    """
    Validates a versioned model directory and extracts its versions.

    Expected layout, here for a standard TensorFlow export::

        model-name/
            1523423423/             # version, usually a timestamp
                saved_model.pb
                variables/
                    variables.index
                    variables.data-00000-of-00001
            2434389194/
                ...

    The same walk serves every predictor type; only the check applied to
    each version directory (see :class:`LayoutPolicy`) differs. The first
    violation aborts validation of the whole model.
    """

    def __init__(self, predictor_type: PredictorType) -> None:
        self.policy = policy_for(predictor_type)

    def versions(self, model_path: str, backend: StorageBackend) -> list[int]:
        """Return the unique versions found under *model_path*."""
        _ensure_directory(model_path, backend)

        children = backend.list_children(model_path)
        if not children:
            raise NoVersionsFoundError(
                model_path, self.policy.predictor_type.value
            )

        versions: list[int] = []
        for child in children:
            version = parse_version(backend.basename(child))
            if version is None:
                raise self.policy.invalid_layout(model_path, children)

            if not backend.is_directory(child):
                raise self.policy.version_not_directory(
                    model_path, child, children
                )

            if self._check_version_dir(model_path, children, child, backend):
                logger.debug("accepted version %d of %s", version, model_path)
                versions.append(version)
            else:
                logger.debug("skipping empty version directory %s", child)

        return unique_versions(versions)

    def _check_version_dir(
        self,
        model_path: str,
        listing: Sequence[str],
        version_path: str,
        backend: StorageBackend,
    ) -> bool:
        """
        Apply the policy to one version directory.

        Returns False when the directory is empty and the policy tolerates
        that; raises on any violation.
        """
        policy = self.policy

        required = [backend.join(version_path, f) for f in policy.required_files]
        if required and not backend.is_file(*required):
            raise policy.invalid_layout(model_path, listing)
        for prefix in policy.required_prefixes:
            if not backend.is_prefix_of_any(backend.join(version_path, prefix)):
                raise policy.invalid_layout(model_path, listing)

        if not (policy.single_onnx_file or policy.tolerate_empty_versions):
            return True

        entries = backend.list_children(version_path, include_hidden=True)
        if not entries:
            if policy.tolerate_empty_versions:
                return False
            raise policy.invalid_layout(model_path, listing)

        if policy.single_onnx_file:
            for entry in entries:
                if not entry.endswith(_ONNX_SUFFIX) or not backend.is_file(entry):
                    raise policy.invalid_layout(model_path, listing)
            if len(entries) > 1:
                raise policy.invalid_layout(model_path, listing)

        return True


# ---------------------------------------------------------------------------
# Curation and discovery
# ---------------------------------------------------------------------------


class ModelCurator:
    """Normalizes declared models into ``CuratedModelResource`` objects."""

    def curate(
        self,
        resources: Iterable[ModelResource],
        predictor_type: PredictorType,
        project_dir: str,
    ) -> list[CuratedModelResource]:
        """
        Resolve and normalize each of *resources*, preserving order.

        Directories end in exactly one ``/``. ONNX single-file exports keep
        their file path and lose the ``.onnx`` suffix from their name.
        """
        predictor_type = PredictorType(predictor_type)
        curated: list[CuratedModelResource] = []
        for resource in resources:
            is_remote = is_remote_path(resource.model_path)
            model_path = resource.model_path
            if not is_remote:
                model_path = resolve_path(model_path, project_dir)

            name = resource.name
            stripped = model_path.rstrip("/")
            if predictor_type is PredictorType.ONNX and stripped.endswith(
                _ONNX_SUFFIX
            ):
                model_path = stripped
                name = name.removesuffix(_ONNX_SUFFIX)
            else:
                model_path = stripped + "/"

            curated.append(
                CuratedModelResource(
                    name=name,
                    model_path=model_path,
                    signature_key=resource.signature_key,
                    is_remote=is_remote,
                )
            )
        return curated


class DirectoryModelDiscoverer:
    """Treats each child of a directory as one model."""

    def discover(
        self, base_path: str, backend: StorageBackend
    ) -> list[ModelResource]:
        _ensure_directory(base_path, backend)
        return [
            ModelResource(name=backend.basename(child), model_path=child)
            for child in backend.list_children(base_path)
        ]


# ---------------------------------------------------------------------------
# ModelResolver
# ---------------------------------------------------------------------------


BackendFactory = Callable[[str], StorageBackend]


def _default_model_name(model_path: str) -> str:
    return model_path.rstrip("/").rsplit("/", 1)[-1]


class ModelResolver:
    """
    Runs declared models through curation, duplicate checks and layout
    validation, producing the ``ResolvedModel`` list the orchestration
    layer consumes.

    *backend_factory* maps a path to the backend serving it; the default
    picks the local filesystem or an fsspec object store by URI scheme.
    """

    def __init__(
        self,
        project_dir: str,
        backend_factory: BackendFactory = backend_for_path,
    ) -> None:
        self.project_dir = project_dir
        self._backend_for = backend_factory

    def discover_models(self, models_dir: str) -> list[ModelResource]:
        path = resolve_path(models_dir, self.project_dir)
        return DirectoryModelDiscoverer().discover(path, self._backend_for(path))

    def resolve_model(
        self, model: CuratedModelResource, predictor_type: PredictorType
    ) -> ResolvedModel:
        predictor_type = PredictorType(predictor_type)
        backend = self._backend_for(model.model_path)

        versions: list[int] | None
        if predictor_type is PredictorType.ONNX and not model.model_path.endswith("/"):
            if not backend.is_file(model.model_path):
                raise InvalidONNXModelPathError(model.model_path)
            versions = None
        else:
            validator = VersionedLayoutValidator(predictor_type)
            versions = validator.versions(model.model_path, backend)

        logger.info(
            "resolved %s model %r at %s (versions: %s)",
            predictor_type.value,
            model.name,
            model.model_path,
            versions,
        )
        return ResolvedModel(
            name=model.name,
            model_path=model.model_path,
            is_remote=model.is_remote,
            signature_key=model.signature_key,
            versions=versions,
        )

    def resolve_models(
        self,
        resources: Iterable[ModelResource],
        predictor_type: PredictorType,
    ) -> list[ResolvedModel]:
        curated = ModelCurator().curate(resources, predictor_type, self.project_dir)
        check_duplicate_models(curated)
        return [self.resolve_model(model, predictor_type) for model in curated]

    def resolve_api(self, api: APIDeclaration) -> list[ResolvedModel]:
        validate_surge_or_unavailable(api.max_surge)
        validate_surge_or_unavailable(api.max_unavailable)

        resources: list[ModelResource] = []
        if api.models_dir:
            resources = self.discover_models(api.models_dir)
        elif api.models:
            resources = list(api.models)
        elif api.model_path:
            resources = [
                ModelResource(
                    name=_default_model_name(api.model_path),
                    model_path=api.model_path,
                    signature_key=api.signature_key,
                )
            ]
        return self.resolve_models(resources, api.predictor_type)

    def check_apis(
        self, apis: Sequence[APIDeclaration]
    ) -> tuple[dict[str, list[ResolvedModel]], list[tuple[str, ModelResolveError]]]:
        """
        Resolve every API, collecting failures instead of stopping.

        Returns the resolved models per API name and a list of
        ``(api name, error)`` pairs. Only ``ModelResolveError`` is collected;
        anything else propagates.
        """
        resolved: dict[str, list[ResolvedModel]] = {}
        failures: list[tuple[str, ModelResolveError]] = []

        duplicates = find_duplicate_apis(apis)
        if duplicates:
            name = duplicates[0].name
            failures.append((name, DuplicateAPINamesError(name, len(duplicates))))

        seen: set[str] = set()
        for api in apis:
            if api.name in seen:
                continue
            seen.add(api.name)
            try:
                resolved[api.name] = self.resolve_api(api)
            except ModelResolveError as exc:
                logger.debug("api %r failed validation: %s", api.name, exc)
                failures.append((api.name, exc))
        return resolved, failures
