"""Pydantic models for aumai-modelresolve."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = [
    "APIDeclaration",
    "CuratedModelResource",
    "ModelResource",
    "PredictorType",
    "ResolvedModel",
]


class PredictorType(str, Enum):
    """The serving framework a model targets."""

    TENSORFLOW = "tensorflow"
    TENSORFLOW_NEURON = "tensorflow-neuron"
    ONNX = "onnx"
    PYTHON = "python"

    @property
    def is_tensorflow(self) -> bool:
        return self in (PredictorType.TENSORFLOW, PredictorType.TENSORFLOW_NEURON)

    @property
    def is_neuron(self) -> bool:
        return self is PredictorType.TENSORFLOW_NEURON


class ModelResource(BaseModel):
    """A model as declared by the user."""

    name: str = Field(min_length=1)
    model_path: str
    signature_key: str | None = None


class CuratedModelResource(ModelResource):
    """A model declaration after path normalization and backend tagging."""

    model_config = ConfigDict(frozen=True)

    is_remote: bool = False


class ResolvedModel(BaseModel):
    """
    A validated model, ready for the orchestration layer.

    ``versions`` is ``None`` for unversioned models (single-file ONNX
    exports) and a sorted list of unique version ids otherwise.
    """

    name: str
    model_path: str
    is_remote: bool
    signature_key: str | None = None
    versions: list[int] | None = None


class APIDeclaration(BaseModel):
    """
    The part of an API declaration that names its models.

    Exactly one of ``model_path``, ``models`` or ``models_dir`` is expected;
    ``models_dir`` points at a folder whose children are individual models.
    """

    name: str = Field(min_length=1)
    predictor_type: PredictorType
    model_path: str | None = None
    models: list[ModelResource] = Field(default_factory=list)
    models_dir: str | None = None
    signature_key: str | None = None
    max_surge: str = "25%"
    max_unavailable: str = "25%"

    @model_validator(mode="after")
    def _one_model_source(self) -> APIDeclaration:
        declared = [
            field
            for field, value in (
                ("model_path", self.model_path),
                ("models", self.models),
                ("models_dir", self.models_dir),
            )
            if value
        ]
        if len(declared) != 1:
            raise ValueError(
                "exactly one of model_path, models or models_dir must be "
                f"set (got {declared or 'none'})"
            )
        return self
