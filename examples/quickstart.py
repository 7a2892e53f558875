"""
aumai-modelresolve quickstart — resolve, reject and discover model directories.

Run directly:

    python examples/quickstart.py

All demos use a temporary directory (or fsspec's in-memory filesystem) and
clean up after themselves.
"""

from __future__ import annotations

import pathlib
import tempfile


def _write_tf_version(model_dir: pathlib.Path, version: str) -> None:
    version_dir = model_dir / version
    (version_dir / "variables").mkdir(parents=True)
    (version_dir / "saved_model.pb").write_bytes(b"\x00" * 128)
    (version_dir / "variables" / "variables.index").write_bytes(b"\x00" * 32)
    (version_dir / "variables" / "variables.data-00000-of-00001").write_bytes(
        b"\x00" * 1024
    )


# ---------------------------------------------------------------------------
# Demo 1: Resolve a local TensorFlow model
# ---------------------------------------------------------------------------

def demo_resolve_tensorflow() -> None:
    """Build a SavedModel tree with two versions and resolve it."""
    print("\n=== Demo 1: Resolve a local TensorFlow model ===")

    from aumai_modelresolve.core import ModelResolver
    from aumai_modelresolve.models import ModelResource, PredictorType

    with tempfile.TemporaryDirectory() as project:
        mnist = pathlib.Path(project) / "models" / "mnist"
        _write_tf_version(mnist, "1600000000")
        _write_tf_version(mnist, "1600000001")

        resolver = ModelResolver(project)
        [model] = resolver.resolve_models(
            [ModelResource(name="mnist", model_path="models/mnist")],
            PredictorType.TENSORFLOW,
        )
        print(f"  Model    : {model.name}")
        print(f"  Path     : {model.model_path}")
        print(f"  Versions : {model.versions}")


# ---------------------------------------------------------------------------
# Demo 2: A malformed layout and its diagnostic
# ---------------------------------------------------------------------------

def demo_rejected_layout() -> None:
    """Show the error raised for a version missing its variables."""
    print("\n=== Demo 2: Reject a malformed layout ===")

    from aumai_modelresolve.core import VersionedLayoutValidator
    from aumai_modelresolve.backends import LocalBackend
    from aumai_modelresolve.errors import InvalidTensorFlowModelPathError
    from aumai_modelresolve.models import PredictorType

    with tempfile.TemporaryDirectory() as tmp:
        model_dir = pathlib.Path(tmp) / "broken"
        (model_dir / "1").mkdir(parents=True)
        (model_dir / "1" / "saved_model.pb").write_bytes(b"\x00")

        validator = VersionedLayoutValidator(PredictorType.TENSORFLOW)
        try:
            validator.versions(str(model_dir), LocalBackend())
        except InvalidTensorFlowModelPathError as exc:
            print(f"  Rejected ({exc.kind}):")
            for line in str(exc).splitlines():
                print(f"    {line}")

        # The Neuron variant only needs saved_model.pb
        neuron = VersionedLayoutValidator(PredictorType.TENSORFLOW_NEURON)
        print(f"\n  As a Neuron export: {neuron.versions(str(model_dir), LocalBackend())}")


# ---------------------------------------------------------------------------
# Demo 3: Object storage (fsspec in-memory filesystem)
# ---------------------------------------------------------------------------

def demo_object_storage() -> None:
    """Resolve versioned ONNX models and discover a folder of models."""
    print("\n=== Demo 3: Object storage ===")

    import fsspec

    from aumai_modelresolve.core import ModelResolver
    from aumai_modelresolve.models import PredictorType

    fs = fsspec.filesystem("memory")
    fs.pipe_file("memory://demo-bucket/onnx/resnet/1/resnet.onnx", b"\x00" * 64)
    fs.pipe_file("memory://demo-bucket/onnx/resnet/2/resnet.onnx", b"\x00" * 64)
    fs.pipe_file("memory://demo-bucket/onnx/yolo/7/yolo.onnx", b"\x00" * 64)

    try:
        resolver = ModelResolver(project_dir=".")
        discovered = resolver.discover_models("memory://demo-bucket/onnx")
        print(f"  Discovered : {[m.name for m in discovered]}")
        for model in resolver.resolve_models(discovered, PredictorType.ONNX):
            print(f"  {model.name:<8} {model.model_path:<40} versions={model.versions}")
    finally:
        fs.rm("memory://demo-bucket", recursive=True)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    print("aumai-modelresolve quickstart demo")
    print("=" * 40)

    demo_resolve_tensorflow()
    demo_rejected_layout()
    demo_object_storage()

    print("\n" + "=" * 40)
    print("All demos completed successfully.")


if __name__ == "__main__":
    main()
