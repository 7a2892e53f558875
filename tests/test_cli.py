"""Tests for aumai_modelresolve CLI."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from conftest import LocalTree, MemoryTree, write_tf_version

from aumai_modelresolve.cli import main


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_config(tmp_path: Path, apis: list[dict]) -> Path:
    config = tmp_path / "apis.json"
    config.write_text(json.dumps(apis), encoding="utf-8")
    return config


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


class TestVersionFlag:
    def test_version_exits_zero(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


# ---------------------------------------------------------------------------
# resolve command
# ---------------------------------------------------------------------------


class TestResolveCommand:
    def test_resolve_lists_versions(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "resolve",
                "--path", "models/mnist",
                "--predictor-type", "tensorflow",
                "--project-dir", str(project_dir),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "mnist" in result.output
        assert "1600000000, 1600000001" in result.output
        assert "local" in result.output

    def test_resolve_json_output(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "resolve",
                "--path", "models/mnist",
                "--predictor-type", "tensorflow",
                "--name", "digits",
                "--json",
                "--project-dir", str(project_dir),
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["name"] == "digits"
        assert data["versions"] == [1600000000, 1600000001]

    def test_resolve_project_dir_from_env(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["resolve", "--path", "models/mnist", "--predictor-type", "tensorflow"],
            env={"AUMAI_MODELRESOLVE_PROJECT_DIR": str(project_dir)},
        )
        assert result.exit_code == 0, result.output

    def test_resolve_object_storage(self, memory_tree: MemoryTree) -> None:
        memory_tree.write("models/clf/1/model.onnx")
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "resolve",
                "--path", memory_tree.path("models/clf"),
                "--predictor-type", "onnx",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "remote" in result.output

    def test_resolve_invalid_layout_fails(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "resolve",
                "--path", "models/mnist",
                "--predictor-type", "onnx",
                "--project-dir", str(project_dir),
            ],
        )
        assert result.exit_code != 0
        assert "not a valid ONNX model path" in result.output

    def test_resolve_unknown_predictor_type_fails(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["resolve", "--path", "models/mnist", "--predictor-type", "pytorch"],
        )
        assert result.exit_code != 0

    def test_resolve_invalid_storage_options_fails(self, project_dir: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "resolve",
                "--path", "models/mnist",
                "--predictor-type", "tensorflow",
                "--storage-options", "not-json",
            ],
        )
        assert result.exit_code != 0
        assert "invalid JSON" in result.output


# ---------------------------------------------------------------------------
# discover command
# ---------------------------------------------------------------------------


class TestDiscoverCommand:
    def test_discover_lists_models(self, project_dir: Path) -> None:
        write_tf_version(LocalTree(project_dir), "models/iris", "1")
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["discover", "--path", "models", "--project-dir", str(project_dir)],
        )
        assert result.exit_code == 0, result.output
        assert "Models (2)" in result.output
        assert "iris" in result.output
        assert "mnist" in result.output

    def test_discover_missing_dir_fails(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["discover", "--path", "nope", "--project-dir", str(tmp_path)],
        )
        assert result.exit_code != 0
        assert "no such file or directory" in result.output


# ---------------------------------------------------------------------------
# check command
# ---------------------------------------------------------------------------


class TestCheckCommand:
    def test_check_valid_config(self, project_dir: Path, tmp_path: Path) -> None:
        config = _write_config(
            tmp_path,
            [{"name": "mnist-api", "predictor_type": "tensorflow", "models_dir": "models"}],
        )
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["check", "--config", str(config), "--project-dir", str(project_dir)],
        )
        assert result.exit_code == 0, result.output
        assert "API mnist-api: OK" in result.output
        assert "All APIs valid." in result.output

    def test_check_reports_every_error(self, project_dir: Path, tmp_path: Path) -> None:
        config = _write_config(
            tmp_path,
            [
                {"name": "a", "predictor_type": "python", "model_path": "missing"},
                {
                    "name": "b",
                    "predictor_type": "tensorflow",
                    "model_path": "models/mnist",
                    "max_unavailable": "-1",
                },
                {"name": "a", "predictor_type": "tensorflow", "model_path": "models/mnist"},
            ],
        )
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["check", "--config", str(config), "--project-dir", str(project_dir)],
        )
        assert result.exit_code == 1
        assert "3 error(s)" in result.output
        assert "duplicate_api_names" in result.output
        assert "invalid_path" in result.output
        assert "invalid_surge_or_unavailable" in result.output

    def test_check_rejects_malformed_declaration(self, tmp_path: Path) -> None:
        config = _write_config(
            tmp_path,
            [{"name": "a", "predictor_type": "python"}],
        )
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", str(config)])
        assert result.exit_code != 0
        assert "invalid API declarations" in result.output

    def test_check_invalid_json(self, tmp_path: Path) -> None:
        config = tmp_path / "apis.json"
        config.write_text("{not json", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", str(config)])
        assert result.exit_code != 0
        assert "invalid JSON" in result.output

    def test_check_missing_config_fails(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", str(tmp_path / "nope.json")])
        assert result.exit_code != 0
