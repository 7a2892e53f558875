"""CLI entry point for aumai-modelresolve."""

from __future__ import annotations

import functools
import json
import logging
import os
import sys
from typing import Any

import click
from pydantic import TypeAdapter, ValidationError

from .backends import backend_for_path
from .core import ModelResolver
from .errors import ModelResolveError
from .models import APIDeclaration, ModelResource, PredictorType, ResolvedModel

_ENV_PREFIX = "AUMAI_MODELRESOLVE"

_project_dir_option = click.option(
    "--project-dir",
    default=os.getcwd,
    envvar=f"{_ENV_PREFIX}_PROJECT_DIR",
    show_default="current directory",
    type=click.Path(file_okay=False),
    help="Directory relative local model paths are resolved against.",
)
_storage_options_option = click.option(
    "--storage-options",
    "storage_options_json",
    default="{}",
    help="Object-storage options as JSON string (passed to fsspec).",
)


def _parse_storage_options(storage_options_json: str) -> dict[str, Any]:
    try:
        options = json.loads(storage_options_json)
    except json.JSONDecodeError as exc:
        click.echo(f"Error: invalid JSON for --storage-options: {exc}", err=True)
        sys.exit(1)
    if not isinstance(options, dict):
        click.echo("Error: --storage-options must be a JSON object.", err=True)
        sys.exit(1)
    return options


def _resolver(project_dir: str, storage_options: dict[str, Any]) -> ModelResolver:
    return ModelResolver(
        project_dir,
        backend_factory=functools.partial(
            backend_for_path, storage_options=storage_options
        ),
    )


def _echo_model(model: ResolvedModel) -> None:
    click.echo(f"Model    : {model.name}")
    click.echo(f"  Path   : {model.model_path}")
    click.echo(f"  Storage: {'remote' if model.is_remote else 'local'}")
    if model.versions is None:
        click.echo("  Versions: (unversioned)")
    else:
        click.echo(f"  Versions: {', '.join(map(str, model.versions)) or '(none)'}")


@click.group()
@click.version_option()
@click.option(
    "--log-level",
    default="WARNING",
    envvar=f"{_ENV_PREFIX}_LOG_LEVEL",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
def main(log_level: str) -> None:
    """AumAI ModelResolve — validate model directories before deployment."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("resolve")
@click.option("--path", "model_path", required=True, help="Model path or URI.")
@click.option(
    "--predictor-type",
    required=True,
    type=click.Choice([t.value for t in PredictorType]),
    help="Serving framework the model targets.",
)
@click.option("--name", default=None, help="Model name (defaults to the base name).")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
@_project_dir_option
@_storage_options_option
def resolve_command(
    model_path: str,
    predictor_type: str,
    name: str | None,
    as_json: bool,
    project_dir: str,
    storage_options_json: str,
) -> None:
    """Validate one model path and list its versions."""
    storage_options = _parse_storage_options(storage_options_json)
    resource = ModelResource(
        name=name or model_path.rstrip("/").rsplit("/", 1)[-1] or "model",
        model_path=model_path,
    )
    resolver = _resolver(project_dir, storage_options)
    try:
        [model] = resolver.resolve_models([resource], PredictorType(predictor_type))
    except ModelResolveError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(model.model_dump_json(indent=2))
    else:
        _echo_model(model)


@main.command("discover")
@click.option("--path", "models_dir", required=True, help="Directory of models.")
@_project_dir_option
@_storage_options_option
def discover_command(
    models_dir: str, project_dir: str, storage_options_json: str
) -> None:
    """List the models found in a directory (one model per child)."""
    storage_options = _parse_storage_options(storage_options_json)
    resolver = _resolver(project_dir, storage_options)
    try:
        models = resolver.discover_models(models_dir)
    except ModelResolveError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Models ({len(models)}):")
    for model in models:
        click.echo(f"  {model.name:<30}  {model.model_path}")


@main.command("check")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file holding a list of API declarations.",
)
@_project_dir_option
@_storage_options_option
def check_command(
    config_path: str, project_dir: str, storage_options_json: str
) -> None:
    """Validate the models of every API in a declaration file."""
    storage_options = _parse_storage_options(storage_options_json)
    try:
        with open(config_path, encoding="utf-8") as fh:
            raw = json.load(fh)
        apis = TypeAdapter(list[APIDeclaration]).validate_python(raw)
    except json.JSONDecodeError as exc:
        click.echo(f"Error: invalid JSON in {config_path}: {exc}", err=True)
        sys.exit(1)
    except ValidationError as exc:
        click.echo(f"Error: invalid API declarations in {config_path}:\n{exc}", err=True)
        sys.exit(1)

    resolver = _resolver(project_dir, storage_options)
    resolved, failures = resolver.check_apis(apis)

    for api_name, models in resolved.items():
        click.echo(f"API {api_name}: OK ({len(models)} model(s))")
        for model in models:
            versions = "unversioned" if model.versions is None else model.versions
            click.echo(f"  {model.name}: {versions}")

    if failures:
        click.echo(f"\n{len(failures)} error(s):", err=True)
        for api_name, exc in failures:
            click.echo(f"  [{api_name}] {exc.kind}: {exc}", err=True)
        sys.exit(1)
    click.echo("All APIs valid.")


if __name__ == "__main__":
    main()
