"""CLI entry point for apiv2-compose."""

import importlib
import logging
import sys
from pathlib import Path

import click

from apiv2_compose.config import load_settings
from apiv2_compose.errors import Apiv2ComposeError
from apiv2_compose.generator.document import ApiDocument


def _load_document(app_ref: str, app_dir: Path) -> ApiDocument:
    """Import ``module:attribute`` and return the ApiDocument it names."""
    module_name, _, attr = app_ref.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected 'module:attribute', got '{app_ref}'", param_hint="APP_REF")

    app_path = str(app_dir.resolve())
    if app_path not in sys.path:
        sys.path.insert(0, app_path)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.ClickException(f"Cannot import {module_name}: {e}") from e

    document = getattr(module, attr, None)
    if not isinstance(document, ApiDocument):
        raise click.ClickException(f"{app_ref} is not an ApiDocument")
    return document


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """apiv2-compose - build OpenAPI v2 documents from handler annotations."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument("app_ref")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file; stdout when omitted.")
@click.option("--format", "fmt", default="json", type=click.Choice(["json", "yaml"]), help="Output format.")
@click.option("--app-dir", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path), help="Directory prepended to sys.path before importing APP_REF.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="YAML settings file.")
@click.option("--workers", default=1, type=click.IntRange(min=1), help="Threads used to compose routes.")
def dump(app_ref: str, output: Path | None, fmt: str, app_dir: Path, config_path: Path | None, workers: int):
    """Write the OpenAPI v2 document of APP_REF (module:attribute)."""
    document = _load_document(app_ref, app_dir)
    try:
        if config_path is not None:
            document = document.with_settings(load_settings(config_path))
        text = document.to_yaml(workers=workers) if fmt == "yaml" else document.to_json(workers=workers)
    except Apiv2ComposeError as e:
        raise click.ClickException(str(e)) from e

    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Document saved to {output}")


@main.command()
@click.argument("app_ref")
@click.option("--app-dir", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path), help="Directory prepended to sys.path before importing APP_REF.")
def operations(app_ref: str, app_dir: Path):
    """List the composed operations of APP_REF."""
    document = _load_document(app_ref, app_dir)
    try:
        composed = document.compose()
    except Apiv2ComposeError as e:
        raise click.ClickException(str(e)) from e

    for path in sorted(composed.paths):
        for method, op in composed.paths[path].items():
            params = ", ".join(f"{p.name}:{p.in_.value}" for p in op.parameters) or "-"
            codes = ", ".join(code for code, _ in op.sorted_responses()) or "-"
            click.echo(f"{method.upper():7} {path}  params[{params}]  responses[{codes}]")
    click.echo(f"{len(document.routes)} operations, {len(composed.definitions)} definitions")
