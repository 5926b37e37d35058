"""
Command line interface for evaluating module extensions.
"""

from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path
from types import ModuleType
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .errors import EvalError, ExtensionEvaluationError, RepositoryNameError
from .extension import ModuleExtension, evaluate_extension
from .labels import validate_user_provided_repo_name
from .logger import configure_logging, get_logger, redirect_logging_to_file
from .models import describe
from .settings import settings
from .vendor import evaluate_vendor_file
from .version import get_version

app = typer.Typer(name="modext", help="Module extension repository registry CLI.")
configure_logging(level=settings.log_level, enable_console=False)
log = get_logger(__name__)
console = Console()


def _fail(message: str) -> NoReturn:
    typer.echo(f"[ERROR] {message}")
    raise typer.Exit(code=1)


def _load_python_file(path: Path) -> ModuleType:
    if not path.is_file():
        _fail(f"File not found: {path}")
    module_name = f"_modext_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        _fail(f"Cannot load {path} as a Python module")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    finally:
        sys.modules.pop(module_name, None)
    return module


def _find_extensions(module: ModuleType) -> List[ModuleExtension]:
    return [value for value in vars(module).values() if isinstance(value, ModuleExtension)]


@app.command("eval")
def eval_extension(
    path: Path = typer.Argument(..., help="Python file defining module extensions."),
    module_name: str = typer.Option(
        "_main", "--module", "-m", help="Name of the module using the extensions."
    ),
    extension: Optional[str] = typer.Option(
        None, "--extension", "-e", help="Only evaluate the extension with this name."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print specifications as JSON."),
    log_file: Optional[Path] = typer.Option(
        None, "--log", help="Write detailed evaluation logs to this file."
    ),
) -> None:
    """Evaluate module extensions and print the repositories they generate."""
    if log_file:
        redirect_logging_to_file(log_file.resolve())

    extensions = _find_extensions(_load_python_file(path))
    if extension:
        extensions = [ext for ext in extensions if ext.name == extension]
    if not extensions:
        _fail(f"No module extensions found in {path}")

    output = {}
    for ext in extensions:
        try:
            result = evaluate_extension(ext, module_name=module_name)
        except ExtensionEvaluationError as exc:
            _fail(str(exc))
        output[ext.name] = result
        for event in result.events:
            typer.echo(str(event), err=True)

    if as_json:
        payload = {
            name: {
                "prefix": result.repo_prefix,
                "repos": {
                    repo: spec.to_dict() for repo, spec in result.generated_repos.items()
                },
            }
            for name, result in output.items()
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    for result in output.values():
        table = Table(title=f"{result.extension_id} ({len(result.generated_repos)} repos)")
        table.add_column("Name", no_wrap=True)
        table.add_column("Canonical name", no_wrap=True)
        table.add_column("Rule")
        table.add_column("Defined in")
        for repo, spec in result.generated_repos.items():
            table.add_row(
                escape(repo),
                escape(result.canonical_name(repo)),
                escape(describe(spec)),
                escape(spec.bzl_file),
            )
        console.print(table)


@app.command("check-name")
def check_name(name: str = typer.Argument(..., help="Repository name to validate.")) -> None:
    """Check whether an extension may use NAME for a generated repository."""
    try:
        validate_user_provided_repo_name(name)
    except RepositoryNameError as exc:
        _fail(str(exc))
    typer.echo(f"'{name}' is a valid repository name")


@app.command()
def vendor(
    path: Path = typer.Argument(..., help="Python file containing the vendor function."),
    function: str = typer.Option("vendor", "--function", "-f", help="Vendor function name."),
) -> None:
    """Evaluate a vendor file and list ignored and pinned repositories."""
    module = _load_python_file(path)
    vendor_file = getattr(module, function, None)
    if not callable(vendor_file):
        _fail(f"{path} does not define a callable '{function}'")
    try:
        context = evaluate_vendor_file(vendor_file)
    except EvalError as exc:
        _fail(str(exc))
    for repo in sorted(context.ignored_repos, key=lambda r: r.name):
        typer.echo(f"ignored {repo}")
    for repo in sorted(context.pinned_repos, key=lambda r: r.name):
        typer.echo(f"pinned  {repo}")


@app.command()
def config() -> None:
    """Show the effective configuration."""
    typer.echo(f"modext {get_version()}")
    for key, value in settings.model_dump().items():
        typer.echo(f"{key} = {value}")


if __name__ == "__main__":  # pragma: no cover
    app()
