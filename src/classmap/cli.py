"""Typer CLI entry point for classmap.

Options are loaded from the layered config for the scanned directory and
then overridden by command-line flags.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from classmap import __version__
from classmap.autoloader import Autoloader
from classmap.config import ScanOptions, load_config
from classmap.exceptions import ClassmapError
from classmap.loader.host import AutoloadStack
from classmap.loader.resolver import lookup

app = typer.Typer(
    name="classmap",
    help="classmap: map PHP classes, interfaces, traits and enums to their files.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

DEFAULT_ARTIFACT_NAME = "autoload.php"


def _error_exit(message: str, hint: str | None = None) -> None:
    """Print a styled error and exit."""
    console.print(f"[bold red]Error:[/bold red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
    raise typer.Exit(code=1)


def _options_for(directory: Path, **flags: Any) -> ScanOptions:
    """Load the configured options for directory and apply CLI flags.

    Flags left at None keep their configured value.
    """
    overrides = {key: value for key, value in flags.items() if value is not None}
    return load_config(directory).merge(overrides)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"classmap {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """Static class-map builder for PHP source trees."""


@app.command()
def scan(
    directory: Annotated[Path, typer.Argument(help="Root of the PHP source tree")],
    ext: Annotated[
        list[str] | None, typer.Option("--ext", help="File extension to scan (repeatable)")
    ] = None,
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", help="Glob of paths to skip (repeatable)")
    ] = None,
    follow_symlinks: Annotated[
        bool | None,
        typer.Option("--follow-symlinks/--no-follow-symlinks", help="Descend into symlinked dirs"),
    ] = None,
    include_static: Annotated[
        bool | None,
        typer.Option("--include-static/--no-include-static", help="List declaration-free files"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the mapping as JSON")] = False,
) -> None:
    """Scan a directory and print the identifier-to-file mapping."""
    try:
        options = _options_for(
            directory,
            extensions=ext or None,
            exclude=exclude or None,
            follow_symlinks=follow_symlinks,
            include_static=include_static,
        )
        classmap = Autoloader().build(directory, options)
    except ClassmapError as exc:
        _error_exit(str(exc))
        return

    if as_json:
        typer.echo(json.dumps(
            {
                "directory": str(classmap.directory),
                "mapping": classmap.mapping,
                "static_files": list(classmap.static_files),
            },
            indent=2,
        ))
        return

    if classmap.is_empty:
        console.print(f"[yellow]No declarations found in {classmap.directory}[/yellow]")
        return

    table = Table(title=str(classmap.directory), border_style="cyan", header_style="bold cyan")
    table.add_column("Identifier", style="bold")
    table.add_column("File")
    for identifier, path in classmap.mapping.items():
        table.add_row(escape(identifier), escape(_display_path(path, classmap.directory)))
    for path in classmap.static_files:
        table.add_row("[dim](static)[/dim]", escape(_display_path(path, classmap.directory)))

    console.print()
    console.print(table)
    console.print(
        f"\n[green]{len(classmap.mapping)}[/green] symbols, "
        f"[green]{len(classmap.static_files)}[/green] static files, "
        f"{classmap.files_scanned} files scanned\n"
    )


@app.command()
def generate(
    directory: Annotated[Path, typer.Argument(help="Root of the PHP source tree")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Artifact path (default: DIRECTORY/autoload.php)")
    ] = None,
    absolute: Annotated[
        bool, typer.Option("--absolute", help="Embed absolute paths instead of __DIR__-relative ones")
    ] = False,
    case_sensitive: Annotated[
        bool | None,
        typer.Option("--case-sensitive/--case-insensitive", help="Identifier matching mode"),
    ] = None,
    prepend: Annotated[
        bool, typer.Option("--prepend", help="Register ahead of existing autoloaders")
    ] = False,
    include_static: Annotated[
        bool | None,
        typer.Option("--include-static/--no-include-static", help="Require declaration-free files"),
    ] = None,
    namespace: Annotated[
        str | None, typer.Option("--namespace", help="Namespace shown in the artifact header")
    ] = None,
    class_name: Annotated[
        str | None, typer.Option("--class-name", help="Loader name shown in the artifact header")
    ] = None,
) -> None:
    """Write a standalone PHP autoloader for a directory."""
    target = output or directory / DEFAULT_ARTIFACT_NAME
    try:
        options = _options_for(
            directory,
            relative=False if absolute else None,
            case_sensitive=case_sensitive,
            prepend=prepend or None,
            include_static=include_static,
            namespace=namespace,
            class_name=class_name,
        )
        if artifact := _path_within(target, directory):
            # A previously generated artifact must not be scanned as a static file
            options = options.merge({"exclude": (*options.exclude, artifact)})
        source = Autoloader().render(directory, options, fmt="source")
    except ClassmapError as exc:
        _error_exit(str(exc))
        return

    if source is None:
        _error_exit(
            f"Nothing to generate for {directory}.",
            hint="Check the configured extensions and exclude patterns.",
        )
        return

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(source, encoding="utf-8")
    except OSError as exc:
        _error_exit(f"Cannot write {target}: {exc}")
        return

    console.print(Panel(
        Text.assemble(
            ("Wrote ", "green"),
            (str(target), "bold green"),
            ("\n\nPaths: ", "white"),
            ("absolute" if absolute else "relative to the artifact", "cyan"),
        ),
        title="[bold green]Autoloader Generated[/bold green]",
        border_style="green",
    ))


@app.command()
def resolve(
    directory: Annotated[Path, typer.Argument(help="Root of the PHP source tree")],
    identifiers: Annotated[list[str], typer.Argument(help="Fully-qualified identifiers")],
    case_sensitive: Annotated[
        bool | None,
        typer.Option("--case-sensitive/--case-insensitive", help="Identifier matching mode"),
    ] = None,
) -> None:
    """Resolve identifiers through a freshly registered resolver.

    Exits with code 1 if any identifier cannot be resolved.
    """
    stack = AutoloadStack()
    autoloader = Autoloader(host=stack)
    try:
        options = _options_for(directory, case_sensitive=case_sensitive)
        if not autoloader.activate(directory, options):
            _error_exit(f"No resolver registered for {directory}.")
            return
        mapping = autoloader.build(directory, options).mapping
    except ClassmapError as exc:
        _error_exit(str(exc))
        return

    unresolved = 0
    for identifier in identifiers:
        if stack.load(identifier):
            path = lookup(mapping, identifier, options.case_sensitive)
            console.print(f"[green]{escape(identifier)}[/green] -> {escape(str(path))}")
        else:
            unresolved += 1
            console.print(f"[red]{escape(identifier)}[/red] -> [dim]not found[/dim]")

    if unresolved:
        raise typer.Exit(code=1)


def _display_path(path: str, root: Path) -> str:
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return path


def _path_within(path: Path, root: Path) -> str | None:
    """Return path relative to root (POSIX form) if it lies inside root."""
    try:
        return Path(os.path.realpath(path)).relative_to(os.path.realpath(root)).as_posix()
    except ValueError:
        return None
