from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from dep_expand.core.env import CargoEnv
from dep_expand.core.errors import ExpandError, ParseError
from dep_expand.core.expander import Expander
from dep_expand.core.filter import filter_source
from dep_expand.core.metadata import resolve_metadata
from dep_expand.core.options import (
    ExpandOptions,
    OptionsConfigError,
    load_options_file,
    merge_cli_options,
)
from dep_expand.core.selector import PathSelector, SelectorError

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log cargo invocations and scratch dirs"),
) -> None:
    """dep-expand: print the macro-expanded source of a Cargo dependency."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("expand")
def expand_cmd(
    name: str = typer.Argument(..., help="Dependency (package) name"),
    path: str | None = typer.Option(None, "--path", help="Only keep items under this path, e.g. de::Deserialize"),
    features: list[str] = typer.Option([], "--features", "-F", help="Features to activate (repeatable)"),
    all_features: bool = typer.Option(False, "--all-features", help="Activate all available features"),
    no_default_features: bool = typer.Option(
        False, "--no-default-features", help="Do not activate the `default` feature"
    ),
    tests: bool = typer.Option(False, "--tests", help="Include tests when expanding the lib"),
    release: bool = typer.Option(False, "--release", help="Build artifacts in release mode"),
    unstable_flags: list[str] = typer.Option([], "-Z", help="Unstable (nightly-only) flags to Cargo"),
    manifest_path: str | None = typer.Option(
        None, "--manifest-path", help="Cargo.toml of the project depending on NAME"
    ),
    config: str | None = typer.Option(None, "--config", help="YAML file with expansion options"),
    out: str | None = typer.Option(None, "--out", help="Write output here instead of stdout"),
) -> None:
    """Expand the lib target of a dependency."""
    base = _load_config(config)
    options = merge_cli_options(
        base,
        features=features,
        all_features=all_features,
        no_default_features=no_default_features,
        tests=tests,
        release=release,
        unstable_flags=unstable_flags,
        manifest_path=manifest_path,
    )
    selector = _parse_selector(path) if path else None

    expander = Expander(options=options)
    try:
        if selector is None:
            content = expander.expand(name)
        else:
            content = expander.expand_path(name, selector)
    except ExpandError as e:
        _print_errors([e])
        raise typer.Exit(code=2 if isinstance(e, ParseError) else 1)

    _emit(content, out)


@app.command("filter")
def filter_cmd(
    file: Path = typer.Argument(..., help="File holding already expanded source"),
    path: str = typer.Option(..., "--path", help="Only keep items under this path"),
    out: str | None = typer.Option(None, "--out", help="Write output here instead of stdout"),
) -> None:
    """Filter a saved expansion down to a path."""
    selector = _parse_selector(path)
    try:
        content = file.read_text(encoding="utf-8")
    except OSError as e:
        _print_errors([ExpandError(code="E_IO", message=str(e), detail=str(file))])
        raise typer.Exit(code=1)

    try:
        filtered = filter_source(content, selector)
    except ParseError as e:
        _print_errors([e])
        raise typer.Exit(code=2)

    _emit(filtered, out)


@app.command("packages")
def packages_cmd(
    manifest_path: str | None = typer.Option(None, "--manifest-path", help="Cargo.toml to resolve"),
) -> None:
    """List the packages NAME can refer to."""
    env = CargoEnv.from_environ()
    manifest = Path(manifest_path) if manifest_path else env.default_manifest()
    try:
        packages = resolve_metadata(manifest, env=env)
    except ExpandError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    table = Table(title=f"packages of {manifest}")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Source")
    for p in sorted(packages, key=lambda p: (p.name, p.version)):
        table.add_row(p.name, p.version, p.source or "local")
    console.print(table)


def _load_config(config: str | None) -> ExpandOptions:
    if not config:
        return ExpandOptions()
    try:
        return load_options_file(config)
    except FileNotFoundError:
        _print_errors(
            [ExpandError(code="E_CONFIG_FILE_NOT_FOUND", message=f"options file not found: {config}")]
        )
        raise typer.Exit(code=1)
    except OptionsConfigError as e:
        _print_errors([ExpandError(code="E_CONFIG_FILE_INVALID", message=str(e), detail=config)])
        raise typer.Exit(code=2)


def _parse_selector(path: str) -> PathSelector:
    try:
        return PathSelector.parse(path)
    except SelectorError as e:
        _print_errors([ExpandError(code="E_SELECTOR", message=str(e))])
        raise typer.Exit(code=2)


def _emit(content: str, out: str | None) -> None:
    if out is None:
        typer.echo(content, nl=False)
        return
    p = Path(out)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    typer.echo(f"OK: wrote {out}", err=True)


def _print_errors(errors: list[ExpandError]) -> None:
    for e in sorted(errors, key=lambda e: (e.package or "", e.code)):
        typer.echo(str(e), err=True)
        if e.detail:
            typer.echo(e.detail, err=True)


def main() -> None:
    app(prog_name="dep-expand")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
