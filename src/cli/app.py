"""Typer CLI entrypoint for model and cache management."""

from __future__ import annotations

import os
import shlex
import sys
from importlib import import_module
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path

import typer

from core.config import configure_logging

_SUBCOMMAND_SPECS: list[tuple[str, str, str]] = [
    ("models", "cli.commands.models", "Inspect the model registry"),
    ("cache", "cli.commands.cache", "Inspect and clean the model cache"),
]
_SUBCOMMAND_NAMES = {name for name, _, _ in _SUBCOMMAND_SPECS}
_SUBCOMMANDS_REGISTERED = False

app = typer.Typer(
    help="Local cross-encoder reranking: manage models and the on-disk cache.",
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
    add_completion=True,
)


@app.callback()
def root(
    ctx: typer.Context,
    version_flag: bool = typer.Option(
        False,
        "-v",
        "--version",
        help="Print the version and exit.",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOCALRERANKER_LOG_LEVEL).",
    ),
) -> None:
    if version_flag:
        typer.echo(_package_version())
        raise typer.Exit()
    configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command(help="Download a model into the cache")
def download(
    model: str = typer.Argument("default", metavar="MODEL"),
    revision: str = typer.Option("main", "--revision", help="Hub revision to fetch."),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Cache root override."),
) -> None:
    from cli.commands.download import download_model

    download_model(model, revision=revision, cache_dir=cache_dir)


def _package_version() -> str:
    try:
        return pkg_version("localrerank")
    except PackageNotFoundError:
        return "0.0.0-dev"


def _parse_invoked_subcommand() -> str | None:
    completion_args = os.getenv("_TYPER_COMPLETE_ARGS")
    tokens: list[str]
    if completion_args:
        try:
            tokens = shlex.split(completion_args)
        except ValueError:
            tokens = completion_args.split()
        if tokens:
            tokens = tokens[1:]
    else:
        tokens = sys.argv[1:]

    for token in tokens:
        if token in _SUBCOMMAND_NAMES:
            return token
        if token.startswith("-"):
            continue
        break
    return None


def _register_subcommands(*, eager: bool = False) -> None:
    global _SUBCOMMANDS_REGISTERED
    if _SUBCOMMANDS_REGISTERED:
        return

    selected = _parse_invoked_subcommand()
    for name, module_path, help_text in _SUBCOMMAND_SPECS:
        if eager or selected == name:
            module = import_module(module_path)
            app.add_typer(module.app, name=name)
            continue
        app.add_typer(
            typer.Typer(help=help_text, add_completion=False, no_args_is_help=True),
            name=name,
        )

    _SUBCOMMANDS_REGISTERED = True


def main() -> None:
    _register_subcommands()
    app()


__all__ = ["app", "main"]
