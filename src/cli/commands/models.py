"""Model registry commands."""

from __future__ import annotations

import typer

from retrieval.rerankers.registry import ModelRegistry

from .shared import emit_json

app = typer.Typer(
    help="Inspect the model registry",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)


@app.command("list", help="List built-in models")
def models_list() -> None:
    registry = ModelRegistry.with_defaults()
    emit_json([model.model_dump(mode="json") for model in registry.get_all()])


@app.command("show", help="Resolve an alias, hub id or local path")
def models_show(model: str = typer.Argument(..., metavar="MODEL")) -> None:
    result = ModelRegistry.with_defaults().try_resolve(model)
    if not result.ok:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    emit_json(result.descriptor.model_dump(mode="json"))


__all__ = ["app"]
