"""Cache management commands."""

from __future__ import annotations

from pathlib import Path

import typer

from .shared import build_cache, emit_json, format_bytes

app = typer.Typer(
    help="Inspect and clean the model cache",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    no_args_is_help=True,
)

_CACHE_DIR_OPTION = typer.Option(
    None,
    "--cache-dir",
    help="Cache root (defaults to LOCALRERANKER_CACHE_DIR, then the platform default).",
)


@app.command("path", help="Print the resolved cache root")
def cache_path(cache_dir: Path | None = _CACHE_DIR_OPTION) -> None:
    typer.echo(str(build_cache(cache_dir).root))


@app.command("list", help="List cached models and revisions")
def cache_list(cache_dir: Path | None = _CACHE_DIR_OPTION) -> None:
    cache = build_cache(cache_dir)
    emit_json(
        [
            {
                "model_id": entry.model_id,
                "revision": entry.revision,
                "path": str(entry.path),
            }
            for entry in cache.list_cached()
        ]
    )


@app.command("delete", help="Delete a cached model")
def cache_delete(
    model: str = typer.Argument(..., metavar="MODEL"),
    revision: str | None = typer.Option(
        None, "--revision", help="Only delete this revision."
    ),
    cache_dir: Path | None = _CACHE_DIR_OPTION,
) -> None:
    deleted = build_cache(cache_dir).delete(model, revision)
    emit_json({"model_id": model, "revision": revision, "deleted": deleted})


@app.command("size", help="Print bytes used by the cache")
def cache_size(
    model: str | None = typer.Argument(None, metavar="[MODEL]"),
    cache_dir: Path | None = _CACHE_DIR_OPTION,
) -> None:
    size = build_cache(cache_dir).size_on_disk(model)
    emit_json(
        {
            "model_id": model,
            "bytes": size,
            "human": format_bytes(size) if size is not None else None,
        }
    )


__all__ = ["app"]
