"""Download a model's files into the cache without loading it."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from core.config import get_settings
from core.errors import RerankerError
from persistence.fetcher import HubFetcher
from persistence.manager import ModelAcquirer
from persistence.models import DownloadProgress
from retrieval.rerankers.registry import ModelRegistry

from .shared import build_cache, emit_json


def download_model(
    model: str,
    *,
    revision: str = "main",
    cache_dir: Path | None = None,
    console: Console | None = None,
) -> None:
    console = console or Console(stderr=True)
    settings = get_settings()
    try:
        descriptor = ModelRegistry.with_defaults().resolve(model)
    except RerankerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    cache = build_cache(cache_dir)
    tasks: Dict[str, TaskID] = {}
    with HubFetcher(
        base_url=settings.hub_url,
        token=settings.hub_token,
        max_attempts=settings.download_max_attempts,
        timeout=settings.download_timeout,
    ) as fetcher, Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
    ) as bar:

        def _on_progress(update: DownloadProgress) -> None:
            task = tasks.get(update.file_name)
            if task is None:
                task = bar.add_task(update.file_name, total=update.total_bytes)
                tasks[update.file_name] = task
            bar.update(task, completed=update.bytes_downloaded, total=update.total_bytes)

        try:
            paths = ModelAcquirer(cache, fetcher).ensure(
                descriptor, revision=revision, progress=_on_progress
            )
        except RerankerError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc

    emit_json(
        {
            "model_id": descriptor.id,
            "revision": revision,
            "model_path": str(paths.model_path),
            "tokenizer_path": str(paths.tokenizer_path),
        }
    )


__all__ = ["download_model"]
