"""Shared helpers for CLI subcommands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from core.config import get_settings
from persistence.cache import ModelCache


def build_cache(cache_dir: Path | None = None) -> ModelCache:
    return ModelCache(cache_dir or get_settings().cache_dir)


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024.0:
            return f"{int(value)}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1024.0
    return f"{value:.1f}GB"


def emit_json(data: Any) -> None:
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2, default=str))
