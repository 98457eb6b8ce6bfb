"""Runtime configuration, reranker options and .env loading."""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HUB_URL = "https://huggingface.co"


class ExecutionProvider(str, Enum):
    """Preferred ONNX Runtime execution provider."""

    AUTO = "auto"
    CUDA = "cuda"
    DIRECTML = "directml"
    COREML = "coreml"
    CPU = "cpu"


class Settings(BaseSettings):
    """Centralized runtime configuration."""

    model_id: str = Field(default="default", validation_alias="LOCALRERANKER_MODEL")
    cache_dir: str | None = Field(
        default=None, validation_alias="LOCALRERANKER_CACHE_DIR"
    )
    provider: ExecutionProvider = Field(
        default=ExecutionProvider.AUTO, validation_alias="LOCALRERANKER_PROVIDER"
    )
    batch_size: int = Field(default=32, ge=1, validation_alias="LOCALRERANKER_BATCH_SIZE")
    thread_count: int | None = Field(
        default=None, ge=1, validation_alias="LOCALRERANKER_THREAD_COUNT"
    )
    max_sequence_length: int | None = Field(
        default=None, ge=4, validation_alias="LOCALRERANKER_MAX_SEQUENCE_LENGTH"
    )
    disable_auto_download: bool = Field(
        default=False, validation_alias="LOCALRERANKER_DISABLE_AUTO_DOWNLOAD"
    )

    hub_url: str = Field(default=DEFAULT_HUB_URL, validation_alias="LOCALRERANKER_HUB_URL")
    hub_token: str | None = Field(default=None, validation_alias="HF_TOKEN")
    download_max_attempts: int = Field(
        default=3, ge=1, validation_alias="LOCALRERANKER_DOWNLOAD_MAX_ATTEMPTS"
    )
    download_timeout: float = Field(
        default=1800.0, gt=0, validation_alias="LOCALRERANKER_DOWNLOAD_TIMEOUT"
    )

    log_level: str = Field(default="WARNING", validation_alias="LOCALRERANKER_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once from .env/environment."""
    return Settings()


class RerankerOptions(BaseModel):
    """Options for a single reranker instance.

    ``model_id`` accepts a built-in alias (``default``, ``quality``, ``fast``,
    ``multilingual``, ``bge-base``), a hub id such as
    ``cross-encoder/ms-marco-MiniLM-L-6-v2`` or a local ``.onnx`` path.
    ``max_sequence_length`` falls back to the model's own limit and
    ``cache_directory`` to ``LOCALRERANKER_CACHE_DIR`` and then the platform
    default.
    """

    model_id: str = "default"
    max_sequence_length: int | None = Field(default=None, ge=4)
    cache_directory: Path | None = None
    provider: ExecutionProvider = ExecutionProvider.AUTO
    disable_auto_download: bool = False
    thread_count: int | None = Field(default=None, ge=1)
    batch_size: int = Field(default=32, ge=1)
    revision: str = "main"

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: object) -> "RerankerOptions":
        """Build options from environment settings; keyword overrides win."""
        settings = settings or get_settings()
        payload: dict[str, object] = {
            "model_id": settings.model_id,
            "max_sequence_length": settings.max_sequence_length,
            "cache_directory": settings.cache_dir,
            "provider": settings.provider,
            "disable_auto_download": settings.disable_auto_download,
            "thread_count": settings.thread_count,
            "batch_size": settings.batch_size,
        }
        payload.update(overrides)
        return cls.model_validate(payload)


def configure_logging(level: str | int | None = None) -> None:
    """Attach a basic handler for command line use; library code never calls this."""
    resolved = level if level is not None else get_settings().log_level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.strip().upper())
        if not isinstance(resolved, int):
            resolved = logging.WARNING
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = [
    "DEFAULT_HUB_URL",
    "ExecutionProvider",
    "RerankerOptions",
    "Settings",
    "configure_logging",
    "get_settings",
]
