from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

import localrerank
from cli import app as cli_app
from core.config import get_settings
from core.errors import ModelNotFoundError
from persistence.cache import ModelCache

runner = CliRunner()


@pytest.fixture(scope="module", autouse=True)
def _register_commands():
    cli_app._register_subcommands(eager=True)


def test_available_models_lists_aliases() -> None:
    assert localrerank.available_models() == ["default", "quality", "fast", "multilingual", "bge-base"]
    assert len(localrerank.all_models()) == 5


def test_load_closes_on_failure(monkeypatch) -> None:
    closed = []
    original_close = localrerank.CrossEncoderReranker.close

    def _tracking_close(self):
        closed.append(True)
        original_close(self)

    monkeypatch.setattr(localrerank.CrossEncoderReranker, "close", _tracking_close)
    with pytest.raises(ModelNotFoundError):
        localrerank.load("nonexistent")
    assert closed == [True]


def test_version_flag() -> None:
    result = runner.invoke(cli_app.app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == localrerank.__version__


def test_models_list_outputs_registry() -> None:
    result = runner.invoke(cli_app.app, ["models", "list"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload[0]["id"] == "cross-encoder/ms-marco-MiniLM-L-6-v2"
    assert payload[0]["alias"] == "default"


def test_models_show_unknown_fails() -> None:
    result = runner.invoke(cli_app.app, ["models", "show", "nonexistent"])
    assert result.exit_code == 1


def test_cache_commands(tmp_path: Path) -> None:
    cache = ModelCache(tmp_path)
    directory = cache.ensure_directory("org/model")
    (directory / "tokenizer.json").write_bytes(b"x" * 2048)

    path_result = runner.invoke(cli_app.app, ["cache", "path", "--cache-dir", str(tmp_path)])
    assert path_result.stdout.strip() == str(tmp_path)

    listed = json.loads(runner.invoke(cli_app.app, ["cache", "list", "--cache-dir", str(tmp_path)]).stdout)
    assert listed == [{"model_id": "org/model", "revision": "main", "path": str(directory)}]

    size = json.loads(runner.invoke(cli_app.app, ["cache", "size", "--cache-dir", str(tmp_path)]).stdout)
    assert size["bytes"] == 2048
    assert size["human"] == "2.0KB"

    deleted = json.loads(
        runner.invoke(cli_app.app, ["cache", "delete", "org/model", "--cache-dir", str(tmp_path)]).stdout
    )
    assert deleted["deleted"] is True
    assert cache.list_cached() == []


def test_load_reads_model_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("LOCALRERANKER_MODEL", "nonexistent")
    get_settings.cache_clear()

    with pytest.raises(ModelNotFoundError) as info:
        localrerank.load()
    assert info.value.model_id == "nonexistent"


def test_cli_import_skips_inference_stack() -> None:
    src = Path(__file__).resolve().parents[2] / "src"
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, [str(src), os.environ.get("PYTHONPATH")]))}
    script = (
        "import sys, cli.app, cli.commands; "
        "print(sorted(name for name in ('onnxruntime', 'transformers', 'localrerank', 'cli.commands.download') "
        "if name in sys.modules))"
    )
    result = subprocess.run([sys.executable, "-c", script], capture_output=True, text=True, env=env, check=True)
    assert result.stdout.strip() == "[]"
