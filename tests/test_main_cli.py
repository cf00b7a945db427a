from pathlib import Path

import pytest

from main import _load_settings, _parse_args


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"
    assert args.host is None
    assert args.port is None


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080", "--config", "userhub.yaml"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080
    assert args.config == Path("userhub.yaml")


def test_missing_api_key_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("USERHUB_API_KEY", raising=False)
    monkeypatch.delenv("USERHUB_CONFIG", raising=False)

    with pytest.raises(SystemExit, match="USERHUB_API_KEY is not set!"):
        _load_settings(None)
