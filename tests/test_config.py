"""Configuration resolution from arguments and environment."""

from __future__ import annotations

from pathlib import Path

import pytest

from genmedia.config import (
    DEFAULT_OUTPUT_DIR,
    Config,
    redact_api_key,
    resolve_api_key,
)
from genmedia.errors import ConfigurationError, MissingCredentialsError
from genmedia.polling import ASSET_POLL_POLICY, OPERATION_POLL_POLICY

pytestmark = pytest.mark.unit


def test_api_key_resolved_from_primary_env_var(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GOOGLE_GENAI_API_KEY", "primary-key")
    monkeypatch.setenv("GEMINI_API_KEY", "fallback-key")

    assert Config().api_key == "primary-key"


def test_api_key_falls_back_to_gemini_env_var(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "fallback-key")

    assert Config().api_key == "fallback-key"


def test_explicit_api_key_takes_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GOOGLE_GENAI_API_KEY", "env-key")

    assert Config(api_key="explicit-key").api_key == "explicit-key"


def test_blank_env_values_are_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GOOGLE_GENAI_API_KEY", "   ")

    assert resolve_api_key() is None


def test_missing_api_key_raises_clear_error() -> None:
    with pytest.raises(MissingCredentialsError, match="API key not found") as exc:
        Config()

    assert exc.value.hint is not None
    assert "GOOGLE_GENAI_API_KEY" in exc.value.hint


def test_key_can_be_optional() -> None:
    cfg = Config(require_api_key=False)

    assert cfg.api_key is None


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        (None, "default"),
        ("development", "default"),
        ("production", "hardened"),
        ("Hardened", "hardened"),
    ],
)
def test_mode_from_env(
    monkeypatch: pytest.MonkeyPatch, env: str | None, expected: str
) -> None:
    if env is not None:
        monkeypatch.setenv("GENMEDIA_ENV", env)

    assert Config(api_key="k").mode == expected


def test_explicit_mode_overrides_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GENMEDIA_ENV", "production")

    assert Config(api_key="k", mode="default").mode == "default"


def test_unknown_mode_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Unknown mode"):
        Config(api_key="k", mode="paranoid")  # type: ignore[arg-type]


def test_output_dir_resolution(monkeypatch: pytest.MonkeyPatch) -> None:
    assert Config(api_key="k").output_dir == Path(DEFAULT_OUTPUT_DIR)

    monkeypatch.setenv("GENMEDIA_OUTPUT_DIR", "/tmp/media")
    assert Config(api_key="k").output_dir == Path("/tmp/media")
    assert Config(api_key="k", output_dir="out").output_dir == Path("out")


def test_default_poll_policies() -> None:
    cfg = Config(api_key="k")

    assert cfg.asset_poll is ASSET_POLL_POLICY
    assert cfg.operation_poll is OPERATION_POLL_POLICY


def test_str_and_repr_redact_the_key() -> None:
    cfg = Config(api_key="AIzaSyVerySecretKey1234")

    for text in (str(cfg), repr(cfg)):
        assert "VerySecret" not in text
        assert "xxx...1234" in text


@pytest.mark.parametrize(
    ("key", "expected"),
    [(None, "[NOT SET]"), ("abc", "***"), ("abcdefgh", "xxx...efgh")],
)
def test_redact_api_key(key: str | None, expected: str) -> None:
    assert redact_api_key(key) == expected


def test_config_is_frozen() -> None:
    cfg = Config(api_key="k")

    with pytest.raises(AttributeError):
        cfg.api_key = "other"  # type: ignore[misc]
