"""Configuration: frozen Config resolved from arguments and environment."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import get_args

from dotenv import load_dotenv

from genmedia.classify import RuntimeMode
from genmedia.errors import ConfigurationError, MissingCredentialsError
from genmedia.polling import ASSET_POLL_POLICY, OPERATION_POLL_POLICY, PollPolicy

# Values already in the environment win over either file.
load_dotenv()
load_dotenv(Path.home() / ".google-genai" / ".env")

#: Checked in order; the first non-empty value is used.
API_KEY_ENV_VARS = ("GOOGLE_GENAI_API_KEY", "GEMINI_API_KEY")
MODE_ENV_VAR = "GENMEDIA_ENV"
OUTPUT_DIR_ENV_VAR = "GENMEDIA_OUTPUT_DIR"
DEFAULT_OUTPUT_DIR = "datasets/google"

_HARDENED_ENVS = ("production", "hardened")


def resolve_api_key(explicit: str | None = None) -> str | None:
    """Explicit key first, then the environment variables in order."""
    if explicit:
        return explicit
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def resolve_mode() -> RuntimeMode:
    """``"hardened"`` when ``GENMEDIA_ENV`` is production or hardened."""
    env = os.environ.get(MODE_ENV_VAR, "").strip().lower()
    return "hardened" if env in _HARDENED_ENVS else "default"


def redact_api_key(api_key: str | None) -> str:
    """Show only the last four characters of a key."""
    if not api_key:
        return "[NOT SET]"
    if len(api_key) <= 4:
        return "***"
    return f"xxx...{api_key[-4:]}"


@dataclass(frozen=True)
class Config:
    """Immutable runtime configuration.

    Unset fields are resolved from the environment.

    Example:
        config = Config()  # key from GOOGLE_GENAI_API_KEY or GEMINI_API_KEY
        config = Config(api_key="...", mode="hardened")
    """

    #: Auto-resolved from ``GOOGLE_GENAI_API_KEY`` then ``GEMINI_API_KEY``.
    api_key: str | None = None
    #: Auto-resolved from ``GENMEDIA_ENV`` when *None*.
    mode: RuntimeMode | None = None
    #: Auto-resolved from ``GENMEDIA_OUTPUT_DIR`` when *None*.
    output_dir: Path | None = None
    asset_poll: PollPolicy = field(default=ASSET_POLL_POLICY)
    operation_poll: PollPolicy = field(default=OPERATION_POLL_POLICY)
    #: Skip the API key requirement (tests, offline tooling).
    require_api_key: bool = True

    def __post_init__(self) -> None:
        """Resolve defaults from the environment and validate."""
        object.__setattr__(self, "api_key", resolve_api_key(self.api_key))

        if self.mode is None:
            object.__setattr__(self, "mode", resolve_mode())
        elif self.mode not in get_args(RuntimeMode):
            raise ConfigurationError(
                f"Unknown mode: {self.mode!r}",
                hint="Supported modes: 'default', 'hardened'",
            )

        if self.output_dir is None:
            env_dir = os.environ.get(OUTPUT_DIR_ENV_VAR, "").strip()
            object.__setattr__(self, "output_dir", Path(env_dir or DEFAULT_OUTPUT_DIR))
        else:
            object.__setattr__(self, "output_dir", Path(self.output_dir))

        if self.require_api_key and not self.api_key:
            raise MissingCredentialsError(
                "Google GenAI API key not found",
                hint=(
                    f"Set {API_KEY_ENV_VARS[0]} (or {API_KEY_ENV_VARS[1]}), "
                    "or pass --api-key. Keys: https://aistudio.google.com/apikey"
                ),
            )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(api_key={redact_api_key(self.api_key)!r}, mode={self.mode!r}, "
            f"output_dir={str(self.output_dir)!r})"
        )

    __repr__ = __str__
