"""Pipeline configuration: one immutable value per invocation."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .base import ENV_PREFIX, get_bool_env, get_env, get_float_env

logger = logging.getLogger(__name__)

OutputFormat = Literal["wasm", "wast"]
Verbosity = Literal["info", "verbose", "debug"]

DEFAULT_CONFIG_FILE = "settings.toml"

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
}


class PipelineConfig(BaseModel):
    """Settings for one build or deploy invocation.

    Configuration is layered in priority order (later wins):
    1. Default values
    2. TOML configuration file (``settings.toml`` or ``--config``)
    3. Environment variables (``GRAPHDEPLOY_*``, ``LOG_LEVEL``)
    4. Explicit overrides (CLI options)

    The resulting value is frozen and passed by reference into every component.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    # Build settings
    manifest: Path | None = None
    output_dir: Path = Field(default_factory=lambda: Path.cwd() / "dist")
    output_format: OutputFormat = "wasm"
    compiler_command: str = "graph-compile"
    watch: bool = False
    watch_interval: float = Field(default=0.5, gt=0)

    # Artifact store (IPFS) endpoint
    ipfs: str | None = None

    # Deploy settings
    node: str | None = None
    subgraph_name: str | None = None
    api_key: str | None = None
    rpc_timeout: float = Field(default=60.0, gt=0)

    # Logging
    verbosity: Verbosity = "info"

    # Internal state
    loaded_from: tuple[Path, ...] = ()

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self.verbosity]

    @property
    def manifest_dir(self) -> Path:
        """Directory containing the manifest (the watched source tree)."""
        if self.manifest is None:
            return Path.cwd()
        return self.manifest.resolve().parent

    @classmethod
    def load(
        cls,
        config_path: Path | str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> "PipelineConfig":
        """Load configuration from files, environment and overrides.

        ``None`` values in ``overrides`` are ignored so unset CLI options do
        not mask lower layers.
        """
        load_dotenv()

        data: dict[str, Any] = {}
        loaded_from: list[Path] = []

        explicit_path = config_path or get_env(f"{ENV_PREFIX}CONFIG_PATH")
        toml_path = Path(explicit_path) if explicit_path else Path.cwd() / DEFAULT_CONFIG_FILE
        if toml_path.exists():
            try:
                with open(toml_path, "rb") as f:
                    toml_data = tomllib.load(f)
                toml_data.pop("loaded_from", None)
                data.update(toml_data)
                loaded_from.append(toml_path)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning("Failed to load TOML config from %s: %s", toml_path, e)

        data.update(_env_overrides())
        data.update({k: v for k, v in (overrides or {}).items() if v is not None})
        data["loaded_from"] = tuple(loaded_from)

        return cls.model_validate(data)


def _env_overrides() -> dict[str, Any]:
    """Collect settings present in the environment."""
    env: dict[str, Any] = {}

    for field_name in (
        "manifest",
        "output_dir",
        "output_format",
        "compiler_command",
        "ipfs",
        "node",
        "subgraph_name",
        "api_key",
    ):
        if val := get_env(f"{ENV_PREFIX}{field_name.upper()}"):
            env[field_name] = val

    if (watch := get_bool_env(f"{ENV_PREFIX}WATCH")) is not None:
        env["watch"] = watch
    if (interval := get_float_env(f"{ENV_PREFIX}WATCH_INTERVAL")) is not None:
        env["watch_interval"] = interval
    if (timeout := get_float_env(f"{ENV_PREFIX}RPC_TIMEOUT")) is not None:
        env["rpc_timeout"] = timeout

    # LOG_LEVEL is the conventional variable for the verbosity flag default
    if verbosity := get_env("LOG_LEVEL"):
        if verbosity.lower() in _LOG_LEVELS:
            env["verbosity"] = verbosity.lower()
        else:
            logger.warning(
                "Ignoring LOG_LEVEL=%s (expected one of: %s)", verbosity, ", ".join(_LOG_LEVELS)
            )

    return env
