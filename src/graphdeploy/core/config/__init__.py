"""Configuration system for graphdeploy."""

from .base import (
    DEFAULT_NODE_PORT,
    ENV_PREFIX,
    get_bool_env,
    get_env,
    get_float_env,
)
from .main import (
    OutputFormat,
    PipelineConfig,
    Verbosity,
)

__all__ = [
    # Main classes
    "PipelineConfig",
    "OutputFormat",
    "Verbosity",
    # Base utilities
    "get_env",
    "get_bool_env",
    "get_float_env",
    "ENV_PREFIX",
    "DEFAULT_NODE_PORT",
]
