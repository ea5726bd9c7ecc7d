"""Core configuration and error types."""

from .config import PipelineConfig
from .exceptions import (
    ConfigurationError,
    DeployError,
    DeployProtocolError,
    DeployTransportError,
    GraphDeployError,
    MigrationError,
    WatchSetupError,
)

__all__ = [
    "PipelineConfig",
    "GraphDeployError",
    "ConfigurationError",
    "MigrationError",
    "WatchSetupError",
    "DeployError",
    "DeployTransportError",
    "DeployProtocolError",
]
