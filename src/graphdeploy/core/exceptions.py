"""Exception hierarchy for graphdeploy.

Every failure that ends an invocation is raised as a subclass of
``GraphDeployError`` and handled once, by the CLI command that started the
pipeline. Internal code never exits the process itself.

Usage:
    from graphdeploy.core.exceptions import ConfigurationError, GraphDeployError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from graphdeploy.migrations.types import MigrationOutcome


class GraphDeployError(Exception):
    """Base exception for graphdeploy.

    Attributes:
        message: Human readable description.
        code: Stable machine readable error code.
    """

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message


class ConfigurationError(GraphDeployError):
    """A required setting is absent or malformed."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, message: str = "", *, missing: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.missing = tuple(missing)


class MigrationError(GraphDeployError):
    """At least one migration failed to apply."""

    code = "MIGRATION_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        outcomes: Sequence[MigrationOutcome] = (),
    ) -> None:
        super().__init__(message)
        self.outcomes = tuple(outcomes)


class WatchSetupError(GraphDeployError):
    """The file-watch session could not be started."""

    code = "WATCH_SETUP_ERROR"


class DeployError(GraphDeployError):
    """Base class for deploy failures."""

    code = "DEPLOY_ERROR"


class DeployTransportError(DeployError):
    """Connection or HTTP-level failure while calling the node."""

    code = "DEPLOY_TRANSPORT_ERROR"

    def __init__(self, transport_code: str) -> None:
        super().__init__(f"HTTP error deploying the subgraph: {transport_code}")
        self.transport_code = transport_code


class DeployProtocolError(DeployError):
    """The node answered with a JSON-RPC error."""

    code = "DEPLOY_PROTOCOL_ERROR"

    def __init__(self, remote_message: str) -> None:
        super().__init__(f"Error deploying the subgraph: {remote_message}")
        self.remote_message = remote_message


__all__ = [
    "GraphDeployError",
    "ConfigurationError",
    "MigrationError",
    "WatchSetupError",
    "DeployError",
    "DeployTransportError",
    "DeployProtocolError",
]
