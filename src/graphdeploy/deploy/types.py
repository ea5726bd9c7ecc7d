"""Deploy targets and outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class DeployTarget:
    """Normalized Graph node address.

    Attributes:
        url: Full node URL, always with an explicit port.
        host: Node host name.
        port: Node port (8020 unless the address named one).
        api_key: Bearer token sent with every request, if configured.
    """

    url: str
    host: str
    port: int
    api_key: str | None = field(default=None, repr=False)

    def location(self, subgraph_name: str) -> str:
        """URL of a deployed subgraph on this node."""
        return f"{self.url.rstrip('/')}/{subgraph_name}"


@dataclass(frozen=True)
class Deployed:
    location: str


@dataclass(frozen=True)
class TransportError:
    """Connection or HTTP-level failure; ``code`` identifies the cause."""

    code: str


@dataclass(frozen=True)
class ProtocolError:
    """The node returned a JSON-RPC error."""

    message: str


DeployOutcome = Union[Deployed, TransportError, ProtocolError]


__all__ = ["DeployTarget", "Deployed", "TransportError", "ProtocolError", "DeployOutcome"]
