"""Deploying built subgraphs to Graph nodes."""

from .client import (
    DEPLOY_METHOD,
    DeploymentClient,
    build_transport,
    normalize,
    raise_for_outcome,
)
from .queue import CoalescingDeployQueue
from .types import Deployed, DeployOutcome, DeployTarget, ProtocolError, TransportError

__all__ = [
    "DEPLOY_METHOD",
    "DeploymentClient",
    "build_transport",
    "normalize",
    "raise_for_outcome",
    "CoalescingDeployQueue",
    "Deployed",
    "DeployOutcome",
    "DeployTarget",
    "ProtocolError",
    "TransportError",
]
