"""JSON-RPC deployment client for Graph nodes.

Usage:
    async with DeploymentClient.from_config(config) as client:
        outcome = await client.deploy("user/subgraph", "QmHash123")
        raise_for_outcome(outcome)
"""

from __future__ import annotations

import errno
import itertools
import logging
from typing import Any

import httpx

from graphdeploy.core.config import DEFAULT_NODE_PORT, PipelineConfig
from graphdeploy.core.exceptions import (
    ConfigurationError,
    DeployProtocolError,
    DeployTransportError,
)

from .types import Deployed, DeployOutcome, DeployTarget, ProtocolError, TransportError

logger = logging.getLogger(__name__)

DEPLOY_METHOD = "subgraph_deploy"


def normalize(node_address: str, api_key: str | None = None) -> DeployTarget:
    """Parse a node address, filling in the default port when absent.

    Scheme, host and path are kept as given.
    """
    try:
        url = httpx.URL(node_address)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Invalid Graph node address {node_address!r}: {e}") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            f"Invalid Graph node address {node_address!r}: expected http(s)://HOST[:PORT]"
        )

    if url.port is None:
        url = url.copy_with(port=DEFAULT_NODE_PORT)

    return DeployTarget(url=str(url), host=url.host, port=url.port, api_key=api_key)


def build_transport(
    target: DeployTarget,
    *,
    timeout: float = 60.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """HTTP client bound to ``target``; carries the bearer token if one is set."""
    headers: dict[str, str] = {}
    if target.api_key:
        headers["Authorization"] = f"Bearer {target.api_key}"
    return httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport)


def _transport_code(exc: BaseException) -> str:
    """Best identifier for a transport failure: errno name, else exception type.

    Walks the cause chain and the members of exception groups, which is how
    dual-stack connection attempts report their individual failures.
    """
    seen: set[int] = set()
    pending: list[BaseException] = [exc]
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, OSError) and current.errno in errno.errorcode:
            return errno.errorcode[current.errno]
        if isinstance(current, BaseExceptionGroup):
            pending.extend(current.exceptions)
        cause = current.__cause__ or current.__context__
        if cause is not None:
            pending.append(cause)
    return type(exc).__name__


def _rpc_error_message(body: Any) -> str | None:
    if not isinstance(body, dict) or body.get("error") is None:
        return None
    error = body["error"]
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class DeploymentClient:
    """Registers built subgraphs with a Graph node.

    The HTTP client and its headers are created once and shared by all deploy
    calls. Calls are never retried.
    """

    def __init__(
        self,
        target: DeployTarget,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.target = target
        self._http = build_transport(target, timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DeploymentClient":
        if not config.node:
            raise ConfigurationError("No Graph node specified", missing=("node",))
        return cls(
            normalize(config.node, config.api_key),
            timeout=config.rpc_timeout,
            transport=transport,
        )

    async def deploy(self, name: str, content_hash: str) -> DeployOutcome:
        """Call ``subgraph_deploy`` once and classify the result."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": DEPLOY_METHOD,
            "params": {"name": name, "ipfs_hash": content_hash},
        }
        logger.info("Deploying to Graph node: %s", self.target.url)

        try:
            response = await self._http.post(self.target.url, json=payload)
        except httpx.HTTPError as e:
            code = _transport_code(e)
            logger.debug("Transport failure deploying %s: %r", name, e)
            return TransportError(code)

        try:
            body = response.json()
        except ValueError:
            body = None

        # Some nodes answer JSON-RPC errors with a non-2xx status
        message = _rpc_error_message(body)
        if message is not None:
            return ProtocolError(message)

        if response.is_error:
            return TransportError(str(response.status_code))
        if not isinstance(body, dict):
            return TransportError("INVALID_RESPONSE")

        location = self.target.location(name)
        logger.info("Deployed to Graph node: %s", location)
        return Deployed(location)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "DeploymentClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def raise_for_outcome(outcome: DeployOutcome) -> Deployed:
    """Return successful outcomes, raise the matching error otherwise."""
    if isinstance(outcome, TransportError):
        raise DeployTransportError(outcome.code)
    if isinstance(outcome, ProtocolError):
        raise DeployProtocolError(outcome.message)
    return outcome


__all__ = [
    "DEPLOY_METHOD",
    "DeploymentClient",
    "build_transport",
    "normalize",
    "raise_for_outcome",
]
