"""Single-slot coalescing deploy queue used in watch mode.

At most one deploy is in flight. A build finishing while a deploy runs is
parked in the single pending slot; a newer build replaces the parked one, so
stale artifacts are skipped instead of deployed out of order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from graphdeploy.core.exceptions import GraphDeployError

from .client import raise_for_outcome
from .types import DeployOutcome

logger = logging.getLogger(__name__)

DeployFn = Callable[[str], Awaitable[DeployOutcome]]


class CoalescingDeployQueue:
    """Serializes deploys, keeping only the newest pending content hash.

    The first fatal outcome stops the queue; it is exposed through
    ``wait_for_failure()`` and ``raise_if_failed()`` so the caller decides
    how the invocation ends.
    """

    def __init__(self, deploy: DeployFn) -> None:
        self._deploy = deploy
        self._pending: str | None = None
        self._worker: asyncio.Task[None] | None = None
        self._error: BaseException | None = None
        self._failed = asyncio.Event()

    @property
    def pending(self) -> str | None:
        return self._pending

    @property
    def busy(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def submit(self, content_hash: str) -> None:
        if self._error is not None:
            logger.debug("Deploy queue stopped, ignoring %s", content_hash)
            return
        if self._pending is not None:
            logger.info("Skipping deploy of %s, superseded by %s", self._pending, content_hash)
        self._pending = content_hash
        if not self.busy:
            self._worker = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending is not None:
            content_hash, self._pending = self._pending, None
            try:
                raise_for_outcome(await self._deploy(content_hash))
            except Exception as e:
                self._pending = None
                self._error = e
                self._failed.set()
                return

    async def wait_for_failure(self) -> BaseException:
        """Block until a deploy fails and return its error."""
        await self._failed.wait()
        assert self._error is not None
        return self._error

    async def join(self) -> None:
        """Wait until nothing is in flight or pending."""
        while self.busy:
            assert self._worker is not None
            await asyncio.shield(self._worker)

    def raise_if_failed(self) -> None:
        if self._error is None:
            return
        if isinstance(self._error, GraphDeployError):
            raise self._error
        raise GraphDeployError(f"Failed to deploy the subgraph: {self._error}") from self._error

    async def aclose(self) -> None:
        """Cancel the in-flight deploy, if any, and drop the pending one."""
        self._pending = None
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
