"""Pipeline driver: migrate, build, deploy.

Two modes, selected by ``config.watch``:

- one-shot: migrations -> compile once -> deploy once
- watch: migrations -> rebuild on every change -> deploy each successful build

Errors are raised to the caller; exit statuses are returned, never enforced.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Sequence

from graphdeploy.build import (
    BuildCallback,
    BuildEvent,
    BuildFailed,
    BuildOrchestrator,
    Built,
    CommandCompiler,
)
from graphdeploy.core.config import PipelineConfig
from graphdeploy.core.exceptions import ConfigurationError, GraphDeployError
from graphdeploy.deploy import CoalescingDeployQueue, DeploymentClient, raise_for_outcome
from graphdeploy.migrations import MIGRATIONS, MigrationDescriptor, apply_migrations

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

# (config field, operator hint)
REQUIRED_DEPLOY_SETTINGS: tuple[tuple[str, str], ...] = (
    ("subgraph_name", "No subgraph name specified with -n/--subgraph-name"),
    ("node", "No Graph node specified with -g/--node"),
    ("ipfs", "No IPFS node specified with -i/--ipfs"),
)


def check_deploy_settings(config: PipelineConfig) -> None:
    """Raise ConfigurationError naming every missing deploy setting."""
    missing = [(name, hint) for name, hint in REQUIRED_DEPLOY_SETTINGS if not getattr(config, name)]
    if missing:
        raise ConfigurationError(
            "\n".join(hint for _, hint in missing),
            missing=[name for name, _ in missing],
        )


class PipelineDriver:
    """Composes migrations, the build orchestrator and the deployment client.

    Collaborators default to the real implementations built from ``config``;
    pass them explicitly to substitute them.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        orchestrator: BuildOrchestrator | None = None,
        client: DeploymentClient | None = None,
        migrations: Sequence[MigrationDescriptor] = MIGRATIONS,
    ) -> None:
        self._cfg = config
        self._orchestrator = orchestrator
        self._client = client
        self._migrations = migrations

    @property
    def orchestrator(self) -> BuildOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = BuildOrchestrator(CommandCompiler(self._cfg))
        return self._orchestrator

    async def build(self) -> int:
        """Migrate and compile without deploying."""
        await apply_migrations(self._cfg, self._migrations)

        if self._cfg.watch:
            await self._watch(self.orchestrator, None)
            return EXIT_OK

        event = await self.orchestrator.compile_once()
        return EXIT_OK if isinstance(event, Built) else EXIT_FAILURE

    async def deploy(self) -> int:
        """Migrate, compile and deploy; once or on every change."""
        check_deploy_settings(self._cfg)

        orchestrator = self.orchestrator
        owns_client = self._client is None
        client = self._client or DeploymentClient.from_config(self._cfg)
        try:
            await apply_migrations(self._cfg, self._migrations)
            if self._cfg.watch:
                return await self._watch_and_deploy(orchestrator, client)
            return await self._deploy_once(orchestrator, client)
        finally:
            if owns_client:
                await client.aclose()

    async def _deploy_once(self, orchestrator: BuildOrchestrator, client: DeploymentClient) -> int:
        event = await orchestrator.compile_once()
        if isinstance(event, BuildFailed):
            logger.debug("Compilation failed, not deploying")
            return EXIT_FAILURE

        assert self._cfg.subgraph_name is not None
        raise_for_outcome(await client.deploy(self._cfg.subgraph_name, event.content_hash))
        return EXIT_OK

    async def _watch_and_deploy(
        self, orchestrator: BuildOrchestrator, client: DeploymentClient
    ) -> int:
        assert self._cfg.subgraph_name is not None
        queue = CoalescingDeployQueue(functools.partial(client.deploy, self._cfg.subgraph_name))

        def on_build(event: BuildEvent) -> None:
            if isinstance(event, Built):
                queue.submit(event.content_hash)
            else:
                logger.debug("Build failed, waiting for the next change")

        failure_task = asyncio.create_task(queue.wait_for_failure())
        try:
            await self._watch(orchestrator, on_build, failure_task)
            await queue.join()
            queue.raise_if_failed()
            return EXIT_OK
        finally:
            failure_task.cancel()
            await asyncio.gather(failure_task, return_exceptions=True)
            await queue.aclose()

    async def _watch(
        self,
        orchestrator: BuildOrchestrator,
        on_build: BuildCallback | None,
        stop: asyncio.Task | None = None,
    ) -> None:
        """Run a watch session until it ends, fails, or ``stop`` completes.

        ``stop`` resolving to an exception (a fatal deploy) ends the session
        with that exception.
        """
        watch_task = asyncio.create_task(orchestrator.watch_and_compile(on_build))
        waiting = {watch_task} if stop is None else {watch_task, stop}
        try:
            done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
            if stop is not None and stop in done:
                error = stop.result()
                if isinstance(error, GraphDeployError):
                    raise error
                raise GraphDeployError(f"Failed to deploy the subgraph: {error}") from error

            try:
                watch_task.result()
            except GraphDeployError:
                raise
            except Exception as e:
                raise GraphDeployError(
                    f"Failed to watch, compile or deploy the subgraph: {e}"
                ) from e
        finally:
            watch_task.cancel()
            await asyncio.gather(watch_task, return_exceptions=True)


__all__ = [
    "EXIT_OK",
    "EXIT_FAILURE",
    "REQUIRED_DEPLOY_SETTINGS",
    "PipelineDriver",
    "check_deploy_settings",
]
