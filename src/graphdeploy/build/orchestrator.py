"""Build orchestration on top of a compiler."""

from __future__ import annotations

import logging
from typing import NoReturn

from .compiler import BaseCompiler
from .types import BuildCallback, BuildEvent, event_from_hash

logger = logging.getLogger(__name__)


class BuildOrchestrator:
    """Turns compiler results into build events.

    Usage:
        orchestrator = BuildOrchestrator(CommandCompiler(config))
        event = await orchestrator.compile_once()
        await orchestrator.watch_and_compile(on_build)  # never returns normally
    """

    def __init__(self, compiler: BaseCompiler) -> None:
        self._compiler = compiler

    async def compile_once(self) -> BuildEvent:
        """Build once; the compiler has already reported any failure."""
        return event_from_hash(await self._compiler.compile())

    async def watch_and_compile(self, on_build: BuildCallback | None = None) -> NoReturn:
        """Rebuild on every change and emit one event per rebuild.

        Failed rebuilds keep the session alive. Setup failures propagate
        as ``WatchSetupError``.
        """

        def _on_hash(content_hash: str | None) -> None:
            event = event_from_hash(content_hash)
            logger.debug("Build event: %s", event)
            if on_build is not None:
                on_build(event)

        await self._compiler.watch_and_compile(_on_hash)
