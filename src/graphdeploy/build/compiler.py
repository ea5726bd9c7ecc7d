"""Compiler interface and the external-command adapter.

The manifest compiler itself (parsing, code generation, IPFS upload) lives
outside this package. ``CommandCompiler`` drives it as a subprocess:

    graph-compile <manifest> --output-dir <dir> --output-format <wasm|wast> [--ipfs <addr>]

A zero exit status means success and the last non-empty stdout line is the
content hash of the published artifact.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import NoReturn

from graphdeploy.core.config import PipelineConfig
from graphdeploy.core.exceptions import ConfigurationError, WatchSetupError

from .types import HashCallback

logger = logging.getLogger(__name__)

# Directories never considered part of the watched sources
IGNORED_DIRS = frozenset({"node_modules", ".git", "__pycache__"})


class BaseCompiler(ABC):
    """Compiler interface.

    Implementations must provide:
    - `compile()` returning the content hash, or None on failure
    - `watch_and_compile()` which rebuilds on every relevant change

    Failures are reported by the compiler itself; callers only see the
    missing hash.
    """

    @abstractmethod
    async def compile(self) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def watch_and_compile(self, on_build: HashCallback | None = None) -> NoReturn:
        """Watch the sources and call ``on_build`` once per rebuild.

        Only returns by raising: ``WatchSetupError`` if watching cannot start.
        """
        raise NotImplementedError


class CommandCompiler(BaseCompiler):
    """Runs an external compile command and polls the sources for changes."""

    def __init__(self, config: PipelineConfig) -> None:
        if config.manifest is None:
            raise ConfigurationError("No subgraph manifest given", missing=("manifest",))
        self._cfg = config
        self._manifest = config.manifest
        self._argv = shlex.split(config.compiler_command)
        if not self._argv:
            raise ConfigurationError("Compiler command is empty", missing=("compiler_command",))

    def command(self) -> list[str]:
        argv = [
            *self._argv,
            str(self._manifest),
            "--output-dir",
            str(self._cfg.output_dir),
            "--output-format",
            self._cfg.output_format,
        ]
        if self._cfg.ipfs:
            argv += ["--ipfs", self._cfg.ipfs]
        return argv

    async def compile(self) -> str | None:
        argv = self.command()
        logger.info("Compile subgraph: %s", self._manifest)
        logger.debug("Compiler command: %s", shlex.join(argv))

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Failed to start compiler %s: %s", argv[0], e)
            return None

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            # Do not leave the compiler publishing after the invocation ended
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            raise
        err_text = stderr.decode(errors="replace").strip()

        if proc.returncode != 0:
            logger.error("Failed to compile subgraph (exit status %s)", proc.returncode)
            if err_text:
                logger.error("%s", err_text)
            return None

        if err_text:
            logger.debug("%s", err_text)

        lines = [line.strip() for line in stdout.decode(errors="replace").splitlines()]
        lines = [line for line in lines if line]
        if not lines:
            logger.error("Compiler finished without reporting a content hash")
            return None

        content_hash = lines[-1]
        logger.info("Build completed: %s", content_hash)
        return content_hash

    async def watch_and_compile(self, on_build: HashCallback | None = None) -> NoReturn:
        source_dir = self._cfg.manifest_dir
        if not source_dir.is_dir():
            raise WatchSetupError(f"Cannot watch {source_dir}: not a directory")
        if shutil.which(self._argv[0]) is None:
            raise WatchSetupError(f"Compiler executable not found: {self._argv[0]}")

        logger.info("Watching subgraph files in %s", source_dir)
        snapshot = self.snapshot(source_dir)
        self._emit(on_build, await self.compile())

        while True:
            await asyncio.sleep(self._cfg.watch_interval)
            current = self.snapshot(source_dir)
            if current == snapshot:
                continue

            changed = sorted(
                str(path)
                for path in current.keys() | snapshot.keys()
                if current.get(path) != snapshot.get(path)
            )
            logger.info("File change detected: %s", ", ".join(changed[:5]))
            if len(changed) > 5:
                logger.info("... and %d more", len(changed) - 5)

            snapshot = current
            self._emit(on_build, await self.compile())

    def snapshot(self, source_dir: Path) -> dict[Path, int]:
        """Modification times of all watched files below ``source_dir``."""
        output_dir = self._cfg.output_dir.resolve()
        mtimes: dict[Path, int] = {}
        for root, dirs, files in os.walk(source_dir):
            root_path = Path(root)
            dirs[:] = [
                d
                for d in dirs
                if d not in IGNORED_DIRS and (root_path / d).resolve() != output_dir
            ]
            for name in files:
                path = root_path / name
                try:
                    mtimes[path] = path.stat().st_mtime_ns
                except FileNotFoundError:
                    # Deleted between listing and stat; the next poll sees it gone
                    continue
        return mtimes

    @staticmethod
    def _emit(on_build: HashCallback | None, content_hash: str | None) -> None:
        if on_build is not None:
            on_build(content_hash)


__all__ = ["BaseCompiler", "CommandCompiler", "IGNORED_DIRS"]
