"""Compiling subgraphs, once or on every change."""

from .compiler import BaseCompiler, CommandCompiler
from .orchestrator import BuildOrchestrator
from .types import BuildCallback, BuildEvent, Built, BuildFailed, event_from_hash

__all__ = [
    "BaseCompiler",
    "CommandCompiler",
    "BuildOrchestrator",
    "BuildCallback",
    "BuildEvent",
    "Built",
    "BuildFailed",
    "event_from_hash",
]
