"""Build events emitted by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class Built:
    """The artifact was compiled and published under ``content_hash``."""

    content_hash: str


@dataclass(frozen=True)
class BuildFailed:
    """The compiler gave no hash; it has already reported why."""


BuildEvent = Union[Built, BuildFailed]
BuildCallback = Callable[[BuildEvent], None]
HashCallback = Callable[[Union[str, None]], None]


def event_from_hash(content_hash: str | None) -> BuildEvent:
    if content_hash is None:
        return BuildFailed()
    return Built(content_hash)


__all__ = ["Built", "BuildFailed", "BuildEvent", "BuildCallback", "HashCallback", "event_from_hash"]
