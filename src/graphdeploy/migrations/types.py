"""Migration descriptors, run decisions and outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from graphdeploy.core.config import PipelineConfig


class DecisionKind(str, Enum):
    RUN = "run"
    SKIP_SILENTLY = "skip_silently"
    SKIP_WITH_REASON = "skip_with_reason"


@dataclass(frozen=True)
class RunDecision:
    """Result of a migration predicate.

    Use the constructors instead of building instances directly:

        RunDecision.run()
        RunDecision.skip()
        RunDecision.skip_with_reason("graph-ts dependency too old")
    """

    kind: DecisionKind
    reason: str | None = None

    @classmethod
    def run(cls) -> "RunDecision":
        return cls(DecisionKind.RUN)

    @classmethod
    def skip(cls) -> "RunDecision":
        return cls(DecisionKind.SKIP_SILENTLY)

    @classmethod
    def skip_with_reason(cls, reason: str) -> "RunDecision":
        return cls(DecisionKind.SKIP_WITH_REASON, reason)

    @classmethod
    def from_hint(cls, hint: Any) -> "RunDecision":
        """Adapt a legacy boolean/string predicate result.

        Strings are skip reasons, ``True`` means run, and every other value
        (``False``, ``None``, ``0``...) is a silent skip.
        """
        if isinstance(hint, RunDecision):
            return hint
        if isinstance(hint, str):
            return cls.skip_with_reason(hint)
        if hint is True:
            return cls.run()
        return cls.skip()

    @property
    def should_run(self) -> bool:
        return self.kind is DecisionKind.RUN


# Plain bool or str results are accepted and adapted with RunDecision.from_hint
Predicate = Callable[[PipelineConfig], Awaitable["RunDecision | bool | str | None"]]
Apply = Callable[[PipelineConfig], Awaitable[None]]


@dataclass(frozen=True)
class MigrationDescriptor:
    """A named, versioned manifest migration.

    Attributes:
        name: Operator-facing description of the migration.
        predicate: Decides whether the migration needs to run.
        apply: Performs the migration; may raise.
    """

    name: str
    predicate: Predicate
    apply: Apply


class MigrationStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationOutcome:
    """What happened to a single migration during one run."""

    name: str
    status: MigrationStatus
    reason: str | None = None
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.status is MigrationStatus.FAILED

    def describe(self) -> str:
        if self.status is MigrationStatus.SKIPPED and self.reason:
            return f"skipped: {self.reason}"
        if self.status is MigrationStatus.FAILED:
            return f"failed: {self.error}"
        return self.status.value


__all__ = [
    "DecisionKind",
    "RunDecision",
    "MigrationDescriptor",
    "MigrationStatus",
    "MigrationOutcome",
]
