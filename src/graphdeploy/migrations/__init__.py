"""Manifest migrations applied before every build."""

from .runner import MIGRATIONS, apply_migrations
from .types import (
    DecisionKind,
    MigrationDescriptor,
    MigrationOutcome,
    MigrationStatus,
    RunDecision,
)

__all__ = [
    "MIGRATIONS",
    "apply_migrations",
    "DecisionKind",
    "MigrationDescriptor",
    "MigrationOutcome",
    "MigrationStatus",
    "RunDecision",
]
