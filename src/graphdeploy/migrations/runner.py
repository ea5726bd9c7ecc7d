"""Concurrent migration runner.

All registered migrations are dispatched at once and joined at a single
barrier. Each task records its own outcome, so the aggregate result is only
reported once every migration has settled. Failed migrations are not rolled
back and migrations still in flight are not cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from graphdeploy.core.config import PipelineConfig
from graphdeploy.core.exceptions import MigrationError

from . import mapping_api_version_0_0_1, mapping_api_version_0_0_2
from .types import (
    DecisionKind,
    MigrationDescriptor,
    MigrationOutcome,
    MigrationStatus,
    RunDecision,
)

logger = logging.getLogger(__name__)

# Version-ordered; the order is for reporting only, execution is concurrent.
MIGRATIONS: tuple[MigrationDescriptor, ...] = (
    mapping_api_version_0_0_1.migration,
    mapping_api_version_0_0_2.migration,
)


async def _run_migration(
    migration: MigrationDescriptor, config: PipelineConfig
) -> MigrationOutcome:
    try:
        decision = RunDecision.from_hint(await migration.predicate(config))
        if decision.should_run:
            logger.info("Apply migration: %s", migration.name)
            await migration.apply(config)
            return MigrationOutcome(migration.name, MigrationStatus.APPLIED)

        if decision.kind is DecisionKind.SKIP_WITH_REASON:
            logger.info("Skip migration: %s (%s)", migration.name, decision.reason)
        else:
            logger.info("Skip migration: %s", migration.name)
        return MigrationOutcome(migration.name, MigrationStatus.SKIPPED, reason=decision.reason)
    except Exception as e:
        logger.error("Migration failed: %s: %s", migration.name, e)
        return MigrationOutcome(migration.name, MigrationStatus.FAILED, error=e)


async def apply_migrations(
    config: PipelineConfig,
    migrations: Sequence[MigrationDescriptor] = MIGRATIONS,
) -> list[MigrationOutcome]:
    """Run every migration concurrently and wait for all of them.

    Returns:
        One outcome per migration, in registration order.

    Raises:
        MigrationError: If any migration failed. Carries all outcomes and
            chains the first failure.
    """
    logger.info("Apply migrations")
    outcomes = list(await asyncio.gather(*(_run_migration(m, config) for m in migrations)))

    failures = [o for o in outcomes if o.failed]
    if failures:
        first = failures[0]
        raise MigrationError(
            f"Failed to apply migrations: {first.name}: {first.error}",
            outcomes=outcomes,
        ) from first.error

    return outcomes
