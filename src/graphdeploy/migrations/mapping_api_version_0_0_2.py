"""Bump mapping apiVersion from 0.0.2 to 0.0.3.

Mappings at 0.0.3 need graph-ts 0.5.1 or later, so the migration waits until
the project has that dependency installed.
"""

from __future__ import annotations

from graphdeploy.core.config import PipelineConfig
from graphdeploy.core.exceptions import ConfigurationError

from .manifest import (
    find_graph_ts_version,
    has_mapping_api_version,
    parse_version,
    replace_mapping_api_version,
)
from .types import MigrationDescriptor, RunDecision

MIN_GRAPH_TS_VERSION = (0, 5, 1)


async def predicate(config: PipelineConfig) -> RunDecision:
    if config.manifest is None or not has_mapping_api_version(config.manifest, "0.0.2"):
        return RunDecision.skip()

    graph_ts_version = find_graph_ts_version(config.manifest_dir)
    if graph_ts_version is None:
        return RunDecision.skip_with_reason("graph-ts dependency not installed yet")
    if parse_version(graph_ts_version) < MIN_GRAPH_TS_VERSION:
        return RunDecision.skip_with_reason("graph-ts dependency too old")
    return RunDecision.run()


async def apply(config: PipelineConfig) -> None:
    if config.manifest is None:
        raise ConfigurationError("No subgraph manifest configured", missing=("manifest",))
    replace_mapping_api_version(config.manifest, "0.0.2", "0.0.3")


migration = MigrationDescriptor(
    name="Bump mapping apiVersion from 0.0.2 to 0.0.3",
    predicate=predicate,
    apply=apply,
)
