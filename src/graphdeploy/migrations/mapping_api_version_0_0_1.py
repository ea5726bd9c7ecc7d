"""Bump mapping apiVersion from 0.0.1 to 0.0.2."""

from __future__ import annotations

from graphdeploy.core.config import PipelineConfig
from graphdeploy.core.exceptions import ConfigurationError

from .manifest import has_mapping_api_version, replace_mapping_api_version
from .types import MigrationDescriptor, RunDecision


async def predicate(config: PipelineConfig) -> RunDecision:
    if config.manifest is None:
        return RunDecision.skip()
    if has_mapping_api_version(config.manifest, "0.0.1"):
        return RunDecision.run()
    return RunDecision.skip()


async def apply(config: PipelineConfig) -> None:
    if config.manifest is None:
        raise ConfigurationError("No subgraph manifest configured", missing=("manifest",))
    replace_mapping_api_version(config.manifest, "0.0.1", "0.0.2")


migration = MigrationDescriptor(
    name="Bump mapping apiVersion from 0.0.1 to 0.0.2",
    predicate=predicate,
    apply=apply,
)
