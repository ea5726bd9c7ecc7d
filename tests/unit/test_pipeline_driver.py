"""Tests for the pipeline driver (one-shot and watch modes)."""

from __future__ import annotations

import asyncio

import pytest

from graphdeploy.build import BaseCompiler, BuildOrchestrator
from graphdeploy.core.config import PipelineConfig
from graphdeploy.core.exceptions import (
    ConfigurationError,
    DeployProtocolError,
    DeployTransportError,
    GraphDeployError,
    MigrationError,
    WatchSetupError,
)
from graphdeploy.deploy import Deployed, ProtocolError, TransportError
from graphdeploy.migrations import MigrationDescriptor, RunDecision
from graphdeploy.pipeline import EXIT_FAILURE, EXIT_OK, PipelineDriver, check_deploy_settings

# ============================================================================
# Fakes
# ============================================================================


class FakeCompiler(BaseCompiler):
    """Yields a scripted hash sequence; watch mode emits it then stops."""

    def __init__(self, hashes: list[str | None], *, watch_error: Exception | None = None):
        self.hashes = list(hashes)
        self.watch_error = watch_error
        self.compiles = 0

    async def compile(self) -> str | None:
        self.compiles += 1
        return self.hashes[0]

    async def watch_and_compile(self, on_build=None):
        if self.watch_error is not None:
            raise self.watch_error
        for content_hash in self.hashes:
            self.compiles += 1
            on_build(content_hash)
            # Give the deploy queue a turn between rebuilds
            await asyncio.sleep(0)


class FakeClient:
    def __init__(self, outcomes: dict[str, object] | None = None):
        self.calls: list[dict] = []
        self.outcomes = outcomes or {}

    async def deploy(self, name: str, content_hash: str):
        self.calls.append({"name": name, "ipfs_hash": content_hash})
        await asyncio.sleep(0)
        return self.outcomes.get(content_hash, Deployed(f"http://node:8020/{name}"))

    async def aclose(self) -> None:
        pass


class MigrationProbe:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.ran = False

    @property
    def descriptors(self) -> list[MigrationDescriptor]:
        async def predicate(config):
            return RunDecision.run()

        async def apply(config):
            self.ran = True
            if self.fail:
                raise RuntimeError("manifest is read-only")

        return [MigrationDescriptor(name="probe", predicate=predicate, apply=apply)]


@pytest.fixture()
def config(tmp_path) -> PipelineConfig:
    return PipelineConfig(
        manifest=tmp_path / "subgraph.yaml",
        node="http://localhost",
        ipfs="http://localhost:5001",
        subgraph_name="user/gravity",
    )


def _driver(config, compiler, client=None, migrations=None) -> PipelineDriver:
    return PipelineDriver(
        config,
        orchestrator=BuildOrchestrator(compiler),
        client=client,
        migrations=migrations if migrations is not None else [],
    )


# ============================================================================
# Configuration checks
# ============================================================================


class TestCheckDeploySettings:
    def test_all_present(self, config):
        check_deploy_settings(config)

    def test_reports_every_missing_field(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            check_deploy_settings(PipelineConfig(manifest=tmp_path / "subgraph.yaml"))
        err = exc_info.value
        assert err.missing == ("subgraph_name", "node", "ipfs")
        assert "-n/--subgraph-name" in str(err)
        assert "-g/--node" in str(err)
        assert "-i/--ipfs" in str(err)

    def test_reports_only_missing_field(self, config):
        with pytest.raises(ConfigurationError) as exc_info:
            check_deploy_settings(config.model_copy(update={"ipfs": None}))
        assert exc_info.value.missing == ("ipfs",)

    @pytest.mark.asyncio
    async def test_nothing_runs_when_misconfigured(self, config):
        compiler = FakeCompiler(["QmHash123"])
        client = FakeClient()
        probe = MigrationProbe()
        driver = _driver(
            config.model_copy(update={"node": None}), compiler, client, probe.descriptors
        )
        with pytest.raises(ConfigurationError):
            await driver.deploy()
        assert not probe.ran
        assert compiler.compiles == 0
        assert client.calls == []


# ============================================================================
# One-shot
# ============================================================================


class TestOneShot:
    @pytest.mark.asyncio
    async def test_success_deploys_once(self, config):
        client = FakeClient()
        status = await _driver(config, FakeCompiler(["QmHash123"]), client).deploy()
        assert status == EXIT_OK
        assert client.calls == [{"name": "user/gravity", "ipfs_hash": "QmHash123"}]

    @pytest.mark.asyncio
    async def test_build_failure_skips_deploy(self, config):
        client = FakeClient()
        status = await _driver(config, FakeCompiler([None]), client).deploy()
        assert status == EXIT_FAILURE
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_transport_error_is_fatal(self, config):
        client = FakeClient({"QmHash123": TransportError("ECONNREFUSED")})
        with pytest.raises(DeployTransportError, match="ECONNREFUSED"):
            await _driver(config, FakeCompiler(["QmHash123"]), client).deploy()
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_protocol_error_is_fatal(self, config):
        client = FakeClient({"QmHash123": ProtocolError("invalid hash")})
        with pytest.raises(DeployProtocolError, match="invalid hash"):
            await _driver(config, FakeCompiler(["QmHash123"]), client).deploy()

    @pytest.mark.asyncio
    async def test_migration_failure_gates_build(self, config):
        compiler = FakeCompiler(["QmHash123"])
        client = FakeClient()
        probe = MigrationProbe(fail=True)
        with pytest.raises(MigrationError):
            await _driver(config, compiler, client, probe.descriptors).deploy()
        assert probe.ran
        assert compiler.compiles == 0
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_migrations_run_before_build(self, config):
        probe = MigrationProbe()
        compiler = FakeCompiler(["QmHash123"])
        await _driver(config, compiler, FakeClient(), probe.descriptors).deploy()
        assert probe.ran


# ============================================================================
# Watch
# ============================================================================


class TestWatch:
    @pytest.fixture()
    def watch_config(self, config):
        return config.model_copy(update={"watch": True})

    @pytest.mark.asyncio
    async def test_failed_builds_never_deploy(self, watch_config):
        client = FakeClient()
        status = await _driver(watch_config, FakeCompiler([None, "QmA", "QmB"]), client).deploy()
        assert status == EXIT_OK
        assert [c["ipfs_hash"] for c in client.calls] == ["QmA", "QmB"]
        assert all(c["name"] == "user/gravity" for c in client.calls)

    @pytest.mark.asyncio
    async def test_watch_setup_failure_is_fatal(self, watch_config):
        compiler = FakeCompiler([], watch_error=WatchSetupError("no such directory"))
        with pytest.raises(WatchSetupError):
            await _driver(watch_config, compiler, FakeClient()).deploy()

    @pytest.mark.asyncio
    async def test_unexpected_watch_error_is_wrapped(self, watch_config):
        compiler = FakeCompiler([], watch_error=OSError("inotify limit reached"))
        with pytest.raises(GraphDeployError, match="Failed to watch"):
            await _driver(watch_config, compiler, FakeClient()).deploy()

    @pytest.mark.asyncio
    async def test_deploy_failure_ends_watch(self, watch_config):
        client = FakeClient({"QmA": TransportError("ECONNRESET")})
        with pytest.raises(DeployTransportError):
            await _driver(watch_config, FakeCompiler(["QmA", "QmB"]), client).deploy()
        assert [c["ipfs_hash"] for c in client.calls] == ["QmA"]


# ============================================================================
# Build only
# ============================================================================


class TestBuild:
    @pytest.mark.asyncio
    async def test_build_does_not_need_node(self, tmp_path):
        config = PipelineConfig(manifest=tmp_path / "subgraph.yaml")
        assert await _driver(config, FakeCompiler(["QmA"])).build() == EXIT_OK

    @pytest.mark.asyncio
    async def test_build_failure_status(self, tmp_path):
        config = PipelineConfig(manifest=tmp_path / "subgraph.yaml")
        assert await _driver(config, FakeCompiler([None])).build() == EXIT_FAILURE

    @pytest.mark.asyncio
    async def test_build_watch(self, tmp_path):
        config = PipelineConfig(manifest=tmp_path / "subgraph.yaml", watch=True)
        compiler = FakeCompiler(["QmA", None])
        assert await _driver(config, compiler).build() == EXIT_OK
        assert compiler.compiles == 2
