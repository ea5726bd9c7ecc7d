"""Tests for layered pipeline configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from graphdeploy.core.config import PipelineConfig, get_bool_env, get_env

_ENV_VARS = (
    "GRAPHDEPLOY_CONFIG_PATH",
    "GRAPHDEPLOY_NODE",
    "GRAPHDEPLOY_IPFS",
    "GRAPHDEPLOY_SUBGRAPH_NAME",
    "GRAPHDEPLOY_API_KEY",
    "GRAPHDEPLOY_OUTPUT_FORMAT",
    "GRAPHDEPLOY_WATCH",
    "GRAPHDEPLOY_WATCH_INTERVAL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment, .env and settings.toml."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestEnvHelpers:
    def test_get_env_strips_and_defaults(self, monkeypatch):
        monkeypatch.setenv("GRAPHDEPLOY_NODE", "  ")
        assert get_env("GRAPHDEPLOY_NODE", "fallback") == "fallback"
        monkeypatch.setenv("GRAPHDEPLOY_NODE", " http://node ")
        assert get_env("GRAPHDEPLOY_NODE") == "http://node"

    @pytest.mark.parametrize("raw,expected", [("yes", True), ("0", False), ("maybe", None)])
    def test_get_bool_env(self, monkeypatch, raw, expected):
        monkeypatch.setenv("GRAPHDEPLOY_WATCH", raw)
        assert get_bool_env("GRAPHDEPLOY_WATCH") is expected


class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.output_format == "wasm"
        assert config.verbosity == "info"
        assert config.watch is False
        assert config.node is None
        assert config.output_dir == Path.cwd() / "dist"

    def test_frozen(self):
        config = PipelineConfig(node="http://node")
        with pytest.raises(ValidationError):
            config.node = "http://other"

    def test_rejects_unknown_output_format(self):
        with pytest.raises(ValidationError):
            PipelineConfig(output_format="js")

    def test_log_level(self):
        assert PipelineConfig().log_level == logging.INFO
        assert PipelineConfig(verbosity="verbose").log_level == logging.DEBUG

    def test_manifest_dir(self, tmp_path):
        config = PipelineConfig(manifest=tmp_path / "sub" / "subgraph.yaml")
        assert config.manifest_dir == (tmp_path / "sub").resolve()


class TestLoad:
    def test_toml(self, tmp_path):
        (tmp_path / "settings.toml").write_text(
            'node = "http://toml-node"\nsubgraph_name = "user/toml"\n'
        )
        config = PipelineConfig.load()
        assert config.node == "http://toml-node"
        assert config.subgraph_name == "user/toml"
        assert config.loaded_from == (tmp_path / "settings.toml",)

    def test_env_beats_toml(self, tmp_path, monkeypatch):
        (tmp_path / "settings.toml").write_text('node = "http://toml-node"\n')
        monkeypatch.setenv("GRAPHDEPLOY_NODE", "http://env-node")
        assert PipelineConfig.load().node == "http://env-node"

    def test_overrides_beat_env(self, monkeypatch):
        monkeypatch.setenv("GRAPHDEPLOY_NODE", "http://env-node")
        monkeypatch.setenv("GRAPHDEPLOY_WATCH", "true")
        config = PipelineConfig.load(overrides={"node": "http://cli-node", "ipfs": None})
        assert config.node == "http://cli-node"
        assert config.watch is True

    def test_log_level_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert PipelineConfig.load().verbosity == "debug"

    def test_unknown_log_level_env_is_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        with caplog.at_level(logging.WARNING):
            config = PipelineConfig.load()
        assert config.verbosity == "info"
        assert "Ignoring LOG_LEVEL=warning" in caplog.text

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('output_format = "wast"\n')
        assert PipelineConfig.load(path).output_format == "wast"

    def test_broken_toml_is_ignored(self, tmp_path, caplog):
        (tmp_path / "settings.toml").write_text("node = \n")
        with caplog.at_level(logging.WARNING):
            config = PipelineConfig.load()
        assert config.node is None
        assert "Failed to load TOML config" in caplog.text
