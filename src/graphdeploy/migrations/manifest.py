"""Manifest helpers shared by the migrations."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

GRAPH_TS_PACKAGE = "@graphprotocol/graph-ts"


def load_manifest(manifest_file: Path) -> dict[str, Any] | None:
    """Parse the manifest, returning None if it is missing or malformed.

    The compiler reports unreadable manifests; migrations only need to know
    whether there is anything to migrate.
    """
    try:
        data = yaml.safe_load(manifest_file.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.debug("Could not load manifest %s: %s", manifest_file, e)
        return None
    return data if isinstance(data, dict) else None


def mapping_api_versions(manifest: dict[str, Any]) -> set[str]:
    """Collect the mapping apiVersions of all data sources and templates."""
    versions: set[str] = set()
    for section in ("dataSources", "templates"):
        for entry in manifest.get(section) or []:
            if not isinstance(entry, dict):
                continue
            mapping = entry.get("mapping")
            if isinstance(mapping, dict) and "apiVersion" in mapping:
                versions.add(str(mapping["apiVersion"]))
    return versions


def has_mapping_api_version(manifest_file: Path, version: str) -> bool:
    manifest = load_manifest(manifest_file)
    if manifest is None:
        return False
    return version in mapping_api_versions(manifest)


def replace_mapping_api_version(manifest_file: Path, old: str, new: str) -> None:
    """Rewrite apiVersion entries in place.

    Works on the raw text so comments and formatting survive.
    """
    source = manifest_file.read_text(encoding="utf-8")
    pattern = re.compile(r"(apiVersion:\s*['\"]?)" + re.escape(old) + r"(['\"]?)")
    manifest_file.write_text(pattern.sub(r"\g<1>" + new + r"\g<2>", source), encoding="utf-8")


def find_graph_ts_version(source_dir: Path) -> str | None:
    """Version of graph-ts installed in the nearest node_modules, if any."""
    for directory in (source_dir, *source_dir.parents):
        package_json = directory / "node_modules" / GRAPH_TS_PACKAGE / "package.json"
        if not package_json.is_file():
            continue
        try:
            return json.loads(package_json.read_text(encoding="utf-8")).get("version")
        except (OSError, ValueError) as e:
            logger.debug("Could not read %s: %s", package_json, e)
            return None
    return None


def parse_version(version: str) -> tuple[int, ...]:
    """Numeric release tuple of a semver string ("0.5.0-alpha.1" -> (0, 5, 0))."""
    release = version.strip().lstrip("v").split("-", 1)[0].split("+", 1)[0]
    parts: list[int] = []
    for piece in release.split("."):
        match = re.match(r"\d+", piece)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)
