"""Profile loader: reads environment profile YAML definitions from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from netinsight.core.profiles.models import (
    EnvironmentProfile,
    ProfileError,
    ProfileThresholds,
)
from netinsight.core.profiles.registry import ProfileRegistry

logger = logging.getLogger(__name__)

# Packaged profile definitions live under src/netinsight/domains/wireless/profiles/
DEFAULT_PROFILE_DIR = (
    Path(__file__).resolve().parent.parent.parent / "domains" / "wireless" / "profiles"
)


def load_profile_directory(directory: str | Path, registry: ProfileRegistry) -> int:
    """Load all YAML profile definitions from a directory (recursively).

    Returns the number of profiles loaded.
    Skips files starting with underscore (like _schema.yaml).
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Profile directory does not exist: %s", directory)
        return 0

    count = 0
    for path in sorted(directory.rglob("*.yaml")):
        if path.name.startswith("_"):
            continue
        try:
            profile = load_profile_file(path)
            registry.register(profile)
            count += 1
            logger.info("Loaded environment profile: %s", profile.id)
        except Exception:
            logger.exception("Failed to load environment profile from %s", path)
    return count


def load_profile_file(path: Path) -> EnvironmentProfile:
    """Parse a YAML file into an EnvironmentProfile instance."""
    with open(path) as f:
        data: dict[str, Any] = yaml.safe_load(f)
    return profile_from_dict(data)


def profile_from_dict(data: dict[str, Any]) -> EnvironmentProfile:
    """Build a validated EnvironmentProfile from parsed YAML/JSON data."""
    if not isinstance(data, dict):
        raise ProfileError("Profile definition must be a mapping")
    thresholds = data.get("thresholds")
    if not isinstance(thresholds, dict):
        raise ProfileError(f"Profile {data.get('id')!r} has no thresholds mapping")

    return EnvironmentProfile(
        id=str(data["id"]).lower(),
        name=data.get("name", data["id"]),
        description=str(data.get("description", "")).strip(),
        thresholds=ProfileThresholds.from_dict(thresholds),
        adaptive=bool(data.get("adaptive", False)),
    )


def build_default_registry(directory: str | Path | None = None) -> ProfileRegistry:
    """Create a registry populated from ``directory`` (packaged profiles by default)."""
    registry = ProfileRegistry()
    load_profile_directory(directory or DEFAULT_PROFILE_DIR, registry)
    return registry
