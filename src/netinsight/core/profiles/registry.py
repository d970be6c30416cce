"""Profile registry: in-memory index of environment profiles."""

from __future__ import annotations

import logging

from netinsight.core.profiles.models import (
    FALLBACK_PROFILE_ID,
    EnvironmentProfile,
    ProfileError,
)

logger = logging.getLogger(__name__)


class ProfileRegistry:
    """In-memory registry of all loaded environment profiles."""

    def __init__(self) -> None:
        self._profiles: dict[str, EnvironmentProfile] = {}

    def register(self, profile: EnvironmentProfile) -> None:
        """Add a profile. Ids are case-insensitive and must be unique."""
        key = profile.id.lower()
        if key in self._profiles:
            raise ProfileError(f"Duplicate profile id registered: {profile.id!r}")
        self._profiles[key] = profile

    def get(self, profile_id: str) -> EnvironmentProfile | None:
        """Look up a profile by id."""
        return self._profiles.get(profile_id.lower())

    def require(self, profile_id: str) -> EnvironmentProfile:
        """Look up a profile by id, raising ProfileError when unknown."""
        profile = self.get(profile_id)
        if profile is None:
            raise ProfileError(f"Unknown environment profile: {profile_id!r}")
        return profile

    def get_or_default(self, profile_id: str | None) -> EnvironmentProfile:
        """Look up a profile, falling back to the campus profile."""
        if profile_id:
            profile = self.get(profile_id)
            if profile is not None:
                return profile
            logger.warning("Unknown profile %r; falling back to %r", profile_id, FALLBACK_PROFILE_ID)
        return self.require(FALLBACK_PROFILE_ID)

    def all(self) -> list[EnvironmentProfile]:
        """Return all registered profiles in registration order."""
        return list(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, profile_id: object) -> bool:
        return isinstance(profile_id, str) and profile_id.lower() in self._profiles
