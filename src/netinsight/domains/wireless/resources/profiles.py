"""MCP Resources for environment profile discovery."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastmcp import FastMCP

from netinsight.domains.wireless.domain_logic.insight_models import INSIGHT_GROUP_META

if TYPE_CHECKING:
    from netinsight.core.profiles.registry import ProfileRegistry


def register_profile_resources(mcp: FastMCP, registry: ProfileRegistry) -> None:
    """Register environment profile discovery resources on the MCP server."""

    @mcp.resource("profile://wireless/registry")
    def wireless_profile_registry_resource() -> str:
        """Discover all environment profiles and insight groups."""
        profiles = registry.all()
        return json.dumps(
            {
                "domain": "wireless",
                "profile_count": len(profiles),
                "profiles": [p.to_dict() for p in profiles],
                "insight_groups": INSIGHT_GROUP_META,
            },
            indent=2,
        )
