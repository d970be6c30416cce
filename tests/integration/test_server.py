"""Integration tests for the Network Insight MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from netinsight.core.server.app import create_app
from netinsight.core.storage.blob_store import MemoryBlobStore


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


ALL_EXPECTED_TOOLS = [
    "health_check",
    "generate_insights",
    "insights_summary",
    "insights_by_group",
    "list_environment_profiles",
    "evaluate_metric",
    "record_snapshot",
    "baseline_summary",
    "baseline_thresholds",
    "clear_baseline_data",
]


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def server(blob_store, scheduler, clock):
    mcp = create_app(
        blob_store_override=blob_store,
        scheduler_override=scheduler,
        clock_override=clock,
    )
    yield mcp
    mcp.baseline.close()


@pytest.fixture
def client(server):
    """Create an MCP client connected to an in-memory server."""
    return Client(server)


def test_server_starts_and_lists_tools(client):
    """Server should start and expose all registered tools."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_returns_ok(client):
    """health_check tool should return status ok."""
    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            result_text = str(result)
            assert "ok" in result_text
            assert "Network Insight" in result_text
            assert "override" in result_text
    _run(_check())


def test_profile_registry_resource(client):
    """The profile registry resource lists every packaged profile."""
    async def _check():
        async with client:
            contents = await client.read_resource("profile://wireless/registry")
            return json.loads(contents[0].text)
    data = _run(_check())
    assert data["domain"] == "wireless"
    assert data["profile_count"] == 7
    assert set(data["insight_groups"]) == {
        "network_health", "capacity_planning", "anomaly_detection", "predictive_maintenance",
    }


def test_recorded_samples_survive_restart(blob_store, scheduler, clock):
    """Samples recorded on one server instance are reloaded by the next."""
    first = create_app(blob_store_override=blob_store, scheduler_override=scheduler, clock_override=clock)

    async def _record():
        async with Client(first) as client:
            for rfqi in (72, 78, 84):
                await client.call_tool(
                    "record_snapshot", {"rfqi": rfqi, "client_count": 30, "ap_online_count": 3}
                )
    _run(_record())
    first.baseline.close()

    second = create_app(blob_store_override=blob_store, scheduler_override=scheduler, clock_override=clock)
    try:
        assert second.baseline.store.get_sample_count() == 3
    finally:
        second.baseline.close()
