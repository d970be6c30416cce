"""Network Insight MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import atexit
import logging
from pathlib import Path

from fastmcp import FastMCP

from netinsight.core.config.settings import Settings, get_settings
from netinsight.core.profiles.loader import DEFAULT_PROFILE_DIR, load_profile_directory
from netinsight.core.profiles.registry import ProfileRegistry
from netinsight.core.scheduling.debounce import Clock, Scheduler, system_now_ms
from netinsight.core.storage.blob_store import (
    BlobStore,
    EncryptedBlobStore,
    EncryptionError,
    FileBlobStore,
    MemoryBlobStore,
    SqliteBlobStore,
)
from netinsight.core.storage.database import InsightDatabase
from netinsight.domains.wireless.domain_logic.adaptive_baseline import AdaptiveBaseline
from netinsight.domains.wireless.domain_logic.baseline_store import BaselineSampleStore
from netinsight.domains.wireless.resources.profiles import register_profile_resources
from netinsight.domains.wireless.tools.baseline_tools import register_baseline_tools
from netinsight.domains.wireless.tools.insight_tools import register_insight_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Network Insight"
SERVER_VERSION = "0.1.0"


def _build_blob_store(settings: Settings) -> BlobStore:
    """Create the persistence backend selected in settings."""
    backend: BlobStore
    if settings.storage_backend == "memory":
        backend = MemoryBlobStore()
        logger.info("Baseline persistence: in-memory only")
    elif settings.storage_backend == "file":
        directory = Path(settings.storage_dir).expanduser()
        backend = FileBlobStore(directory)
        logger.info("Baseline persistence: files under %s", directory)
    else:
        db_path = settings.db_path
        if db_path != ":memory:":
            db_path = str(Path(db_path).expanduser())
        database = InsightDatabase(db_path)
        database.initialize()
        atexit.register(database.close)
        backend = SqliteBlobStore(database)
        logger.info(
            "Baseline persistence: %s (schema v%d)", db_path, database.get_schema_version()
        )

    if settings.encryption_key:
        try:
            return EncryptedBlobStore(backend, settings.encryption_key)
        except EncryptionError as exc:
            logger.error("Failed to initialize encryption: %s", exc)
            logger.warning("Continuing with unencrypted baseline storage")
    return backend


def create_app(
    *,
    blob_store_override: BlobStore | None = None,
    scheduler_override: Scheduler | None = None,
    clock_override: Clock | None = None,
    registry_override: ProfileRegistry | None = None,
) -> FastMCP:
    """Create and configure the Network Insight MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the environment profile registry
    3. Opens the baseline persistence backend
    4. Creates the sample store and adaptive baseline service
    5. Registers all tools and resources
    """
    settings = get_settings()
    clock = clock_override or system_now_ms

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Network Insight server. Turns wireless network telemetry snapshots "
            "into ranked diagnostic insight cards, and learns adaptive alerting "
            "thresholds from recorded telemetry."
        ),
    )

    # --- Environment profiles ---
    if registry_override is not None:
        registry = registry_override
    else:
        registry = ProfileRegistry()
        profile_dir = Path(settings.profiles_dir).expanduser() if settings.profiles_dir else DEFAULT_PROFILE_DIR
        profile_count = load_profile_directory(profile_dir, registry)
        logger.info("Loaded %d environment profiles from %s", profile_count, profile_dir)

    # --- Adaptive baseline ---
    blob_store = blob_store_override if blob_store_override is not None else _build_blob_store(settings)
    store = BaselineSampleStore(
        blob_store,
        key=settings.baseline_storage_key,
        capacity=settings.baseline_max_samples,
        delay_s=settings.baseline_save_debounce_s,
        scheduler=scheduler_override,
        clock=clock,
    )
    baseline = AdaptiveBaseline(store, clock=clock)
    # Final flush so no recorded sample is lost on interpreter exit
    atexit.register(baseline.close)

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "profiles_loaded": len(registry),
            "default_profile": settings.default_profile,
            "storage_backend": (
                "override" if blob_store_override is not None else settings.storage_backend
            ),
            "baseline_samples": store.get_sample_count(),
        }

    # --- Register tools ---
    register_insight_tools(
        server, registry, baseline, default_profile=settings.default_profile, clock=clock
    )
    register_baseline_tools(
        server, baseline, max_age_ms=int(settings.baseline_max_age_s * 1000)
    )
    logger.info("Insight and baseline tools registered")

    # --- Register resources ---
    register_profile_resources(server, registry)

    server.baseline = baseline  # type: ignore[attr-defined]
    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
