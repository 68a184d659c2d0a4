"""
Discovery tools — presets, DEM sources, status, capabilities, cache control.

These tools require no network I/O and return information about the
built-in hazard presets, DEM sources and server configuration.
"""

import logging
import os

from ...constants import (
    HAZARD_PRESETS,
    MERGE_STRATEGIES,
    EnvVar,
    ServerConfig,
    StorageProvider,
    SuccessMessages,
)
from ...models.responses import (
    CacheClearResponse,
    CapabilitiesResponse,
    DEMSourceInfo,
    DEMSourcesResponse,
    ErrorResponse,
    PresetInfo,
    PresetsResponse,
    StatusResponse,
    format_response,
)

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


def register_discovery_tools(mcp, manager):
    """Register discovery tools with the MCP server."""

    @mcp.tool()
    async def hazard_list_presets(output_mode: str = "json") -> str:
        """List built-in hazard colour presets (level colours and water colours).

        Use this to see which hazard overlays can be classified without
        supplying a custom hazard_config.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Available presets and the default preset id
        """
        try:
            presets = [PresetInfo(**p) for p in manager.list_presets()]
            response = PresetsResponse(
                presets=presets,
                default=manager.default_preset,
                message=SuccessMessages.PRESETS_LIST.format(len(presets)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_list_presets failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def hazard_list_dem_sources(output_mode: str = "json") -> str:
        """List the default DEM tile sources in the order they are tried.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            DEM sources with zoom range and decimal precision
        """
        try:
            sources = [
                DEMSourceInfo(**s.model_dump()) for s in manager.list_dem_sources()
            ]
            response = DEMSourcesResponse(
                sources=sources,
                message=SuccessMessages.DEM_SOURCES_LIST.format(len(sources)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_list_dem_sources failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def hazard_status(output_mode: str = "json") -> str:
        """Get server status including version, presets, storage and tile cache usage.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status information
        """
        try:
            provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)

            store_available = False
            try:
                manager._get_store()
                store_available = True
            except Exception:
                pass

            cache = manager.cache_stats()
            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                default_preset=manager.default_preset,
                available_presets=list(HAZARD_PRESETS),
                storage_provider=provider,
                artifact_store_available=store_available,
                cache_tiles=cache["count"],
                cache_size_mb=round(cache["size_bytes"] / _MB, 1),
                cache_max_mb=round(cache["max_size_bytes"] / _MB, 1),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_status failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def hazard_capabilities(output_mode: str = "json") -> str:
        """Get full server capabilities including presets, merge strategies and DEM sources.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Complete server capabilities
        """
        try:
            presets = [PresetInfo(**p) for p in manager.list_presets()]

            response = CapabilitiesResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                presets=presets,
                default_preset=manager.default_preset,
                merge_strategies=MERGE_STRATEGIES,
                dem_sources=[s.title for s in manager.list_dem_sources()],
                tool_count=8,
                llm_guidance=(
                    "Use hazard_analyze_polygon with a GeoJSON Polygon and one or more "
                    "hazard tile URL templates ({z}/{x}/{y}) to count sample points per "
                    "hazard level. Points on water in the base map are counted separately. "
                    "Pass reference_lat/reference_lon to get the level at a location and "
                    "the nearest point of every level. Use hazard_elevation for point "
                    "elevations from GSI DEM tiles. Coarser grid_size_m keeps large "
                    "polygons fast."
                ),
                message=f"{ServerConfig.NAME} v{ServerConfig.VERSION} capabilities",
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_capabilities failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def hazard_clear_cache(output_mode: str = "json") -> str:
        """Drop every cached tile so the next analysis refetches from the network.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Number of tiles and megabytes released
        """
        try:
            stats = manager.clear_cache()
            size_mb = stats["size_bytes"] / _MB
            response = CacheClearResponse(
                tiles_cleared=stats["count"],
                size_mb=round(size_mb, 2),
                message=SuccessMessages.CACHE_CLEARED.format(stats["count"], size_mb),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_clear_cache failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
