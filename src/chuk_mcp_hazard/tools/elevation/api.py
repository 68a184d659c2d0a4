"""
Elevation tools — point elevation from DEM PNG tiles.

Sources are tried in precedence order; the first one with a real value at
the point answers. Multi-point queries run sequentially and share the
tile cache, so neighbouring points rarely refetch a tile.
"""

import logging

from ...constants import DEFAULT_DEM_ZOOM, SuccessMessages
from ...models.responses import (
    ElevationPointInfo,
    ElevationResponse,
    ErrorResponse,
    MultiElevationResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_elevation_tools(mcp, manager):
    """Register elevation tools with the MCP server."""

    @mcp.tool()
    async def hazard_elevation(
        lat: float,
        lon: float,
        zoom: int = DEFAULT_DEM_ZOOM,
        dem_sources: list[dict] | None = None,
        output_mode: str = "json",
    ) -> str:
        """Get ground elevation at a single point from DEM PNG tiles.

        Args:
            lat: Latitude
            lon: Longitude
            zoom: Zoom reported when no source has data (default 17)
            dem_sources: Custom DEM sources [{"title", "url", "minzoom", "maxzoom",
                "decimal_precision"}] in precedence order (GSI Japan if omitted)
            output_mode: "json" or "text"

        Returns:
            Elevation in metres and the source that answered, or null when no source has data
        """
        try:
            result = await manager.get_elevation(lat, lon, zoom=zoom, dem_sources=dem_sources)

            if result.elevation is None:
                message = SuccessMessages.ELEVATION_NOT_FOUND
            else:
                message = SuccessMessages.ELEVATION_FOUND.format(result.elevation, result.source)

            response = ElevationResponse(
                lat=result.lat,
                lon=result.lon,
                zoom=result.zoom,
                elevation_m=result.elevation,
                source=result.source,
                precision=result.precision,
                message=message,
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_elevation failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def hazard_elevation_points(
        points: list[list[float]],
        zoom: int = DEFAULT_DEM_ZOOM,
        dem_sources: list[dict] | None = None,
        output_mode: str = "json",
    ) -> str:
        """Get ground elevation at several points.

        Args:
            points: List of [lat, lon] pairs
            zoom: Zoom reported when no source has data (default 17)
            dem_sources: Custom DEM sources in precedence order (GSI Japan if omitted)
            output_mode: "json" or "text"

        Returns:
            Per-point elevations and how many points had data
        """
        try:
            results = await manager.get_elevations(points, zoom=zoom, dem_sources=dem_sources)

            infos = [
                ElevationPointInfo(
                    lat=r.lat,
                    lon=r.lon,
                    elevation_m=r.elevation,
                    source=r.source,
                )
                for r in results
            ]
            resolved = sum(1 for r in results if r.elevation is not None)

            response = MultiElevationResponse(
                point_count=len(infos),
                resolved_count=resolved,
                points=infos,
                message=SuccessMessages.ELEVATION_POINTS.format(resolved, len(infos)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_elevation_points failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
