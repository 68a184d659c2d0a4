"""
Analysis tools — polygon hazard sampling.

Samples a polygon on a regular metric grid, classifies each point against
one or more hazard overlays, and summarises the hazard levels.
"""

import logging

from ...constants import (
    DEFAULT_BASE_TILE_URL,
    DEFAULT_GRID_SIZE_M,
    DEFAULT_MERGE_STRATEGY,
    DEFAULT_ZOOM,
    ErrorMessages,
    SuccessMessages,
)
from ...models.responses import (
    AnalysisResponse,
    ErrorResponse,
    GridPointInfo,
    LevelStatInfo,
    NearestPointInfo,
    ReferenceInfo,
    format_response,
)

logger = logging.getLogger(__name__)


def register_analysis_tools(mcp, manager):
    """Register analysis tools with the MCP server."""

    @mcp.tool()
    async def hazard_analyze_polygon(
        polygon: dict,
        hazard_tiles: list | None = None,
        hazard_tile_url: str | None = None,
        base_tile_url: str = DEFAULT_BASE_TILE_URL,
        grid_size_m: float = DEFAULT_GRID_SIZE_M,
        zoom: int = DEFAULT_ZOOM,
        preset: str | None = None,
        hazard_config: dict | None = None,
        merge_strategy: str = DEFAULT_MERGE_STRATEGY,
        reference_lat: float | None = None,
        reference_lon: float | None = None,
        store_grid: bool = False,
        include_grid: bool = False,
        output_mode: str = "json",
    ) -> str:
        """Count hazard levels over a polygon by sampling hazard map tiles.

        Every sample point is classified by the exact colour of its pixel in
        each hazard overlay. With several overlays the per-source levels are
        merged using merge_strategy. Points whose base-map pixel is a water
        colour are counted separately.

        Args:
            polygon: GeoJSON Polygon geometry ({"type": "Polygon", "coordinates": [...]})
            hazard_tiles: Hazard overlays, each a URL template or
                {"url": ..., "weight": ..., "priority": ...}
            hazard_tile_url: Single hazard overlay URL template (alternative to hazard_tiles)
            base_tile_url: Base map URL template used for water detection
            grid_size_m: Sample spacing in metres (default 10)
            zoom: Tile zoom to sample at (0-24, default 16)
            preset: Built-in colour preset id (default tsunami)
            hazard_config: Custom colour table {"name", "levels", "water_colors"}
            merge_strategy: max, average, weighted, or priority
            reference_lat: Optional reference latitude
            reference_lon: Optional reference longitude
            store_grid: Store the classified grid as a GeoJSON artifact
            include_grid: Include every classified sample point in the response
            output_mode: "json" or "text"

        Returns:
            Per-level counts and ratios, water share, and optional reference details
        """
        try:
            sources: list = list(hazard_tiles or [])
            if hazard_tile_url:
                sources.append(hazard_tile_url)
            if not sources:
                raise ValueError(ErrorMessages.NO_HAZARD_TILES)

            config = hazard_config
            if config is None and preset is not None:
                config = manager.get_preset(preset)

            reference = None
            if reference_lat is not None and reference_lon is not None:
                reference = (reference_lat, reference_lon)

            result = await manager.analyze_polygon(
                polygon=polygon,
                hazard_tiles=sources,
                base_tile_url=base_tile_url,
                grid_size_m=grid_size_m,
                zoom=zoom,
                hazard_config=config,
                merge_strategy=merge_strategy,
                reference=reference,
                store_grid=store_grid,
            )

            hazard = result.hazard_config
            stats = []
            for s in result.statistics.stats:
                info = hazard.level_info(s.level)
                stats.append(
                    LevelStatInfo(
                        level=s.level,
                        name=info.name if info else None,
                        description=info.description if info else None,
                        count=s.count,
                        ratio=round(s.ratio, 2),
                    )
                )

            nearest = [
                NearestPointInfo(
                    level=n.level,
                    lat=n.lat,
                    lon=n.lon,
                    distance_m=round(n.distance_m, 1),
                )
                for n in result.statistics.nearest
            ]

            reference_info = None
            if result.reference is not None:
                reference_info = ReferenceInfo(
                    lat=result.reference.lat,
                    lon=result.reference.lon,
                    level=result.reference.level,
                    is_water=result.reference.is_water,
                )

            grid = None
            if include_grid:
                grid = [
                    GridPointInfo(
                        lat=p.lat,
                        lon=p.lon,
                        tile=list(p.tile),
                        pixel=list(p.pixel),
                        level=p.level,
                        is_water=p.is_water,
                    )
                    for p in result.grid
                ]

            response = AnalysisResponse(
                hazard=result.hazard_name,
                zoom=zoom,
                grid_size_m=grid_size_m,
                merge_strategy=result.merge_strategy,
                total_points=result.statistics.total,
                water_count=result.statistics.water_count,
                water_ratio=round(result.statistics.water_ratio, 2),
                stats=stats,
                nearest=nearest,
                reference=reference_info,
                tiles_fetched=result.tiles_fetched,
                tiles_with_data=result.tiles_with_data,
                artifact_ref=result.artifact_ref,
                grid=grid,
                message=SuccessMessages.ANALYSIS_COMPLETE.format(
                    result.statistics.total,
                    result.statistics.water_count,
                    result.tiles_fetched,
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"hazard_analyze_polygon failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
