"""
Response models for chuk-mcp-hazard tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from pydantic import BaseModel, ConfigDict, Field


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")

    def to_text(self) -> str:
        return f"Error: {self.error}"


# ---------------------------------------------------------------------------
# Discovery responses
# ---------------------------------------------------------------------------


class PresetInfo(BaseModel):
    """Summary of a built-in hazard colour preset."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Preset identifier (e.g., tsunami)")
    name: str = Field(..., description="Hazard name")
    levels: list[int] = Field(..., description="Configured hazard levels")
    water_colors: list[str] = Field(..., description="Base-map water colours (hex)")

    def to_text(self) -> str:
        levels = ", ".join(str(lv) for lv in self.levels)
        return f"{self.id}: {self.name} (levels {levels}; {len(self.water_colors)} water colours)"


class PresetsResponse(BaseModel):
    """Response model for listing hazard presets."""

    model_config = ConfigDict(extra="forbid")

    presets: list[PresetInfo] = Field(..., description="Available presets")
    default: str = Field(..., description="Default preset identifier")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message, f"Default: {self.default}", ""]
        for p in self.presets:
            lines.append(f"  {p.to_text()}")
        return "\n".join(lines)


class DEMSourceInfo(BaseModel):
    """A DEM tile source and the zoom range it is tried at."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., description="Source name")
    url: str = Field(..., description="Tile URL template")
    minzoom: int = Field(..., description="Coarsest zoom tried")
    maxzoom: int = Field(..., description="Finest zoom tried (first)")
    decimal_precision: int = Field(..., description="Decimal precision of the source data")

    def to_text(self) -> str:
        zooms = (
            f"z{self.maxzoom}"
            if self.minzoom == self.maxzoom
            else f"z{self.maxzoom}-z{self.minzoom}"
        )
        return f"{self.title} ({zooms}, {self.decimal_precision} dp): {self.url}"


class DEMSourcesResponse(BaseModel):
    """Response model for listing default DEM sources."""

    model_config = ConfigDict(extra="forbid")

    sources: list[DEMSourceInfo] = Field(..., description="DEM sources in precedence order")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message, ""]
        for i, s in enumerate(self.sources, 1):
            lines.append(f"  {i}. {s.to_text()}")
        return "\n".join(lines)


class StatusResponse(BaseModel):
    """Response model for server status queries."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(default="chuk-mcp-hazard", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")
    default_preset: str = Field(..., description="Default hazard preset")
    available_presets: list[str] = Field(..., description="Available preset identifiers")
    storage_provider: str = Field(..., description="Active storage provider (memory/filesystem/s3)")
    artifact_store_available: bool = Field(
        default=False, description="Whether artifact store is available"
    )
    cache_tiles: int = Field(default=0, description="Tiles currently cached", ge=0)
    cache_size_mb: float = Field(default=0.0, description="Current tile cache size in megabytes")
    cache_max_mb: float = Field(default=0.0, description="Tile cache budget in megabytes")

    def to_text(self) -> str:
        store_status = "available" if self.artifact_store_available else "not available"
        lines = [
            f"{self.server} v{self.version}",
            f"Default preset: {self.default_preset}",
            f"Presets: {', '.join(self.available_presets)}",
            f"Storage: {self.storage_provider}",
            f"Artifact store: {store_status}",
            f"Cache: {self.cache_tiles} tiles, "
            f"{self.cache_size_mb:.1f} / {self.cache_max_mb:.1f} MB",
        ]
        return "\n".join(lines)


class CacheClearResponse(BaseModel):
    """Response model for clearing the tile cache."""

    model_config = ConfigDict(extra="forbid")

    tiles_cleared: int = Field(..., description="Number of tiles removed", ge=0)
    size_mb: float = Field(..., description="Megabytes released", ge=0)
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        return self.message


class CapabilitiesResponse(BaseModel):
    """Response model for server capabilities listing."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    presets: list[PresetInfo] = Field(..., description="Built-in hazard presets")
    default_preset: str = Field(..., description="Default preset identifier")
    merge_strategies: list[str] = Field(..., description="Multi-source merge strategies")
    dem_sources: list[str] = Field(..., description="Default DEM source titles, in order")
    tool_count: int = Field(..., description="Number of available tools", ge=0)
    llm_guidance: str = Field(..., description="LLM-friendly usage guidance for the server")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Tools: {self.tool_count}",
            f"Default preset: {self.default_preset}",
            f"Presets: {', '.join(p.id for p in self.presets)}",
            f"Merge strategies: {', '.join(self.merge_strategies)}",
            f"DEM sources: {', '.join(self.dem_sources)}",
            f"Guidance: {self.llm_guidance}",
        ]
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Analysis responses
# ---------------------------------------------------------------------------


class LevelStatInfo(BaseModel):
    """Tally for one hazard level."""

    model_config = ConfigDict(extra="forbid")

    level: int = Field(..., description="Hazard level", ge=0)
    name: str | None = Field(None, description="Level name from the hazard config")
    description: str | None = Field(None, description="Level description")
    count: int = Field(..., description="Sample points at this level", ge=0)
    ratio: float = Field(..., description="Percentage of all sample points", ge=0, le=100)


class NearestPointInfo(BaseModel):
    """Closest sample point of a level to the reference location."""

    model_config = ConfigDict(extra="forbid")

    level: int = Field(..., description="Hazard level", ge=0)
    lat: float = Field(..., description="Latitude of the nearest point")
    lon: float = Field(..., description="Longitude of the nearest point")
    distance_m: float = Field(..., description="Distance from the reference in metres", ge=0)


class ReferenceInfo(BaseModel):
    """Hazard level at the reference location."""

    model_config = ConfigDict(extra="forbid")

    lat: float = Field(..., description="Reference latitude")
    lon: float = Field(..., description="Reference longitude")
    level: int | None = Field(None, description="Level at the reference (None if unresolved)")
    is_water: bool = Field(False, description="Whether the reference lies on water")


class GridPointInfo(BaseModel):
    """A classified sample point."""

    model_config = ConfigDict(extra="forbid")

    lat: float = Field(..., description="Latitude")
    lon: float = Field(..., description="Longitude")
    tile: list[int] = Field(..., description="Tile [z, x, y]")
    pixel: list[int] = Field(..., description="Pixel [x, y] inside the tile")
    level: int | None = Field(None, description="Merged hazard level")
    is_water: bool = Field(False, description="Whether the base map shows water here")


class AnalysisResponse(BaseModel):
    """Response model for polygon hazard analysis."""

    model_config = ConfigDict(extra="forbid")

    hazard: str = Field(..., description="Hazard name")
    zoom: int = Field(..., description="Sampling zoom")
    grid_size_m: float = Field(..., description="Sample spacing in metres")
    merge_strategy: str = Field(..., description="Strategy used to merge hazard sources")
    total_points: int = Field(..., description="Number of sample points", ge=0)
    water_count: int = Field(..., description="Points on water (excluded from levels)", ge=0)
    water_ratio: float = Field(..., description="Percentage of points on water", ge=0, le=100)
    stats: list[LevelStatInfo] = Field(..., description="Per-level tallies")
    nearest: list[NearestPointInfo] = Field(
        default_factory=list, description="Nearest point per level to the reference"
    )
    reference: ReferenceInfo | None = Field(None, description="Level at the reference location")
    tiles_fetched: int = Field(..., description="Unique (tile, source) pairs requested", ge=0)
    tiles_with_data: int = Field(..., description="Pairs that returned image data", ge=0)
    artifact_ref: str | None = Field(None, description="GeoJSON grid artifact reference")
    grid: list[GridPointInfo] | None = Field(None, description="Classified sample points")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"Hazard analysis: {self.hazard}",
            f"Grid: {self.total_points} points at {self.grid_size_m:g}m (zoom {self.zoom})",
            f"Merge strategy: {self.merge_strategy}",
            f"Tiles: {self.tiles_with_data}/{self.tiles_fetched} with data",
            f"Water: {self.water_count} points ({self.water_ratio:.1f}%)",
        ]
        for s in self.stats:
            label = f"Level {s.level}" + (f" ({s.name})" if s.name else "")
            lines.append(f"  {label}: {s.count} points ({s.ratio:.1f}%)")
        if self.reference is not None:
            level = "unresolved" if self.reference.level is None else str(self.reference.level)
            water = ", water" if self.reference.is_water else ""
            lines.append(
                f"Reference ({self.reference.lat:.6f}, {self.reference.lon:.6f}): "
                f"level {level}{water}"
            )
        for n in self.nearest:
            lines.append(f"  Nearest level {n.level}: {n.distance_m:.1f}m")
        if self.artifact_ref:
            lines.append(f"Grid artifact: {self.artifact_ref}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Elevation responses
# ---------------------------------------------------------------------------


class ElevationResponse(BaseModel):
    """Response model for single-point elevation lookup."""

    model_config = ConfigDict(extra="forbid")

    lat: float = Field(..., description="Latitude of the query point")
    lon: float = Field(..., description="Longitude of the query point")
    zoom: int = Field(..., description="Zoom of the tile that answered")
    elevation_m: float | None = Field(None, description="Elevation in metres (None if no data)")
    source: str = Field(..., description="DEM source that answered (empty if none)")
    precision: int = Field(..., description="Decimal precision of the answering source", ge=0)
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        if self.elevation_m is None:
            return f"No elevation data at ({self.lat:.6f}, {self.lon:.6f})"
        lines = [
            f"Elevation at ({self.lat:.6f}, {self.lon:.6f}): "
            f"{self.elevation_m:.1f}m",
            f"Source: {self.source} (zoom {self.zoom})",
        ]
        return "\n".join(lines)


class ElevationPointInfo(BaseModel):
    """Elevation for one point of a multi-point query."""

    model_config = ConfigDict(extra="forbid")

    lat: float = Field(..., description="Latitude")
    lon: float = Field(..., description="Longitude")
    elevation_m: float | None = Field(None, description="Elevation in metres (None if no data)")
    source: str = Field(..., description="DEM source that answered")


class MultiElevationResponse(BaseModel):
    """Response model for multi-point elevation lookup."""

    model_config = ConfigDict(extra="forbid")

    point_count: int = Field(..., description="Number of points queried", ge=1)
    resolved_count: int = Field(..., description="Points with elevation data", ge=0)
    points: list[ElevationPointInfo] = Field(..., description="Per-point results")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [self.message]
        for p in self.points:
            elev = "no data" if p.elevation_m is None else f"{p.elevation_m}m ({p.source})"
            lines.append(f"  ({p.lat:.6f}, {p.lon:.6f}): {elev}")
        return "\n".join(lines)
