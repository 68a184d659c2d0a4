"""
Hazard Manager — central orchestrator for tile sampling operations.

Owns the tile cache and fetcher, and runs the analysis pipeline:
grid sampling -> tile preload -> per-point classification -> statistics.
Image decoding runs in worker threads via asyncio.to_thread().
"""

import asyncio
import json
import logging
import os
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from ..constants import (
    DEFAULT_BASE_TILE_URL,
    DEFAULT_DEM_SOURCES,
    DEFAULT_DEM_ZOOM,
    DEFAULT_GRID_SIZE_M,
    DEFAULT_MERGE_STRATEGY,
    DEFAULT_PRESET,
    DEFAULT_ZOOM,
    FETCH_TIMEOUT_S,
    HAZARD_PRESETS,
    PRELOAD_CONCURRENCY,
    TILE_CACHE_MAX_BYTES,
    TILE_CACHE_TTL_S,
    EnvVar,
    ErrorMessages,
)
from ..models.config import DEMConfig, HazardConfig, HazardTileConfig
from .classify import HazardClassifier, PixelArray, pixel_rgb, read_tile_pixels
from .elevation import ElevationResolver, ElevationResult, load_dem_sources
from .grid import SamplePoint, sample_grid, unique_tiles
from .merge import RiskCandidate, merge_risk_levels, validate_strategy
from .stats import ReferenceResult, RiskStatistics, aggregate, resolve_reference
from .tile_cache import TileCache
from .tile_fetcher import TileFetcher
from .tiles import PixelCoord, TileCoord, is_url_template

logger = logging.getLogger(__name__)

# (url template, tile) -> decoded RGBA array, or None when the tile had no data
TilePixels = dict[tuple[str, TileCoord], PixelArray | None]


@dataclass
class AnalysisResult:
    """Result of a polygon hazard analysis."""

    hazard_name: str
    hazard_config: HazardConfig
    statistics: RiskStatistics
    grid: list[SamplePoint]
    tiles_fetched: int
    tiles_with_data: int
    merge_strategy: str
    reference: ReferenceResult | None = None
    artifact_ref: str | None = None


def _env_number(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}; using {default}")
        return default


class HazardManager:
    """Central manager for hazard and elevation tile sampling."""

    def __init__(
        self,
        cache: TileCache | None = None,
        fetcher: TileFetcher | None = None,
        default_preset: str = DEFAULT_PRESET,
    ) -> None:
        self.default_preset = default_preset
        if fetcher is not None:
            self.fetcher = fetcher
            self.cache = fetcher.cache
        else:
            self.cache = cache if cache is not None else TileCache()
            self.fetcher = TileFetcher(cache=self.cache)
        self.elevation = ElevationResolver(self.fetcher)

    @classmethod
    def from_env(cls) -> "HazardManager":
        """Build a manager using HAZARD_* environment overrides."""
        cache = TileCache(
            max_size_bytes=int(
                _env_number(EnvVar.CACHE_MAX_MB, TILE_CACHE_MAX_BYTES / (1024 * 1024))
                * 1024
                * 1024
            ),
            ttl_seconds=_env_number(EnvVar.CACHE_TTL_S, TILE_CACHE_TTL_S),
        )
        fetcher = TileFetcher(
            cache=cache,
            timeout=_env_number(EnvVar.FETCH_TIMEOUT_S, FETCH_TIMEOUT_S),
            concurrency=int(_env_number(EnvVar.PRELOAD_CONCURRENCY, PRELOAD_CONCURRENCY)),
        )
        return cls(fetcher=fetcher)

    # ------------------------------------------------------------------
    # Discovery (sync, no I/O)
    # ------------------------------------------------------------------

    def list_presets(self) -> list[dict]:
        """List built-in hazard colour presets."""
        return [
            {
                "id": preset_id,
                "name": preset["name"],
                "levels": sorted(preset["levels"]),
                "water_colors": list(preset["water_colors"]),
            }
            for preset_id, preset in HAZARD_PRESETS.items()
        ]

    def get_preset(self, preset: str) -> HazardConfig:
        if preset not in HAZARD_PRESETS:
            raise ValueError(
                ErrorMessages.UNKNOWN_PRESET.format(preset, ", ".join(HAZARD_PRESETS))
            )
        return HazardConfig.model_validate(HAZARD_PRESETS[preset])

    def list_dem_sources(self) -> list[DEMConfig]:
        return [DEMConfig.model_validate(s) for s in DEFAULT_DEM_SOURCES]

    def cache_stats(self) -> dict:
        return self.cache.stats()

    def clear_cache(self) -> dict:
        """Drop every cached tile, returning the stats from before clearing."""
        stats = self.cache.stats()
        self.cache.clear()
        logger.info(f"Tile cache cleared ({stats['count']} tiles)")
        return stats

    # ------------------------------------------------------------------
    # Analysis (async)
    # ------------------------------------------------------------------

    async def analyze_polygon(
        self,
        polygon: dict,
        hazard_tiles: Sequence[HazardTileConfig | dict[str, Any] | str],
        base_tile_url: str = DEFAULT_BASE_TILE_URL,
        grid_size_m: float = DEFAULT_GRID_SIZE_M,
        zoom: int = DEFAULT_ZOOM,
        hazard_config: HazardConfig | dict[str, Any] | None = None,
        merge_strategy: str = DEFAULT_MERGE_STRATEGY,
        reference: tuple[float, float] | None = None,
        store_grid: bool = False,
    ) -> AnalysisResult:
        """Sample a polygon against hazard overlays and summarise risk levels.

        Args:
            polygon: GeoJSON Polygon geometry
            hazard_tiles: Hazard overlay sources (URL templates or configs)
            base_tile_url: Base map template used for water detection
            grid_size_m: Sample spacing in metres
            zoom: Tile zoom to sample at
            hazard_config: Colour table (default preset if None)
            merge_strategy: max, average, weighted, or priority
            reference: Optional (lat, lon) for nearest-point and point level
            store_grid: Store the classified grid as a GeoJSON artifact

        Returns:
            AnalysisResult with statistics and the classified grid
        """
        # Validation happens before any network activity
        validate_strategy(merge_strategy)
        sources = self._load_hazard_tiles(hazard_tiles)
        if not is_url_template(base_tile_url):
            raise ValueError(ErrorMessages.INVALID_URL_TEMPLATE.format(base_tile_url))
        config = self._load_hazard_config(hazard_config)
        points = sample_grid(polygon, grid_size_m, zoom)

        templates = list(dict.fromkeys([s.url for s in sources] + [base_tile_url]))
        tiles = unique_tiles(points)
        requests = [(template, tile) for tile in tiles for template in templates]
        await self.fetcher.preload(requests)

        decoded = await self._decode_tiles(requests)
        classifier = HazardClassifier(config)
        weights = [s.weight for s in sources]
        priorities = [s.priority for s in sources]

        def classify_at(tile: TileCoord, pixel: PixelCoord) -> tuple[int, bool]:
            candidates = []
            for source in sources:
                rgb = pixel_rgb(decoded.get((source.url, tile)), pixel.x, pixel.y)
                level = classifier.classify(*rgb)
                info = config.level_info(level)
                candidates.append(
                    RiskCandidate(
                        level=level,
                        name=info.name if info else None,
                        color=info.color if info else None,
                    )
                )
            merged = merge_risk_levels(candidates, merge_strategy, weights, priorities)
            base_rgb = pixel_rgb(decoded.get((base_tile_url, tile)), pixel.x, pixel.y)
            return merged.level, classifier.is_water(*base_rgb)

        classified = []
        for point in points:
            level, is_water = classify_at(point.tile, point.pixel)
            classified.append(replace(point, level=level, is_water=is_water))

        statistics = aggregate(classified, config.levels.keys(), reference)

        reference_result = None
        if reference is not None:

            def lookup(tile: TileCoord, pixel: PixelCoord) -> tuple[int, bool] | None:
                if not any((s.url, tile) in decoded for s in sources):
                    return None
                return classify_at(tile, pixel)

            reference_result = resolve_reference(
                reference[0], reference[1], classified, zoom, lookup
            )

        artifact_ref = None
        if store_grid:
            try:
                artifact_ref = await self._store_grid(classified, config.name, zoom)
            except Exception as e:
                logger.warning(f"Grid artifact not stored: {e}")

        return AnalysisResult(
            hazard_name=config.name,
            hazard_config=config,
            statistics=statistics,
            grid=classified,
            tiles_fetched=len(requests),
            tiles_with_data=sum(1 for v in decoded.values() if v is not None),
            merge_strategy=merge_strategy,
            reference=reference_result,
            artifact_ref=artifact_ref,
        )

    # ------------------------------------------------------------------
    # Elevation (async)
    # ------------------------------------------------------------------

    async def get_elevation(
        self,
        lat: float,
        lon: float,
        zoom: int = DEFAULT_DEM_ZOOM,
        dem_sources: Sequence[DEMConfig | dict[str, Any]] | None = None,
    ) -> ElevationResult:
        """Elevation at a single point from the first DEM source with data."""
        return await self.elevation.resolve(lat, lon, dem_sources, zoom)

    async def get_elevations(
        self,
        points: Sequence[Sequence[float]],
        zoom: int = DEFAULT_DEM_ZOOM,
        dem_sources: Sequence[DEMConfig | dict[str, Any]] | None = None,
    ) -> list[ElevationResult]:
        """Elevations for several [lat, lon] points, sharing the tile cache."""
        if not points:
            raise ValueError(ErrorMessages.NO_POINTS)
        sources = load_dem_sources(dem_sources)
        results = []
        for lat, lon in points:
            results.append(await self.elevation.resolve(lat, lon, sources, zoom))
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_hazard_tiles(
        self, hazard_tiles: Sequence[HazardTileConfig | dict[str, Any] | str]
    ) -> list[HazardTileConfig]:
        sources = []
        for item in hazard_tiles:
            if isinstance(item, HazardTileConfig):
                sources.append(item)
            elif isinstance(item, str):
                sources.append(HazardTileConfig(url=item))
            else:
                sources.append(HazardTileConfig.model_validate(item))
        if not sources:
            raise ValueError(ErrorMessages.NO_HAZARD_TILES)
        return sources

    def _load_hazard_config(
        self, hazard_config: HazardConfig | dict[str, Any] | None
    ) -> HazardConfig:
        if hazard_config is None:
            return self.get_preset(self.default_preset)
        if isinstance(hazard_config, HazardConfig):
            return hazard_config
        return HazardConfig.model_validate(hazard_config)

    async def _decode_tiles(self, requests: list[tuple[str, TileCoord]]) -> TilePixels:
        """Fetch (cache-first) and decode every tile the grid touches."""
        decoded: TilePixels = {}
        for template, tile in requests:
            data = await self.fetcher.fetch(template, tile.z, tile.x, tile.y)
            if not data:
                decoded[(template, tile)] = None
                continue
            decoded[(template, tile)] = await asyncio.to_thread(read_tile_pixels, data)
        return decoded

    def _get_store(self) -> Any:
        """Get the artifact store instance."""
        from chuk_mcp_server import get_artifact_store

        store = get_artifact_store()
        if store is None:
            raise RuntimeError(ErrorMessages.NO_ARTIFACT_STORE)
        return store

    async def _store_grid(self, points: list[SamplePoint], hazard_name: str, zoom: int) -> str:
        """Store the classified grid as a GeoJSON FeatureCollection artifact."""
        collection = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [p.lon, p.lat]},
                    "properties": {
                        "level": p.level,
                        "is_water": p.is_water,
                        "tile": list(p.tile),
                        "pixel": list(p.pixel),
                    },
                }
                for p in points
            ],
        }
        try:
            store = self._get_store()
            ref = f"hazard/{uuid.uuid4().hex[:12]}.geojson"
            await store.store(
                ref,
                json.dumps(collection).encode("utf-8"),
                mime_type="application/geo+json",
                metadata={
                    "schema_version": "1.0",
                    "type": "hazard_grid",
                    "hazard": hazard_name,
                    "zoom": zoom,
                    "point_count": len(points),
                },
                summary=f"Hazard sample grid ({hazard_name}, {len(points)} points)",
            )
            return ref
        except Exception as e:
            logger.error(f"Failed to store grid: {e}")
            raise
