"""
Elevation lookup across prioritised DEM tile sources.

Each source expands into one attempt per zoom (finest zoom first). All
attempts' tiles are preloaded concurrently, then attempts are tried in
order and the first one yielding a real elevation wins.
"""

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..constants import (
    DEFAULT_DEM_SOURCES,
    DEFAULT_DEM_ZOOM,
    ELEVATION_DECIMALS,
    ErrorMessages,
)
from ..models.config import DEMConfig
from .classify import decode_elevation, pixel_in_bounds, pixel_rgb, read_tile_pixels
from .tile_fetcher import TileFetcher
from .tiles import lat_lon_to_tile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DEMAttempt:
    """One DEM source at one zoom level."""

    config: DEMConfig
    zoom: int


@dataclass
class ElevationResult:
    """Result of a single-point elevation lookup."""

    elevation: float | None
    source: str
    precision: int
    lat: float
    lon: float
    zoom: int


def round_elevation(elevation: float) -> float:
    """Round half-up to ELEVATION_DECIMALS; a source's precision is metadata only."""
    scale = 10**ELEVATION_DECIMALS
    return math.floor(elevation * scale + 0.5) / scale


def load_dem_sources(sources: Sequence[DEMConfig | dict[str, Any]] | None) -> list[DEMConfig]:
    if sources is None:
        sources = DEFAULT_DEM_SOURCES
    configs = [s if isinstance(s, DEMConfig) else DEMConfig.model_validate(s) for s in sources]
    if not configs:
        raise ValueError(ErrorMessages.NO_DEM_SOURCES)
    return configs


def expand_dem_sources(configs: Sequence[DEMConfig]) -> list[DEMAttempt]:
    """Expand sources into attempts, preserving source order, max zoom first."""
    attempts = []
    for config in configs:
        lo = min(config.minzoom, config.maxzoom)
        hi = max(config.minzoom, config.maxzoom)
        for z in range(hi, lo - 1, -1):
            attempts.append(DEMAttempt(config=config, zoom=z))
    return attempts


class ElevationResolver:
    """Resolve point elevations from DEM PNG tiles."""

    def __init__(self, fetcher: TileFetcher) -> None:
        self.fetcher = fetcher

    async def resolve(
        self,
        lat: float,
        lon: float,
        sources: Sequence[DEMConfig | dict[str, Any]] | None = None,
        zoom: int = DEFAULT_DEM_ZOOM,
    ) -> ElevationResult:
        """Elevation at (lat, lon) from the first source with data.

        Args:
            lat: Latitude
            lon: Longitude
            sources: DEM sources in precedence order (GSI defaults if None)
            zoom: Zoom reported when no source has data

        Returns:
            ElevationResult; elevation is None when every source is empty
        """
        attempts = expand_dem_sources(load_dem_sources(sources))
        resolved = [(a, *lat_lon_to_tile(lat, lon, a.zoom)) for a in attempts]

        # Latency only: the loop below fetches (or re-fetches) on its own
        await self.fetcher.preload((a.config.url, tile) for a, tile, _ in resolved)

        for attempt, tile, pixel in resolved:
            data = await self.fetcher.fetch(attempt.config.url, tile.z, tile.x, tile.y)
            if not data:
                continue

            pixels = await asyncio.to_thread(read_tile_pixels, data)
            if pixels is None or not pixel_in_bounds(pixels, pixel.x, pixel.y):
                continue

            elevation = decode_elevation(*pixel_rgb(pixels, pixel.x, pixel.y))
            if elevation is None:
                logger.debug(f"{attempt.config.title} z{attempt.zoom}: no-data pixel")
                continue

            return ElevationResult(
                elevation=round_elevation(elevation),
                source=attempt.config.title,
                precision=attempt.config.decimal_precision,
                lat=lat,
                lon=lon,
                zoom=attempt.zoom,
            )

        return ElevationResult(elevation=None, source="", precision=0, lat=lat, lon=lon, zoom=zoom)
