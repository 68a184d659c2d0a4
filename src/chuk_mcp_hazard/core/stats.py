"""
Aggregation of classified sample points.

Counts points per hazard level (water points are tallied separately),
computes ratios, and optionally locates the nearest point of each level
to a reference location.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np

from ..constants import NO_RISK_LEVEL
from .grid import GEOD, SamplePoint
from .tiles import PixelCoord, TileCoord, lat_lon_to_tile

logger = logging.getLogger(__name__)

# (tile, pixel) -> (level, is_water), or None when the tile was never fetched
PixelLookup = Callable[[TileCoord, PixelCoord], tuple[int, bool] | None]


@dataclass(frozen=True)
class LevelStat:
    level: int
    count: int
    ratio: float  # percent of all sample points


@dataclass(frozen=True)
class NearestPoint:
    level: int
    lat: float
    lon: float
    distance_m: float


@dataclass(frozen=True)
class ReferenceResult:
    lat: float
    lon: float
    level: int | None
    is_water: bool = False


@dataclass
class RiskStatistics:
    """Per-level tallies for one analysis."""

    total: int
    water_count: int
    water_ratio: float
    stats: list[LevelStat] = field(default_factory=list)
    nearest: list[NearestPoint] = field(default_factory=list)

    @property
    def level_counts(self) -> dict[int, int]:
        return {s.level: s.count for s in self.stats}


def _ratio(count: int, total: int) -> float:
    return (count / total) * 100.0 if total else 0.0


def great_circle_distances(
    lat: float, lon: float, lats: Sequence[float], lons: Sequence[float]
) -> np.ndarray:
    """Geodesic distances in metres from (lat, lon) to each point."""
    n = len(lats)
    if n == 0:
        return np.array([], dtype=float)
    _, _, dist = GEOD.inv(
        np.full(n, lon, dtype=float),
        np.full(n, lat, dtype=float),
        np.asarray(lons, dtype=float),
        np.asarray(lats, dtype=float),
    )
    return np.asarray(dist, dtype=float)


def nearest_by_level(
    points: Sequence[SamplePoint], lat: float, lon: float
) -> list[NearestPoint]:
    """Closest non-water point of every level present in ``points``."""
    by_level: dict[int, list[SamplePoint]] = {}
    for p in points:
        if p.is_water:
            continue
        level = p.level if p.level is not None else NO_RISK_LEVEL
        by_level.setdefault(level, []).append(p)

    nearest = []
    for level in sorted(by_level):
        group = by_level[level]
        distances = great_circle_distances(lat, lon, [p.lat for p in group], [p.lon for p in group])
        idx = int(np.argmin(distances))
        best = group[idx]
        nearest.append(
            NearestPoint(level=level, lat=best.lat, lon=best.lon, distance_m=float(distances[idx]))
        )
    return nearest


def aggregate(
    points: Sequence[SamplePoint],
    levels: Iterable[int] = (),
    reference: tuple[float, float] | None = None,
) -> RiskStatistics:
    """Tally classified points.

    Args:
        points: Classified sample points
        levels: Configured levels, reported even when their count is zero
        reference: Optional (lat, lon) to compute nearest point per level

    Returns:
        RiskStatistics with per-level counts and ratios
    """
    counts: dict[int, int] = {level: 0 for level in levels}
    water = 0
    for p in points:
        if p.is_water:
            water += 1
            continue
        level = p.level if p.level is not None else NO_RISK_LEVEL
        counts[level] = counts.get(level, 0) + 1

    total = len(points)
    stats = [
        LevelStat(level=lvl, count=counts[lvl], ratio=_ratio(counts[lvl], total))
        for lvl in sorted(counts)
    ]

    nearest: list[NearestPoint] = []
    if reference is not None:
        nearest = nearest_by_level(points, reference[0], reference[1])

    return RiskStatistics(
        total=total,
        water_count=water,
        water_ratio=_ratio(water, total),
        stats=stats,
        nearest=nearest,
    )


def resolve_reference(
    lat: float,
    lon: float,
    points: Sequence[SamplePoint],
    zoom: int,
    lookup: PixelLookup | None = None,
) -> ReferenceResult:
    """Hazard level at a reference location.

    A grid point on the same tile pixel answers directly. Otherwise the
    pixel is classified through ``lookup``, which only consults tiles the
    analysis already fetched; the level stays None when that tile is absent.
    """
    tile, pixel = lat_lon_to_tile(lat, lon, zoom)
    for p in points:
        if p.tile == tile and p.pixel == pixel:
            return ReferenceResult(lat=lat, lon=lon, level=p.level, is_water=p.is_water)

    if lookup is not None:
        found = lookup(tile, pixel)
        if found is not None:
            level, is_water = found
            return ReferenceResult(lat=lat, lon=lon, level=level, is_water=is_water)

    logger.debug(f"Reference ({lat}, {lon}) falls on unfetched tile {tile}; level unresolved")
    return ReferenceResult(lat=lat, lon=lon, level=None)
