"""
Polygon-constrained sample grid.

A regular lattice at a fixed ground spacing is laid over the polygon's
bounding box, centred so the leftover margin is split evenly on both
sides. Points covered by the polygon are kept and resolved to their tile
and pixel. Ordering is column-major (west to east, then south to north)
and fully determined by the inputs.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import shapely
from pyproj import Geod
from shapely.geometry import Polygon, shape

from ..constants import MAX_GRID_POINTS, MAX_ZOOM, MIN_ZOOM, ErrorMessages
from .tiles import PixelCoord, TileCoord, lat_lon_to_tile

logger = logging.getLogger(__name__)

GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class SamplePoint:
    """A grid point resolved to its tile/pixel; level is set by classification."""

    lat: float
    lon: float
    tile: TileCoord
    pixel: PixelCoord
    level: int | None = None
    is_water: bool = False


def validate_grid_params(grid_size_m: float, zoom: int) -> None:
    if not grid_size_m > 0:
        raise ValueError(ErrorMessages.INVALID_GRID_SIZE.format(grid_size_m))
    if not MIN_ZOOM <= zoom <= MAX_ZOOM:
        raise ValueError(ErrorMessages.INVALID_ZOOM.format(MIN_ZOOM, MAX_ZOOM, zoom))


def polygon_from_geojson(geometry: dict) -> Polygon:
    """Validate a GeoJSON Polygon geometry and build a shapely Polygon.

    Raises:
        ValueError: for non-Polygon geometries or an empty/short outer ring.
    """
    geom_type = geometry.get("type") if isinstance(geometry, dict) else type(geometry).__name__
    if geom_type != "Polygon":
        raise ValueError(ErrorMessages.NOT_A_POLYGON.format(geom_type))

    coordinates = geometry.get("coordinates") or []
    if not coordinates or not coordinates[0]:
        raise ValueError(ErrorMessages.EMPTY_POLYGON)
    if len(coordinates[0]) < 4:
        raise ValueError(ErrorMessages.INVALID_RING.format(len(coordinates[0])))

    return shape(geometry)


def bounding_box(polygon: Polygon) -> tuple[float, float, float, float]:
    """[west, south, east, north] of the polygon."""
    west, south, east, north = polygon.bounds
    return float(west), float(south), float(east), float(north)


def grid_axes(
    bbox: tuple[float, float, float, float], grid_size_m: float
) -> tuple[np.ndarray, np.ndarray]:
    """Longitudes and latitudes of the lattice covering ``bbox``."""
    west, south, east, north = bbox
    width_deg = east - west
    height_deg = north - south

    width_m = GEOD.inv(west, south, east, south)[2]
    height_m = GEOD.inv(west, south, west, north)[2]
    if width_deg <= 0 or height_deg <= 0 or width_m <= 0 or height_m <= 0:
        raise ValueError(ErrorMessages.DEGENERATE_POLYGON.format(list(bbox)))

    cell_w = grid_size_m / width_m * width_deg
    cell_h = grid_size_m / height_m * height_deg
    columns = math.floor(width_deg / cell_w)
    rows = math.floor(height_deg / cell_h)

    estimated = (columns + 1) * (rows + 1)
    if estimated > MAX_GRID_POINTS:
        raise ValueError(ErrorMessages.TOO_MANY_POINTS.format(estimated, MAX_GRID_POINTS))

    delta_x = (width_deg - columns * cell_w) / 2.0
    delta_y = (height_deg - rows * cell_h) / 2.0
    lons = west + delta_x + cell_w * np.arange(columns + 1)
    lats = south + delta_y + cell_h * np.arange(rows + 1)
    return lons, lats


def sample_grid(geometry: dict, grid_size_m: float, zoom: int) -> list[SamplePoint]:
    """Generate the sample points of a polygon at ``grid_size_m`` spacing.

    Args:
        geometry: GeoJSON Polygon ([lon, lat] positions)
        grid_size_m: Spacing between points in metres
        zoom: Tile zoom the points are resolved at

    Returns:
        Points inside or on the boundary of the polygon, column-major order
    """
    validate_grid_params(grid_size_m, zoom)
    polygon = polygon_from_geojson(geometry)
    lons, lats = grid_axes(bounding_box(polygon), grid_size_m)

    all_lons = np.repeat(lons, len(lats))
    all_lats = np.tile(lats, len(lons))
    shapely.prepare(polygon)
    mask = shapely.covers(polygon, shapely.points(all_lons, all_lats))

    points = []
    for lon, lat in zip(all_lons[mask], all_lats[mask]):
        tile, pixel = lat_lon_to_tile(float(lat), float(lon), zoom)
        points.append(SamplePoint(lat=float(lat), lon=float(lon), tile=tile, pixel=pixel))

    logger.debug(
        f"Grid: {len(points)} of {all_lons.size} lattice points inside polygon "
        f"(spacing {grid_size_m}m, zoom {zoom})"
    )
    return points


def unique_tiles(points: list[SamplePoint]) -> list[TileCoord]:
    """Tiles touched by the points, in first-seen order."""
    return list(dict.fromkeys(p.tile for p in points))
