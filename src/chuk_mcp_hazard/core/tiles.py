"""
Web-Mercator tile pyramid math.

Pure functions mapping a geographic position to the tile that contains it
and the pixel offset inside that tile. No I/O.
"""

import math
from typing import NamedTuple

from ..constants import MAX_LATITUDE, TILE_SIZE


class TileCoord(NamedTuple):
    """Tile pyramid address. Valid when 0 <= x, y < 2**z."""

    z: int
    x: int
    y: int

    @property
    def is_valid(self) -> bool:
        n = 1 << self.z
        return self.z >= 0 and 0 <= self.x < n and 0 <= self.y < n


class PixelCoord(NamedTuple):
    """Offset inside a 256x256 tile."""

    x: int
    y: int


def world_pixel(lat: float, lon: float, zoom: int) -> tuple[float, float]:
    """Global pixel coordinates of (lat, lon) at the given zoom.

    Latitude is clamped to the Web-Mercator limit so that polar or
    nonsensical input still yields a finite (if meaningless) position.
    """
    lat = max(min(lat, MAX_LATITUDE), -MAX_LATITUDE)
    world = TILE_SIZE * (2**zoom)
    x = (lon + 180.0) / 360.0 * world
    s = math.sin(math.radians(lat))
    y = (0.5 - math.log((1 + s) / (1 - s)) / (4 * math.pi)) * world
    return x, min(max(y, 0.0), math.nextafter(world, 0.0))


def lat_lon_to_tile(lat: float, lon: float, zoom: int) -> tuple[TileCoord, PixelCoord]:
    """Resolve (lat, lon) to its owning tile and in-tile pixel at ``zoom``.

    Out-of-range input is not rejected; the returned tile may fall outside
    the pyramid, which downstream fetching treats as "no data".
    """
    px, py = world_pixel(lat, lon, zoom)
    tx = math.floor(px / TILE_SIZE)
    ty = math.floor(py / TILE_SIZE)
    pixel = PixelCoord(int(math.floor(px - tx * TILE_SIZE)), int(math.floor(py - ty * TILE_SIZE)))
    return TileCoord(zoom, int(tx), int(ty)), pixel


def tile_url(template: str, tile: TileCoord) -> str:
    """Substitute {z}, {x} and {y} in a tile URL template."""
    return (
        template.replace("{z}", str(tile.z))
        .replace("{x}", str(tile.x))
        .replace("{y}", str(tile.y))
    )


def is_url_template(template: str) -> bool:
    return all(token in template for token in ("{z}", "{x}", "{y}"))
