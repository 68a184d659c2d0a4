"""
Pixel decoding and classification.

Tile bytes are decoded once per analysis into an RGBA array; every sample
point then reads its pixel from that array. Decode failures never raise:
an undecodable tile behaves like a black (no-risk, no-data) tile.
"""

import io
import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from ..constants import DEFAULT_TSUNAMI_CONFIG, NO_DATA_RGB, NO_RISK_LEVEL
from ..models.config import HazardConfig
from .colors import RGB, rgb_key, rgb_to_hex

logger = logging.getLogger(__name__)

PixelArray = NDArray[np.uint8]

BLACK: RGB = (0, 0, 0)

POW2_8 = 2**8
POW2_16 = 2**16
POW2_23 = 2**23
POW2_24 = 2**24


# ---------------------------------------------------------------------------
# Pixel decoding
# ---------------------------------------------------------------------------


def read_tile_pixels(data: bytes) -> PixelArray | None:
    """Decode PNG (or any Pillow-readable) bytes into an (H, W, 4) RGBA array.

    Returns None for empty or undecodable input.
    """
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            return np.asarray(img.convert("RGBA"), dtype=np.uint8)
    # Pillow also raises SyntaxError (broken chunk) and DecompressionBombError
    except Exception as e:
        logger.warning(f"Failed to decode tile image ({len(data)} bytes): {e}")
        return None


def pixel_in_bounds(pixels: PixelArray, px: int, py: int) -> bool:
    height, width = pixels.shape[:2]
    return 0 <= px < width and 0 <= py < height


def pixel_rgb(pixels: PixelArray | None, px: int, py: int) -> RGB:
    """RGB at (px, py); black for a missing tile or out-of-range pixel."""
    if pixels is None or not pixel_in_bounds(pixels, px, py):
        return BLACK
    r, g, b = pixels[py, px, :3]
    return (int(r), int(g), int(b))


def decode_pixel(data: bytes, px: int, py: int) -> RGB:
    """Decode a tile and read one pixel."""
    return pixel_rgb(read_tile_pixels(data), px, py)


# ---------------------------------------------------------------------------
# Hazard & water classification
# ---------------------------------------------------------------------------


class HazardClassifier:
    """Exact-match colour lookup built once per HazardConfig."""

    def __init__(self, config: HazardConfig) -> None:
        self.config = config
        self._levels: dict[RGB, int] = {}
        for level, info in config.levels.items():
            self._levels[info.rgb] = level
        self._water: frozenset[str] = frozenset(config.water_colors)

    def classify(self, r: int, g: int, b: int) -> int:
        """Configured level for the colour, or the no-risk level when unmapped."""
        return self._levels.get((r, g, b), NO_RISK_LEVEL)

    def is_water(self, r: int, g: int, b: int) -> bool:
        return rgb_to_hex(r, g, b) in self._water

    @property
    def color_table(self) -> dict[str, int]:
        return {rgb_key(*rgb): level for rgb, level in self._levels.items()}


def _as_config(config: HazardConfig | dict[str, Any] | None) -> HazardConfig:
    if config is None:
        return HazardConfig.model_validate(DEFAULT_TSUNAMI_CONFIG)
    if isinstance(config, HazardConfig):
        return config
    return HazardConfig.model_validate(config)


def classify_risk_from_rgb(
    r: int, g: int, b: int, config: HazardConfig | dict[str, Any] | None = None
) -> int:
    """Classify a colour against a hazard config (tsunami preset by default)."""
    return HazardClassifier(_as_config(config)).classify(r, g, b)


def is_water_color(
    r: int, g: int, b: int, config: HazardConfig | dict[str, Any] | None = None
) -> bool:
    return HazardClassifier(_as_config(config)).is_water(r, g, b)


# ---------------------------------------------------------------------------
# Elevation decoding
# ---------------------------------------------------------------------------


def decode_elevation(r: int, g: int, b: int) -> float | None:
    """Decode a GSI-style elevation PNG pixel into metres.

    The colour is a 24-bit two's-complement integer in centimetres.
    (128, 0, 0) marks "no data" and yields None.
    """
    if (r, g, b) == NO_DATA_RGB:
        return None

    d = r * POW2_16 + g * POW2_8 + b
    h = d if d < POW2_23 else d - POW2_24
    if h == -POW2_23:
        return 0.0
    return h * 0.01
