"""
Caller-supplied configuration models.

Hazard colour tables, hazard tile sources and DEM sources are validated
here, at the boundary, so malformed input fails before any network I/O.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ..constants import DEFAULT_WATER_COLORS, MAX_ZOOM, MIN_ZOOM, ErrorMessages
from ..core.colors import RGB, parse_color, rgb_to_hex
from ..core.tiles import is_url_template


def _check_template(url: str) -> str:
    if not is_url_template(url):
        raise ValueError(ErrorMessages.INVALID_URL_TEMPLATE.format(url))
    return url


class HazardLevel(BaseModel):
    """One hazard level and the colour that marks it on the overlay."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Short level name")
    color: str = Field(..., description="Overlay colour as '#rrggbb' or 'r,g,b'")
    description: str = Field("", description="Human-readable meaning of the level")

    _rgb: RGB = PrivateAttr()

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        parse_color(v)
        return v

    def model_post_init(self, __context: Any) -> None:
        self._rgb = parse_color(self.color)

    @property
    def rgb(self) -> RGB:
        return self._rgb


class HazardConfig(BaseModel):
    """Colour table for one hazard overlay plus the base-map water colours."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Hazard name (e.g. Tsunami)")
    levels: dict[int, HazardLevel] = Field(..., description="Level number -> level definition")
    water_colors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_WATER_COLORS),
        description="Base-map colours that indicate open water",
    )

    @field_validator("levels")
    @classmethod
    def validate_levels(cls, v: dict[int, HazardLevel]) -> dict[int, HazardLevel]:
        for level in v:
            if level < 0:
                raise ValueError(ErrorMessages.INVALID_LEVEL.format(level))
        return v

    @field_validator("water_colors")
    @classmethod
    def normalize_water_colors(cls, v: list[str]) -> list[str]:
        return [rgb_to_hex(*parse_color(c)) for c in v]

    def level_info(self, level: int) -> HazardLevel | None:
        return self.levels.get(level)


class HazardTileConfig(BaseModel):
    """One hazard raster source among several merged per sample point."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., description="Tile URL template with {z}, {x}, {y}")
    weight: float = Field(1.0, ge=0, description="Weight for the weighted merge strategy")
    priority: int = Field(0, description="Priority for the priority merge strategy")

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return _check_template(v)


class DEMConfig(BaseModel):
    """A DEM tile source usable across a zoom range."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    title: str = Field(..., description="Source name reported with results")
    url: str = Field(..., description="Tile URL template with {z}, {x}, {y}")
    minzoom: int = Field(..., ge=MIN_ZOOM, le=MAX_ZOOM)
    maxzoom: int = Field(..., ge=MIN_ZOOM, le=MAX_ZOOM)
    decimal_precision: int = Field(
        0,
        ge=0,
        le=6,
        validation_alias=AliasChoices("decimal_precision", "fixed"),
        description="Decimal precision of the source data (reported only)",
    )

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return _check_template(v)


def create_hazard_config(
    name: str,
    levels: dict[int, dict],
    water_colors: list[str] | None = None,
) -> HazardConfig:
    """Build a validated HazardConfig from plain data."""
    data: dict = {"name": name, "levels": levels}
    if water_colors is not None:
        data["water_colors"] = water_colors
    return HazardConfig.model_validate(data)
