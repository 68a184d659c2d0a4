"""Configuration and response models for chuk-mcp-hazard."""

from .config import (
    DEMConfig,
    HazardConfig,
    HazardLevel,
    HazardTileConfig,
    create_hazard_config,
)
from .responses import (
    AnalysisResponse,
    CacheClearResponse,
    CapabilitiesResponse,
    DEMSourceInfo,
    DEMSourcesResponse,
    ElevationPointInfo,
    ElevationResponse,
    ErrorResponse,
    GridPointInfo,
    LevelStatInfo,
    MultiElevationResponse,
    NearestPointInfo,
    PresetInfo,
    PresetsResponse,
    ReferenceInfo,
    StatusResponse,
    format_response,
)

__all__ = [
    "HazardLevel",
    "HazardConfig",
    "HazardTileConfig",
    "DEMConfig",
    "create_hazard_config",
    "ErrorResponse",
    "PresetInfo",
    "PresetsResponse",
    "DEMSourceInfo",
    "DEMSourcesResponse",
    "StatusResponse",
    "CacheClearResponse",
    "CapabilitiesResponse",
    "LevelStatInfo",
    "NearestPointInfo",
    "ReferenceInfo",
    "GridPointInfo",
    "AnalysisResponse",
    "ElevationResponse",
    "ElevationPointInfo",
    "MultiElevationResponse",
    "format_response",
]
