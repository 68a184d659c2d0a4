"""
Constants for chuk-mcp-hazard server.

All magic strings, tile source metadata, and configuration values live here.
"""


class ServerConfig:
    NAME = "chuk-mcp-hazard"
    VERSION = "0.1.0"
    DESCRIPTION = "Hazard Map & Elevation Tile Sampling MCP Server"


class StorageProvider:
    MEMORY = "memory"
    S3 = "s3"
    FILESYSTEM = "filesystem"


class SessionProvider:
    MEMORY = "memory"
    REDIS = "redis"


class EnvVar:
    ARTIFACTS_PROVIDER = "CHUK_ARTIFACTS_PROVIDER"
    BUCKET_NAME = "BUCKET_NAME"
    REDIS_URL = "REDIS_URL"
    ARTIFACTS_PATH = "CHUK_ARTIFACTS_PATH"
    AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
    AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
    AWS_ENDPOINT_URL_S3 = "AWS_ENDPOINT_URL_S3"
    MCP_STDIO = "MCP_STDIO"
    CACHE_MAX_MB = "HAZARD_CACHE_MAX_MB"
    CACHE_TTL_S = "HAZARD_CACHE_TTL_S"
    FETCH_TIMEOUT_S = "HAZARD_FETCH_TIMEOUT_S"
    PRELOAD_CONCURRENCY = "HAZARD_PRELOAD_CONCURRENCY"


class MergeStrategy:
    MAX = "max"
    AVERAGE = "average"
    WEIGHTED = "weighted"
    PRIORITY = "priority"


MERGE_STRATEGIES = [
    MergeStrategy.MAX,
    MergeStrategy.AVERAGE,
    MergeStrategy.WEIGHTED,
    MergeStrategy.PRIORITY,
]
DEFAULT_MERGE_STRATEGY = MergeStrategy.MAX

# Web-Mercator tile pyramid
TILE_SIZE = 256
MAX_LATITUDE = 85.0511287798
MIN_ZOOM = 0
MAX_ZOOM = 24

# Hazard levels
NO_RISK_LEVEL = 0

# Grid sampling
DEFAULT_GRID_SIZE_M = 10.0
DEFAULT_ZOOM = 16
MAX_GRID_POINTS = 100_000

# Elevation
DEFAULT_DEM_ZOOM = 17
NO_DATA_RGB = (128, 0, 0)
ELEVATION_DECIMALS = 1

# Cache, fetch & retry
TILE_CACHE_MAX_BYTES = 100 * 1024 * 1024  # 100 MB total
TILE_CACHE_TTL_S = 5 * 60.0
FETCH_TIMEOUT_S = 30.0
PRELOAD_CONCURRENCY = 5
PRELOAD_BATCH_DELAY_S = 0.1
RETRY_ATTEMPTS = 2
RETRY_WAIT_MIN = 0.5
RETRY_WAIT_MAX = 4
USER_AGENT = f"{ServerConfig.NAME}/{ServerConfig.VERSION}"

# GSI Japan standard map; its water fill is #bed2ff
DEFAULT_BASE_TILE_URL = "https://cyberjapandata.gsi.go.jp/xyz/std/{z}/{x}/{y}.png"
DEFAULT_WATER_COLORS = ["#bed2ff", "#a8c8ff", "#8bb8ff", "#6aa8ff"]

DEFAULT_TSUNAMI_CONFIG: dict = {
    "name": "Tsunami",
    "levels": {
        0: {"name": "level0", "color": "0,0,0", "description": "No risk"},
        1: {"name": "level1", "color": "255,255,0", "description": "Attention"},
        2: {"name": "level2", "color": "255,165,0", "description": "Warning"},
        3: {"name": "level3", "color": "255,0,0", "description": "Very dangerous"},
    },
    "water_colors": DEFAULT_WATER_COLORS,
}

DEFAULT_PRESET = "tsunami"
HAZARD_PRESETS: dict[str, dict] = {
    "tsunami": DEFAULT_TSUNAMI_CONFIG,
}

# GSI Japan DEM PNG tiles, finest resolution first
DEFAULT_DEM_SOURCES: list[dict] = [
    {
        "title": "DEM1A",
        "url": "https://cyberjapandata.gsi.go.jp/xyz/dem1a_png/{z}/{x}/{y}.png",
        "minzoom": 17,
        "maxzoom": 17,
        "fixed": 1,
    },
    {
        "title": "DEM5A",
        "url": "https://cyberjapandata.gsi.go.jp/xyz/dem5a_png/{z}/{x}/{y}.png",
        "minzoom": 15,
        "maxzoom": 15,
        "fixed": 1,
    },
    {
        "title": "DEM5B",
        "url": "https://cyberjapandata.gsi.go.jp/xyz/dem5b_png/{z}/{x}/{y}.png",
        "minzoom": 15,
        "maxzoom": 15,
        "fixed": 1,
    },
    {
        "title": "DEM5C",
        "url": "https://cyberjapandata.gsi.go.jp/xyz/dem5c_png/{z}/{x}/{y}.png",
        "minzoom": 15,
        "maxzoom": 15,
        "fixed": 1,
    },
    {
        "title": "DEM10B",
        "url": "https://cyberjapandata.gsi.go.jp/xyz/dem_png/{z}/{x}/{y}.png",
        "minzoom": 14,
        "maxzoom": 14,
        "fixed": 0,
    },
]


class ErrorMessages:
    NOT_A_POLYGON = "Geometry must be a GeoJSON Polygon, got '{}'"
    EMPTY_POLYGON = "Polygon has no coordinates"
    INVALID_RING = "Polygon ring must have at least 4 positions, got {}"
    DEGENERATE_POLYGON = "Polygon bounding box has zero extent: {}"
    INVALID_GRID_SIZE = "grid_size_m must be > 0, got {}"
    INVALID_ZOOM = "zoom must be between {} and {}, got {}"
    TOO_MANY_POINTS = "Grid would contain ~{} points (limit {}). Increase grid_size_m"
    INVALID_COLOR = "Invalid color '{}': expected '#rrggbb' or 'r,g,b'"
    INVALID_LEVEL = "Hazard level keys must be non-negative integers, got {}"
    INVALID_MERGE_STRATEGY = "Invalid merge strategy '{}'. Available: {}"
    NO_HAZARD_TILES = "At least one hazard tile source is required"
    INVALID_URL_TEMPLATE = "Tile URL template must contain {{z}}, {{x}} and {{y}}: {}"
    UNKNOWN_PRESET = "Unknown hazard preset '{}'. Available: {}"
    NO_DEM_SOURCES = "At least one DEM source is required"
    NO_POINTS = "points must contain at least one [lat, lon] pair"
    NO_ARTIFACT_STORE = (
        "No artifact store available. Configure CHUK_ARTIFACTS_PROVIDER "
        "environment variable (memory, filesystem, or s3)."
    )


class SuccessMessages:
    PRESETS_LIST = "{} hazard presets available"
    DEM_SOURCES_LIST = "{} DEM sources available"
    ANALYSIS_COMPLETE = "Sampled {} points ({} water) over {} tiles"
    ELEVATION_FOUND = "Elevation at point: {}m (source {})"
    ELEVATION_NOT_FOUND = "No elevation data found at this location"
    ELEVATION_POINTS = "Resolved elevation for {} of {} points"
    CACHE_CLEARED = "Tile cache cleared ({} tiles, {:.1f} MB released)"
