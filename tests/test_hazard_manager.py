"""Tests for chuk_mcp_hazard.core.hazard_manager."""

import json
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chuk_mcp_hazard.constants import TILE_CACHE_MAX_BYTES, TILE_CACHE_TTL_S
from chuk_mcp_hazard.core.hazard_manager import HazardManager
from chuk_mcp_hazard.core.tile_cache import TileCache
from chuk_mcp_hazard.models.config import HazardTileConfig, create_hazard_config

from conftest import (
    BASE_URL,
    HAZARD_URL,
    SMALL_POLYGON,
    broken_chunk_png,
    make_png,
    oversized_png,
)

SECOND_HAZARD_URL = "https://hazard2.test/{z}/{x}/{y}.png"
WATER = (190, 210, 255)
YELLOW = (255, 255, 0)


@pytest.fixture
def served(tile_server, red_tile, white_tile):
    """Red hazard overlay over a white (land) base map."""
    tile_server.serve("hazard.test", red_tile)
    tile_server.serve("base.test", white_tile)
    return tile_server


class TestAnalyzePolygon:
    """End-to-end sampling against mocked tiles."""

    @pytest.mark.asyncio
    async def test_all_points_at_level_three(self, served, hazard_manager):
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL
        )
        stats = result.statistics
        assert stats.total > 0
        assert stats.level_counts[3] == stats.total
        assert stats.water_count == 0
        assert result.hazard_name == "Tsunami"
        assert all(p.level == 3 for p in result.grid)

    @pytest.mark.asyncio
    async def test_all_levels_reported(self, served, hazard_manager):
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL
        )
        assert result.statistics.level_counts == {0: 0, 1: 0, 2: 0, 3: result.statistics.total}

    @pytest.mark.asyncio
    async def test_water_points_counted_separately(self, tile_server, red_tile, hazard_manager):
        tile_server.serve("hazard.test", red_tile)
        tile_server.serve("base.test", make_png(WATER))
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL
        )
        stats = result.statistics
        assert stats.water_count == stats.total
        assert stats.water_ratio == pytest.approx(100.0)
        assert stats.level_counts[3] == 0

    @pytest.mark.parametrize("corrupt", [broken_chunk_png, oversized_png])
    @pytest.mark.asyncio
    async def test_corrupt_hazard_tile_is_no_risk(
        self, tile_server, white_tile, hazard_manager, corrupt
    ):
        tile_server.serve("hazard.test", corrupt())
        tile_server.serve("base.test", white_tile)
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL
        )
        assert result.statistics.total > 0
        assert result.statistics.level_counts[0] == result.statistics.total
        assert all(p.level == 0 for p in result.grid)

    @pytest.mark.asyncio
    async def test_missing_hazard_tiles_are_no_risk(self, tile_server, white_tile, hazard_manager):
        tile_server.serve("base.test", white_tile)
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL
        )
        assert result.statistics.level_counts[0] == result.statistics.total
        assert result.tiles_with_data == result.tiles_fetched // 2

    @pytest.mark.asyncio
    async def test_tiles_fetched_counts_unique_pairs(self, served, hazard_manager):
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL, HAZARD_URL], base_tile_url=BASE_URL
        )
        tiles = {p.tile for p in result.grid}
        assert result.tiles_fetched == 2 * len(tiles)
        assert served.count("hazard.test") == len(tiles)

    @pytest.mark.asyncio
    async def test_max_merge_across_sources(self, served, hazard_manager):
        served.serve("hazard2.test", make_png(YELLOW))
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL, SECOND_HAZARD_URL], base_tile_url=BASE_URL
        )
        assert result.statistics.level_counts[3] == result.statistics.total

    @pytest.mark.asyncio
    async def test_priority_merge_across_sources(self, served, hazard_manager):
        served.serve("hazard2.test", make_png(YELLOW))
        sources = [
            HazardTileConfig(url=HAZARD_URL, priority=1),
            {"url": SECOND_HAZARD_URL, "priority": 5},
        ]
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, sources, base_tile_url=BASE_URL, merge_strategy="priority"
        )
        assert result.statistics.level_counts[1] == result.statistics.total
        assert result.merge_strategy == "priority"

    @pytest.mark.asyncio
    async def test_custom_hazard_config(self, served, hazard_manager):
        config = create_hazard_config("Flood", {7: {"name": "deep", "color": "#ff0000"}})
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL, hazard_config=config
        )
        assert result.hazard_name == "Flood"
        assert result.statistics.level_counts[7] == result.statistics.total

    @pytest.mark.asyncio
    async def test_reference_inside_polygon(self, served, hazard_manager):
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON,
            [HAZARD_URL],
            base_tile_url=BASE_URL,
            reference=(38.26045, 140.88055),
        )
        assert result.reference.level == 3
        assert result.reference.is_water is False
        nearest = {n.level: n for n in result.statistics.nearest}
        assert nearest[3].distance_m < 10.0

    @pytest.mark.asyncio
    async def test_reference_on_unfetched_tile(self, served, hazard_manager):
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL, reference=(35.0, 135.0)
        )
        assert result.reference.level is None
        assert served.count("hazard.test") == len({p.tile for p in result.grid})


class TestAnalyzeValidation:
    """Invalid input fails before any request is made."""

    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"merge_strategy": "median"}, "merge strategy"),
            ({"hazard_tiles": []}, "hazard tile"),
            ({"hazard_tiles": ["https://h.test/tile.png"]}, "must contain"),
            ({"base_tile_url": "https://b.test/tile.png"}, "must contain"),
            ({"grid_size_m": 0}, "grid_size_m"),
            ({"zoom": 30}, "zoom"),
            ({"polygon": {"type": "Point", "coordinates": [0, 0]}}, "Polygon"),
        ],
    )
    @pytest.mark.asyncio
    async def test_rejected(self, served, hazard_manager, kwargs, match):
        args = {"polygon": SMALL_POLYGON, "hazard_tiles": [HAZARD_URL], "base_tile_url": BASE_URL}
        args.update(kwargs)
        with pytest.raises(ValueError, match=match):
            await hazard_manager.analyze_polygon(**args)
        assert served.requests == []


class TestGridArtifact:
    @pytest.mark.asyncio
    async def test_store_grid(self, served, mock_manager, mock_artifact_store):
        result = await mock_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL, store_grid=True
        )
        assert result.artifact_ref.startswith("hazard/")
        assert result.artifact_ref.endswith(".geojson")

        args, kwargs = mock_artifact_store.store.call_args
        collection = json.loads(args[1])
        assert collection["type"] == "FeatureCollection"
        assert len(collection["features"]) == result.statistics.total
        assert collection["features"][0]["properties"]["level"] == 3
        assert kwargs["mime_type"] == "application/geo+json"
        assert kwargs["metadata"]["point_count"] == result.statistics.total

    @pytest.mark.asyncio
    async def test_store_failure_keeps_analysis(self, served, hazard_manager):
        store = AsyncMock()
        store.store = AsyncMock(side_effect=RuntimeError("disk full"))
        hazard_manager._get_store = MagicMock(return_value=store)
        result = await hazard_manager.analyze_polygon(
            SMALL_POLYGON, [HAZARD_URL], base_tile_url=BASE_URL, store_grid=True
        )
        assert result.artifact_ref is None
        assert result.statistics.total > 0

    @pytest.mark.asyncio
    async def test_no_store_configured(self, served, hazard_manager):
        with patch("chuk_mcp_server.get_artifact_store", return_value=None):
            with pytest.raises(RuntimeError, match="No artifact store"):
                hazard_manager._get_store()


class TestElevation:
    @pytest.mark.asyncio
    async def test_get_elevation(self, tile_server, hazard_manager):
        tile_server.serve("dem.test", make_png((0, 1, 44)))
        sources = [
            {"title": "T", "url": "https://dem.test/{z}/{x}/{y}.png", "minzoom": 15,
             "maxzoom": 15, "fixed": 1}
        ]
        result = await hazard_manager.get_elevation(38.26, 140.88, dem_sources=sources)
        assert result.elevation == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_get_elevations(self, tile_server, hazard_manager):
        tile_server.serve("dem.test", make_png((0, 0, 100)))
        sources = [
            {"title": "T", "url": "https://dem.test/{z}/{x}/{y}.png", "minzoom": 15,
             "maxzoom": 15}
        ]
        results = await hazard_manager.get_elevations(
            [[38.26, 140.88], [38.2601, 140.8801]], dem_sources=sources
        )
        assert [r.elevation for r in results] == [1.0, 1.0]
        # neighbouring points share one cached tile
        assert tile_server.count("dem.test") == 1

    @pytest.mark.asyncio
    async def test_get_elevations_requires_points(self, hazard_manager):
        with pytest.raises(ValueError, match="at least one"):
            await hazard_manager.get_elevations([])


class TestDiscovery:
    def test_list_presets(self, hazard_manager):
        presets = hazard_manager.list_presets()
        assert presets[0]["id"] == "tsunami"
        assert presets[0]["levels"] == [0, 1, 2, 3]

    def test_unknown_preset(self, hazard_manager):
        with pytest.raises(ValueError, match="Unknown hazard preset"):
            hazard_manager.get_preset("volcano")

    def test_list_dem_sources(self, hazard_manager):
        assert hazard_manager.list_dem_sources()[0].title == "DEM1A"

    def test_clear_cache_reports_previous_stats(self, hazard_manager):
        hazard_manager.cache.put(1, 0, 0, "u", b"abcd")
        stats = hazard_manager.clear_cache()
        assert stats["count"] == 1
        assert stats["size_bytes"] == 4
        assert hazard_manager.cache_stats()["count"] == 0


class TestFromEnv:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            manager = HazardManager.from_env()
        assert manager.cache.max_size_bytes == TILE_CACHE_MAX_BYTES
        assert manager.cache.ttl_seconds == TILE_CACHE_TTL_S

    def test_overrides(self):
        env = {
            "HAZARD_CACHE_MAX_MB": "10",
            "HAZARD_CACHE_TTL_S": "60",
            "HAZARD_FETCH_TIMEOUT_S": "5",
            "HAZARD_PRELOAD_CONCURRENCY": "3",
        }
        with patch.dict(os.environ, env, clear=True):
            manager = HazardManager.from_env()
        assert manager.cache.max_size_bytes == 10 * 1024 * 1024
        assert manager.cache.ttl_seconds == 60
        assert manager.fetcher.timeout == 5
        assert manager.fetcher.concurrency == 3
        assert manager.fetcher.cache is manager.cache

    def test_malformed_value_falls_back(self):
        with patch.dict(os.environ, {"HAZARD_CACHE_TTL_S": "soon"}, clear=True):
            manager = HazardManager.from_env()
        assert manager.cache.ttl_seconds == TILE_CACHE_TTL_S

    def test_shared_cache(self):
        cache = TileCache()
        manager = HazardManager(cache=cache)
        assert manager.fetcher.cache is cache
