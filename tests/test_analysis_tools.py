"""Tests for chuk_mcp_hazard.tools.analysis.api."""

import json

import pytest

from chuk_mcp_hazard.tools.analysis.api import register_analysis_tools

from conftest import BASE_URL, HAZARD_URL, SMALL_POLYGON, capture_tools, make_png


@pytest.fixture
def analysis_tools(mock_manager):
    return capture_tools(register_analysis_tools, mock_manager)


@pytest.fixture
def served(tile_server, red_tile, white_tile):
    tile_server.serve("hazard.test", red_tile)
    tile_server.serve("base.test", white_tile)
    return tile_server


class TestRegistration:
    def test_registers_analyze_polygon(self, analysis_tools):
        assert list(analysis_tools) == ["hazard_analyze_polygon"]


class TestAnalyzePolygon:
    @pytest.mark.asyncio
    async def test_json_summary(self, served, analysis_tools):
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon=SMALL_POLYGON, hazard_tile_url=HAZARD_URL, base_tile_url=BASE_URL
            )
        )
        assert data["hazard"] == "Tsunami"
        by_level = {s["level"]: s for s in data["stats"]}
        assert by_level[3]["count"] == data["total_points"]
        assert by_level[3]["ratio"] == 100.0
        assert by_level[3]["name"] == "level3"
        assert by_level[3]["description"] == "Very dangerous"
        assert by_level[0]["count"] == 0
        assert data["water_count"] == 0
        assert data["grid"] is None
        assert data["reference"] is None

    @pytest.mark.asyncio
    async def test_hazard_tiles_list(self, served, analysis_tools):
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon=SMALL_POLYGON,
                hazard_tiles=[{"url": HAZARD_URL, "weight": 2.0}],
                base_tile_url=BASE_URL,
                merge_strategy="weighted",
            )
        )
        assert data["merge_strategy"] == "weighted"
        assert data["tiles_with_data"] == data["tiles_fetched"]

    @pytest.mark.asyncio
    async def test_include_grid(self, served, analysis_tools):
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon=SMALL_POLYGON,
                hazard_tile_url=HAZARD_URL,
                base_tile_url=BASE_URL,
                grid_size_m=20.0,
                include_grid=True,
            )
        )
        assert len(data["grid"]) == data["total_points"]
        point = data["grid"][0]
        assert point["level"] == 3
        assert point["tile"][0] == 16
        assert 0 <= point["pixel"][0] < 256

    @pytest.mark.asyncio
    async def test_reference(self, served, analysis_tools):
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon=SMALL_POLYGON,
                hazard_tile_url=HAZARD_URL,
                base_tile_url=BASE_URL,
                reference_lat=38.26045,
                reference_lon=140.88055,
            )
        )
        assert data["reference"]["level"] == 3
        assert data["nearest"][0]["level"] == 3

    @pytest.mark.asyncio
    async def test_water(self, tile_server, red_tile, analysis_tools):
        tile_server.serve("hazard.test", red_tile)
        tile_server.serve("base.test", make_png((190, 210, 255)))
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon=SMALL_POLYGON, hazard_tile_url=HAZARD_URL, base_tile_url=BASE_URL
            )
        )
        assert data["water_ratio"] == 100.0

    @pytest.mark.asyncio
    async def test_store_grid(self, served, analysis_tools, mock_artifact_store):
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon=SMALL_POLYGON,
                hazard_tile_url=HAZARD_URL,
                base_tile_url=BASE_URL,
                store_grid=True,
            )
        )
        assert data["artifact_ref"].startswith("hazard/")
        mock_artifact_store.store.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_text(self, served, analysis_tools):
        text = await analysis_tools["hazard_analyze_polygon"](
            polygon=SMALL_POLYGON,
            hazard_tile_url=HAZARD_URL,
            base_tile_url=BASE_URL,
            output_mode="text",
        )
        assert text.startswith("Hazard analysis: Tsunami")
        assert "Level 3 (level3):" in text
        assert "(100.0%)" in text


class TestAnalyzePolygonErrors:
    @pytest.mark.asyncio
    async def test_no_sources(self, served, analysis_tools):
        data = json.loads(await analysis_tools["hazard_analyze_polygon"](polygon=SMALL_POLYGON))
        assert "hazard tile source" in data["error"]

    @pytest.mark.asyncio
    async def test_unknown_preset(self, served, analysis_tools):
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon=SMALL_POLYGON, hazard_tile_url=HAZARD_URL, preset="volcano"
            )
        )
        assert "Unknown hazard preset" in data["error"]

    @pytest.mark.asyncio
    async def test_invalid_polygon(self, served, analysis_tools):
        data = json.loads(
            await analysis_tools["hazard_analyze_polygon"](
                polygon={"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
                hazard_tile_url=HAZARD_URL,
            )
        )
        assert "Polygon" in data["error"]
        assert served.requests == []

    @pytest.mark.asyncio
    async def test_invalid_merge_strategy_text(self, served, analysis_tools):
        text = await analysis_tools["hazard_analyze_polygon"](
            polygon=SMALL_POLYGON,
            hazard_tile_url=HAZARD_URL,
            merge_strategy="median",
            output_mode="text",
        )
        assert text.startswith("Error: Invalid merge strategy")
