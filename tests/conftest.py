"""Shared test fixtures for chuk-mcp-hazard."""

import io
import struct
import zlib

import httpx
import pytest
from PIL import Image
from unittest.mock import AsyncMock, MagicMock

HAZARD_URL = "https://hazard.test/{z}/{x}/{y}.png"
BASE_URL = "https://base.test/{z}/{x}/{y}.png"
DEM_URL = "https://dem.test/{z}/{x}/{y}.png"

# ~100 m square near Sendai, well inside one zoom-16 tile column
SMALL_POLYGON = {
    "type": "Polygon",
    "coordinates": [
        [
            [140.8800, 38.2600],
            [140.8811, 38.2600],
            [140.8811, 38.2609],
            [140.8800, 38.2609],
            [140.8800, 38.2600],
        ]
    ],
}


def make_png(color: tuple[int, int, int], size: int = 256) -> bytes:
    """Solid-colour RGB PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (size, size), color).save(buf, format="PNG")
    return buf.getvalue()


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def png_chunks(data: bytes) -> list[tuple[bytes, bytes]]:
    """Split a PNG into (type, payload) pairs."""
    chunks = []
    pos = len(PNG_SIGNATURE)
    while pos < len(data):
        length = struct.unpack(">I", data[pos : pos + 4])[0]
        ctype = data[pos + 4 : pos + 8]
        chunks.append((ctype, data[pos + 8 : pos + 8 + length]))
        pos += 12 + length
    return chunks


def build_png(chunks: list[tuple[bytes, bytes]]) -> bytes:
    out = [PNG_SIGNATURE]
    for ctype, payload in chunks:
        crc = zlib.crc32(ctype + payload) & 0xFFFFFFFF
        out.append(struct.pack(">I", len(payload)) + ctype + payload + struct.pack(">I", crc))
    return b"".join(out)


def broken_chunk_png(color: tuple[int, int, int] = (255, 0, 0)) -> bytes:
    """PNG whose image data continues into a chunk with an invalid type.

    The header parses, so Pillow fails only while decoding pixels.
    """
    chunks = []
    for ctype, payload in png_chunks(make_png(color)):
        if ctype == b"IDAT":
            half = len(payload) // 2
            chunks.append((b"IDAT", payload[:half]))
            chunks.append((b"f\x00\xd2\x0c", payload[half:]))
        else:
            chunks.append((ctype, payload))
    return build_png(chunks)


def oversized_png(width: int = 30000, height: int = 30000) -> bytes:
    """Valid PNG whose IHDR claims a size past Pillow's decompression-bomb limit."""
    chunks = png_chunks(make_png((255, 0, 0), size=1))
    ctype, ihdr = chunks[0]
    chunks[0] = (ctype, struct.pack(">II", width, height) + ihdr[8:])
    return build_png(chunks)


def png_response(data: bytes) -> httpx.Response:
    return httpx.Response(200, content=data, headers={"content-type": "image/png"})


class TileServer:
    """Routes requests by URL host to a per-host handler and records every URL."""

    def __init__(self) -> None:
        self.handlers: dict = {}
        self.requests: list[str] = []

    def serve(self, host: str, handler) -> None:
        """Register a handler: bytes (served as PNG), an httpx.Response, or a callable."""
        self.handlers[host] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        handler = self.handlers.get(request.url.host)
        if handler is None:
            return httpx.Response(404)
        if callable(handler):
            return handler(request)
        if isinstance(handler, httpx.Response):
            return handler
        return png_response(handler)

    def count(self, host: str) -> int:
        return sum(1 for url in self.requests if httpx.URL(url).host == host)


@pytest.fixture
def tile_server():
    return TileServer()


@pytest.fixture
def make_fetcher(tile_server):
    """Build TileFetchers whose HTTP client is served by ``tile_server``."""
    from chuk_mcp_hazard.core.tile_cache import TileCache
    from chuk_mcp_hazard.core.tile_fetcher import TileFetcher

    def _make(cache=None, **kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(tile_server))
        kwargs.setdefault("batch_delay", 0)
        return TileFetcher(cache=cache if cache is not None else TileCache(), client=client, **kwargs)

    return _make


@pytest.fixture
def red_tile():
    return make_png((255, 0, 0))


@pytest.fixture
def white_tile():
    return make_png((255, 255, 255))


@pytest.fixture
def mock_artifact_store():
    """Mock artifact store."""
    store = AsyncMock()
    store.store = AsyncMock(return_value=None)
    return store


@pytest.fixture
def hazard_manager(make_fetcher):
    """HazardManager backed by the mock tile server."""
    from chuk_mcp_hazard.core.hazard_manager import HazardManager

    return HazardManager(fetcher=make_fetcher(retry_attempts=1))


@pytest.fixture
def mock_manager(hazard_manager, mock_artifact_store):
    """HazardManager with mocked store."""
    hazard_manager._get_store = MagicMock(return_value=mock_artifact_store)
    return hazard_manager


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer."""
    mcp = MagicMock()
    mcp.tool = MagicMock(return_value=lambda fn: fn)
    return mcp


def capture_tools(register, manager) -> dict:
    """Register tools against a fake server and return name -> coroutine function."""
    tools = {}
    mcp = MagicMock()

    def capture_tool(**kwargs):
        def decorator(fn):
            tools[fn.__name__] = fn
            return fn

        return decorator

    mcp.tool = capture_tool
    register(mcp, manager)
    return tools
