"""
Tile fetching over HTTP with caching and graceful degradation.

``fetch`` never raises for expected absence or transient network failure:
it returns the tile bytes, or ``b""`` meaning "no data at this location".
"""

import asyncio
import logging
from collections.abc import Iterable

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    FETCH_TIMEOUT_S,
    PRELOAD_BATCH_DELAY_S,
    PRELOAD_CONCURRENCY,
    RETRY_ATTEMPTS,
    RETRY_WAIT_MAX,
    RETRY_WAIT_MIN,
    USER_AGENT,
)
from .tile_cache import CacheKey, TileCache
from .tiles import TileCoord, tile_url

logger = logging.getLogger(__name__)

TileRequest = tuple[str, TileCoord]


class TileFetcher:
    """Cache-first tile retrieval with in-flight request deduplication."""

    def __init__(
        self,
        cache: TileCache | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = FETCH_TIMEOUT_S,
        retry_attempts: int = RETRY_ATTEMPTS,
        concurrency: int = PRELOAD_CONCURRENCY,
        batch_delay: float = PRELOAD_BATCH_DELAY_S,
    ) -> None:
        self.cache = cache if cache is not None else TileCache()
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.concurrency = max(1, concurrency)
        self.batch_delay = batch_delay
        self._client = client
        self._owns_client = client is None
        self._inflight: dict[CacheKey, asyncio.Task[bytes]] = {}

    async def __aenter__(self) -> "TileFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch(self, url_template: str, z: int, x: int, y: int) -> bytes:
        """Fetch one tile, returning ``b""`` when it is absent or unreachable."""
        tile = TileCoord(z, x, y)
        if not tile.is_valid:
            logger.debug(f"Tile {z}/{x}/{y} is outside the pyramid; no data")
            return b""

        url = tile_url(url_template, tile)
        cached = self.cache.get(z, x, y, url)
        if cached is not None:
            return cached

        key = (z, x, y, url)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._download_and_cache(key))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))

        # Shielded so a cancelled caller still lets the download fill the cache
        return await asyncio.shield(task)

    async def preload(self, requests: Iterable[TileRequest]) -> int:
        """Warm the cache for unique (url_template, tile) pairs in small batches.

        Failures are logged and swallowed; the per-point pass re-fetches on
        its own. Returns the number of tiles that yielded data.
        """
        unique = list(dict.fromkeys(requests))
        if not unique:
            return 0

        logger.info(f"Preloading {len(unique)} tiles (batch size {self.concurrency})")
        loaded = 0
        for start in range(0, len(unique), self.concurrency):
            batch = unique[start : start + self.concurrency]
            results = await asyncio.gather(
                *(self.fetch(template, t.z, t.x, t.y) for template, t in batch),
                return_exceptions=True,
            )
            for (template, t), result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning(f"Preload failed for {t.z}/{t.x}/{t.y} ({template}): {result}")
                elif result:
                    loaded += 1

            if start + self.concurrency < len(unique) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        stats = self.cache.stats()
        logger.debug(
            f"Preload completed: {loaded}/{len(unique)} tiles with data, "
            f"cache holds {stats['count']} tiles ({stats['size_bytes']} bytes)"
        )
        return loaded

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def _download_and_cache(self, key: CacheKey) -> bytes:
        z, x, y, url = key
        data = await self._download(url)
        if data:
            self.cache.put(z, x, y, url, data)
        return data

    async def _download(self, url: str) -> bytes:
        try:
            response = await self._get_with_retry(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(
                f"Tile request failed after {self.retry_attempts} attempt(s): {url} ({e})"
            )
            return b""

        if response.status_code == 404:
            logger.debug(f"Tile not found (404): {url} - treating as no data")
            return b""
        if not response.is_success:
            logger.warning(f"Tile request returned HTTP {response.status_code}: {url}")
            return b""

        content_type = response.headers.get("content-type", "")
        if content_type and "image/" not in content_type:
            logger.warning(f"Invalid content-type '{content_type}' for tile {url}")
            return b""

        data = response.content
        if not data:
            logger.warning(f"Empty tile payload: {url}")
            return b""
        return data

    async def _get_with_retry(self, url: str) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(
                multiplier=RETRY_WAIT_MIN, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        return await retrying(self._get_client().get, url)
