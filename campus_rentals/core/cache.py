import json
import logging
import urllib.parse
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .breaker import cache_breaker
from .errors import ServiceUnavailable
from .settings import settings

logger = logging.getLogger(__name__)


class Cache:
    """Upstash Redis (REST) cache. Every operation is a no-op when unconfigured.

    Failures are logged and reported as a miss; the cache never decides the
    outcome of a request.
    """

    def __init__(self, url: str | None, token: str | None, timeout: float = 2.0):
        self.redis_url = url.rstrip("/") if url else None
        self.redis_token = token
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {self.redis_token}",
            "Content-Type": "application/json",
        }

    @property
    def enabled(self) -> bool:
        return bool(self.redis_url and self.redis_token)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=1),
        reraise=True,
    )
    async def _command(
        self, *parts: str, method: str = "GET", content=None, params=None
    ):
        path = "/".join(urllib.parse.quote(str(p), safe="") for p in parts)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            res = await client.request(
                method,
                f"{self.redis_url}/{path}",
                headers=self.headers,
                content=content,
                params=params,
            )
        if res.status_code != 200:
            raise ConnectionError(f"Redis {parts[0].upper()} failed ({res.status_code})")
        return res.json().get("result")

    async def _guarded(
        self, *parts: str, method: str = "GET", content=None, params=None
    ):
        if not self.enabled:
            return None
        try:
            return await cache_breaker.call(
                self._command, *parts, method=method, content=content, params=params
            )
        except (
            httpx.HTTPError,
            ConnectionError,
            ServiceUnavailable,
            json.JSONDecodeError,
        ) as e:
            logger.warning("Cache %s failed: %s", parts[0], e)
            return None

    async def get(self, key: str) -> Optional[str]:
        return await self._guarded("get", key)

    async def set(self, key: str, value: str, ttl: int = 60) -> None:
        await self._guarded(
            "set", key, method="POST", content=value, params={"EX": ttl}
        )

    async def incr(self, key: str) -> Optional[int]:
        result = await self._guarded("incr", key, method="POST")
        return int(result) if result is not None else None

    async def get_json(self, key: str) -> Optional[Any]:
        data = await self.get(key)
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.error("Invalid JSON format in key: %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int = 60) -> None:
        logger.debug("Setting JSON cache for key: %s", key)
        await self.set(key, json.dumps(value), ttl)


class ListingCache:
    """Browse-result cache keyed by a generation counter.

    Any listing write bumps the generation, so stale pages are never read again
    and simply expire.
    """

    GENERATION_KEY = "listings:generation"

    def __init__(self, backend: Cache, ttl: int):
        self.backend = backend
        self.ttl = ttl

    async def _generation(self) -> str:
        return await self.backend.get(self.GENERATION_KEY) or "0"

    async def get_page(self, fingerprint: str) -> Optional[dict]:
        if not self.backend.enabled:
            return None
        generation = await self._generation()
        return await self.backend.get_json(f"listings:browse:{generation}:{fingerprint}")

    async def set_page(self, fingerprint: str, page: dict) -> None:
        if not self.backend.enabled:
            return
        generation = await self._generation()
        await self.backend.set_json(
            f"listings:browse:{generation}:{fingerprint}", page, ttl=self.ttl
        )

    async def invalidate(self) -> None:
        await self.backend.incr(self.GENERATION_KEY)


cache = Cache(settings.UPSTASH_REDIS_URL, settings.UPSTASH_REDIS_TOKEN)
listing_cache = ListingCache(cache, ttl=settings.QUERY_CACHE_TTL)
