from __future__ import annotations
import httpx
from typing import Any, Awaitable, Callable, Dict, Optional

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from ..errors import SourceError
from ..utils.cache import TTLCache
from ..utils.config import CacheSettings, Settings, SourceSettings
from ..utils.logger import get_logger
from ..utils.rate_limit import TokenBucket

log = get_logger("sources")

_RETRY_STATUS = {429, 500, 502, 503, 504}
_MISSING = object()


def _retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRY_STATUS
    return isinstance(exc, httpx.TransportError)


class BaseSource:
    """
    Shared plumbing for upstream sources: one AsyncClient, retries on
    transport errors and 429/5xx, a per-source limiter and a TTL cache of
    raw payloads. Every failure leaves this layer as ``SourceError``.

    ``limiter`` and ``client`` may be injected (tests pass a NullLimiter and
    an ``httpx.MockTransport``-backed client).
    """
    name: str = "base"

    def __init__(
        self,
        settings: SourceSettings,
        cache: Optional[TTLCache] = None,
        cache_settings: Optional[CacheSettings] = None,
        limiter: Any = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.cache_settings = cache_settings or CacheSettings()
        self.cache = cache if cache is not None else TTLCache(self.cache_settings.max_entries)
        self.limiter = limiter or TokenBucket(settings.effective_rate(), settings.burst)
        self._http = client

    @classmethod
    def from_settings(cls, settings: Settings, cache: Optional[TTLCache] = None, **kwargs: Any):
        """Build from the ``sources.<name>`` block of the loaded config."""
        return cls(settings.source(cls.name), cache=cache, cache_settings=settings.cache, **kwargs)

    @property
    def base_headers(self) -> Dict[str, str]:
        return {"User-Agent": self.settings.user_agent, "Accept": "*/*"}

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                headers=self.base_headers,
                timeout=httpx.Timeout(self.settings.timeout, connect=self.settings.timeout / 2),
                follow_redirects=True,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def url(self, path: str) -> str:
        base = self.settings.base_url.rstrip("/")
        return f"{base}/{path.lstrip('/')}" if path else base

    def params(self, **extra: Any) -> Dict[str, Any]:
        """Drop unset query parameters."""
        return {k: v for k, v in extra.items() if v is not None and v != ""}

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        url = self.url(path)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.settings.max_retries)),
            wait=wait_exponential_jitter(initial=0.5, max=8),
            retry=retry_if_exception(_retryable),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self.limiter.acquire()
                    r = await self._client().get(url, params=params)
                    r.raise_for_status()
                    return r
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.warning(f"[{self.name}] HTTP {status} for {url}")
            raise SourceError(f"{self.name} request failed with HTTP {status}", self.name, status) from e
        except httpx.HTTPError as e:
            log.warning(f"[{self.name}] request to {url} failed: {e!r}")
            raise SourceError(f"{self.name} request failed: {type(e).__name__}", self.name) from e

    async def get_text(self, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        return (await self._get(path, params)).text

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        r = await self._get(path, params)
        try:
            data = r.json()
        except ValueError as e:
            raise SourceError(f"{self.name} returned invalid JSON", self.name, r.status_code) from e
        return data if isinstance(data, dict) else {}

    async def cached(self, namespace: str, key: str, produce: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for ``namespace:key`` or produce, store and return it."""
        full_key = f"{self.name}:{namespace}:{key}"
        hit = self.cache.get(full_key, _MISSING)
        if hit is not _MISSING:
            log.debug(f"[{self.name}] cache hit {full_key}")
            return hit
        value = await produce()
        self.cache.set(full_key, value, self.cache_settings.ttl_for(namespace))
        return value
