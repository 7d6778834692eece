# storefront/offline/interceptor.py
"""
Warstwa posrednia miedzy aplikacja a siecia (odpowiednik service workera).

Kazdy request jest raz klasyfikowany i obslugiwany dokladnie jedna strategia:

    IMAGE       cache-first, przy bledzie sieci placeholder SVG (200)
    API         network-first, fallback na cache, potem 503 z "offline": true
    NAVIGATION  cache-first wzgledem shella, potem offline.html, potem 503
    SHELL       cache-first, potem siec
    OTHER       network-first, potem cache, potem 408

Bledy sieci (httpx.TransportError) nigdy nie wychodza poza handle().
"""

import asyncio
from dataclasses import dataclass, field

import httpx

from storefront.offline.classify import RequestKind, classify
from storefront.offline.resource_cache import CacheBucket, CacheStorage, CacheStorageError
from storefront.utils.logging import get_logger
from storefront.utils.settings import CACHE_PREFIX, CACHE_VERSION, SHELL_ASSETS

logger = get_logger(__name__)

PLACEHOLDER_SVG = (
    '<svg width="200" height="200" xmlns="http://www.w3.org/2000/svg">'
    '<rect width="200" height="200" fill="#f0f0f0"/>'
    '<text x="50%" y="50%" text-anchor="middle" dy=".3em" fill="#999">Image</text></svg>'
)

OFFLINE_MESSAGE = "Offline - No cached data available"


@dataclass
class CacheConfig:
    prefix: str = CACHE_PREFIX
    version: str = CACHE_VERSION
    shell_assets: list[str] = field(default_factory=lambda: list(SHELL_ASSETS))
    api_prefix: str = "/api/"
    start_url: str = "/"
    offline_document: str = "/offline.html"

    @property
    def shell_bucket(self) -> str:
        return f"{self.prefix}-{self.version}"

    @property
    def api_bucket(self) -> str:
        return f"{self.prefix}-api-{self.version}"

    @property
    def image_bucket(self) -> str:
        return f"{self.prefix}-images-{self.version}"

    @property
    def known_buckets(self) -> set[str]:
        return {self.shell_bucket, self.api_bucket, self.image_bucket}


def offline_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        503,
        json={"message": OFFLINE_MESSAGE, "offline": True},
        request=request,
    )


def is_offline_response(response: httpx.Response) -> bool:
    """Odroznia 'offline bez cache' od prawdziwego 503 z serwera."""
    if response.status_code != 503:
        return False
    if not response.headers.get("content-type", "").startswith("application/json"):
        return False
    try:
        return response.json().get("offline") is True
    except (ValueError, AttributeError):
        return False


class Interceptor:
    def __init__(self, network: httpx.AsyncClient, cache: CacheStorage, config: CacheConfig | None = None):
        self.network = network
        self.cache = cache
        self.config = config or CacheConfig()
        self._strategies = {
            RequestKind.IMAGE: self._cache_first_image,
            RequestKind.API: self._network_first_api,
            RequestKind.NAVIGATION: self._navigation,
            RequestKind.SHELL: self._cache_first_shell,
            RequestKind.OTHER: self._network_first_other,
        }

    def url(self, path: str) -> httpx.URL:
        return self.network.base_url.join(path)

    def build_request(self, method: str, path: str, **kwargs) -> httpx.Request:
        return self.network.build_request(method, self.url(path), **kwargs)

    # =====================================================
    # LIFECYCLE
    # =====================================================
    async def install(self) -> list[str]:
        """
        Wrzuca assety shella do cache. Kazdy asset osobno - blad jednego
        nie przerywa reszty, czesciowy shell jest akceptowalny.
        """
        bucket = await self.cache.open(self.config.shell_bucket)
        results = await asyncio.gather(*(self._precache(bucket, path) for path in self.config.shell_assets))
        cached = [path for path, ok in zip(self.config.shell_assets, results) if ok]
        logger.info(f"Shell installed: {len(cached)}/{len(self.config.shell_assets)} assets cached")
        return cached

    async def _precache(self, bucket: CacheBucket, path: str) -> bool:
        request = self.build_request("GET", path)
        try:
            response = await self.network.send(request)
        except httpx.TransportError as e:
            logger.warning(f"Failed to cache {path}: {e!r}")
            return False
        if response.status_code != 200:
            logger.warning(f"Failed to cache {path}: HTTP {response.status_code}")
            return False
        try:
            await bucket.put(request, response)
        except CacheStorageError as e:
            logger.warning(f"Failed to cache {path}: {e}")
            return False
        return True

    async def activate(self) -> list[str]:
        """Usuwa kubelki spoza aktualnego zestawu (poprzednie wdrozenia)."""
        purged = []
        for name in await self.cache.keys():
            if name not in self.config.known_buckets:
                logger.info(f"Deleting old cache: {name}")
                await self.cache.purge(name)
                purged.append(name)
        for name in sorted(self.config.known_buckets):
            await self.cache.open(name)
        logger.info("Interceptor activated")
        return purged

    # =====================================================
    # FETCH
    # =====================================================
    def classify(self, request: httpx.Request) -> RequestKind:
        return classify(request, shell_paths=self.config.shell_assets, api_prefix=self.config.api_prefix)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.scheme not in ("http", "https"):
            # bez cache i strategii, ale blad transportu tez nie wychodzi na zewnatrz
            try:
                return await self.network.send(request)
            except httpx.TransportError as e:
                logger.info(f"Passthrough {request.method} {request.url} failed: {e!r}")
                return httpx.Response(408, text="Network error", request=request)
        kind = self.classify(request)
        return await self._strategies[kind](request)

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self.handle(self.build_request(method, path, **kwargs))

    async def _store(self, bucket_name: str, request: httpx.Request, response: httpx.Response):
        """Best-effort - blad zapisu do cache nie psuje odpowiedzi."""
        try:
            bucket = await self.cache.open(bucket_name)
            await bucket.put(request, response)
        except CacheStorageError as e:
            logger.warning(f"Could not cache {request.url}: {e}")

    async def _lookup(self, request: httpx.Request, bucket_name: str | None = None) -> httpx.Response | None:
        try:
            if bucket_name is None:
                return await self.cache.match(request)
            return await (await self.cache.open(bucket_name)).match(request)
        except CacheStorageError as e:
            logger.warning(f"Cache lookup failed for {request.url}: {e}")
            return None

    async def _cache_first_image(self, request: httpx.Request) -> httpx.Response:
        cached = await self._lookup(request, self.config.image_bucket)
        if cached is not None:
            return cached
        try:
            response = await self.network.send(request)
        except httpx.TransportError:
            # obrazek nigdy nie psuje layoutu
            return httpx.Response(
                200,
                headers={"Content-Type": "image/svg+xml"},
                text=PLACEHOLDER_SVG,
                request=request,
            )
        if response.status_code == 200 and request.method == "GET":
            await self._store(self.config.image_bucket, request, response)
        return response

    async def _network_first_api(self, request: httpx.Request) -> httpx.Response:
        try:
            response = await self.network.send(request)
        except httpx.TransportError as e:
            logger.info(f"Network failed for {request.method} {request.url.path} ({e!r}), trying cache")
            if request.method == "GET":
                cached = await self._lookup(request, self.config.api_bucket)
                if cached is not None:
                    return cached
            return offline_response(request)
        if request.method == "GET" and response.status_code == 200:
            await self._store(self.config.api_bucket, request, response)
        return response

    async def _navigation(self, request: httpx.Request) -> httpx.Response:
        cached = await self._lookup(request)
        if cached is not None:
            return cached

        # aplikacja SPA - kazda nawigacja dostaje shell (start_url)
        start = self.build_request("GET", self.config.start_url)
        shell = await self._lookup(start, self.config.shell_bucket)
        if shell is not None:
            return shell
        try:
            return await self.network.send(start)
        except httpx.TransportError:
            pass

        offline_doc = await self._lookup(self.build_request("GET", self.config.offline_document), self.config.shell_bucket)
        if offline_doc is not None:
            return offline_doc
        return httpx.Response(503, text="Offline", request=request)

    async def _cache_first_shell(self, request: httpx.Request) -> httpx.Response:
        cached = await self._lookup(request)
        if cached is not None:
            return cached
        return await self._network_first_other(request)

    async def _network_first_other(self, request: httpx.Request) -> httpx.Response:
        try:
            response = await self.network.send(request)
        except httpx.TransportError:
            cached = await self._lookup(request) if request.method == "GET" else None
            if cached is not None:
                return cached
            return httpx.Response(408, text="Network error", request=request)
        if request.method == "GET" and response.status_code == 200:
            await self._store(self.config.shell_bucket, request, response)
        return response

