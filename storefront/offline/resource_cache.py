# storefront/offline/resource_cache.py
"""
Cache odpowiedzi HTTP podzielony na nazwane kubelki (shell, api, image).

Kubelki sa wersjonowane nazwa (np. pwa-ecommerce-api-v3); przy aktywacji
nowej wersji stare kubelki sa usuwane w calosci. Wpis to snapshot
odpowiedzi pod kluczem metoda + znormalizowany URL; cachowany jest tylko GET.
Nie ma sygnalu uniewaznienia - wpis zyje do nadpisania albo purge kubelka.
"""

from urllib.parse import urlencode

import httpx
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.offline.models import CacheBucketModel, CachedEntryModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}

# naglowki opisujace kodowanie transferu nie pasuja do juz zdekodowanej tresci
_DROPPED_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}


class CacheStorageError(RuntimeError):
    pass


def request_identity(request: httpx.Request | str, method: str = "GET") -> str:
    """
    Klucz wpisu: METODA + URL z lower-case scheme/host, bez domyslnego portu,
    bez fragmentu i z posortowanymi parametrami query.
    """
    if isinstance(request, httpx.Request):
        method = request.method
        url = request.url
    else:
        url = httpx.URL(request)

    port = url.port if url.port not in (None, _DEFAULT_PORTS.get(url.scheme)) else None
    netloc = url.host.lower() + (f":{port}" if port else "")
    query = urlencode(sorted(url.params.multi_items()))
    normalized = f"{url.scheme.lower()}://{netloc}{url.path or '/'}"
    if query:
        normalized += f"?{query}"
    return f"{method.upper()} {normalized}"


def _snapshot_headers(response: httpx.Response) -> list[list[str]]:
    return [[k, v] for k, v in response.headers.multi_items() if k.lower() not in _DROPPED_HEADERS]


class CacheBucket:
    """Uchwyt do jednego kubelka (odpowiednik cache z caches.open)."""

    def __init__(self, name: str, session_factory: async_sessionmaker[AsyncSession]):
        self.name = name
        self.session_factory = session_factory

    async def match(self, request: httpx.Request | str) -> httpx.Response | None:
        key = request_identity(request)
        try:
            async with self.session_factory() as session:
                row = (
                    await session.execute(
                        select(CachedEntryModel).where(
                            CachedEntryModel.bucket == self.name,
                            CachedEntryModel.request_key == key,
                        )
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not read {key} from {self.name}") from e
        return _restore(row, request) if row else None

    async def put(self, request: httpx.Request | str, response: httpx.Response) -> None:
        if isinstance(request, httpx.Request) and request.method != "GET":
            raise ValueError("Only GET responses can be cached")

        key = request_identity(request, "GET")
        content = await response.aread()
        try:
            async with self.session_factory() as session, session.begin():
                row = (
                    await session.execute(
                        select(CachedEntryModel).where(
                            CachedEntryModel.bucket == self.name,
                            CachedEntryModel.request_key == key,
                        )
                    )
                ).scalar_one_or_none()
                if row is None:
                    row = CachedEntryModel(bucket=self.name, request_key=key)
                    session.add(row)
                row.url = str(request.url if isinstance(request, httpx.Request) else request)
                row.status_code = response.status_code
                row.headers = _snapshot_headers(response)
                row.content = content
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not store {key} in {self.name}") from e

    async def delete(self, request: httpx.Request | str) -> bool:
        key = request_identity(request)
        try:
            async with self.session_factory() as session, session.begin():
                result = await session.execute(
                    delete(CachedEntryModel).where(
                        CachedEntryModel.bucket == self.name,
                        CachedEntryModel.request_key == key,
                    )
                )
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not delete {key} from {self.name}") from e
        return result.rowcount > 0

    async def keys(self) -> list[str]:
        try:
            async with self.session_factory() as session:
                return list(
                    (
                        await session.execute(
                            select(CachedEntryModel.request_key)
                            .where(CachedEntryModel.bucket == self.name)
                            .order_by(CachedEntryModel.id)
                        )
                    ).scalars()
                )
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not list entries of {self.name}") from e


class CacheStorage:
    """Zbior nazwanych kubelkow (odpowiednik globalnego `caches`)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def open(self, name: str) -> CacheBucket:
        """Zwraca kubelek, tworzac go jesli nie istnieje."""
        try:
            async with self.session_factory() as session, session.begin():
                if await session.get(CacheBucketModel, name) is None:
                    session.add(CacheBucketModel(name=name))
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not open bucket {name}") from e
        return CacheBucket(name, self.session_factory)

    async def has(self, name: str) -> bool:
        try:
            async with self.session_factory() as session:
                return await session.get(CacheBucketModel, name) is not None
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not check bucket {name}") from e

    async def keys(self) -> list[str]:
        try:
            async with self.session_factory() as session:
                return list(
                    (
                        await session.execute(select(CacheBucketModel.name).order_by(CacheBucketModel.created_at))
                    ).scalars()
                )
        except SQLAlchemyError as e:
            raise CacheStorageError("Could not list cache buckets") from e

    async def match(self, request: httpx.Request | str) -> httpx.Response | None:
        """Szuka wpisu we wszystkich kubelkach, w kolejnosci ich utworzenia."""
        key = request_identity(request)
        try:
            async with self.session_factory() as session:
                row = (
                    await session.execute(
                        select(CachedEntryModel)
                        .join(CacheBucketModel, CachedEntryModel.bucket == CacheBucketModel.name)
                        .where(CachedEntryModel.request_key == key)
                        .order_by(CacheBucketModel.created_at, CachedEntryModel.id)
                        .limit(1)
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not read {key}") from e
        return _restore(row, request) if row else None

    async def purge(self, name: str) -> bool:
        """Usuwa kubelek razem ze wszystkimi wpisami."""
        try:
            async with self.session_factory() as session, session.begin():
                await session.execute(delete(CachedEntryModel).where(CachedEntryModel.bucket == name))
                result = await session.execute(delete(CacheBucketModel).where(CacheBucketModel.name == name))
        except SQLAlchemyError as e:
            raise CacheStorageError(f"Could not purge bucket {name}") from e
        if result.rowcount:
            logger.info(f"Deleted cache bucket {name}")
        return result.rowcount > 0


def _restore(row: CachedEntryModel, request: httpx.Request | str) -> httpx.Response:
    if not isinstance(request, httpx.Request):
        request = httpx.Request("GET", row.url)
    return httpx.Response(
        status_code=row.status_code,
        headers=[(k, v) for k, v in row.headers],
        content=row.content,
        request=request,
    )
