# storefront/offline/runtime.py
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from storefront.offline.cart_client import CartClient
from storefront.offline.database import create_offline_engine, init_offline_database
from storefront.offline.interceptor import CacheConfig, Interceptor
from storefront.offline.mutation_queue import MutationQueue
from storefront.offline.operation_store import OperationStore
from storefront.offline.resource_cache import CacheStorage
from storefront.offline.sync import Connectivity, SyncManager
from storefront.utils.logging import get_logger
from storefront.utils.settings import API_BASE_URL, NETWORK_TIMEOUT_SECONDS, SYNC_RETRY_WAIT_SECONDS

logger = get_logger(__name__)


@dataclass
class OfflineRuntime:
    engine: AsyncEngine
    network: httpx.AsyncClient
    cache: CacheStorage
    store: OperationStore
    interceptor: Interceptor
    connectivity: Connectivity
    sync: SyncManager
    queue: MutationQueue

    def cart_client(self, user_id: int) -> CartClient:
        return CartClient(self.interceptor, self.queue, self.connectivity, user_id)

    async def close(self):
        await self.network.aclose()
        await self.engine.dispose()


async def start_offline_runtime(
    db_url: str | None = None,
    network: httpx.AsyncClient | None = None,
    config: CacheConfig | None = None,
    online: bool = True,
    sync_retry_wait: float = SYNC_RETRY_WAIT_SECONDS,
) -> OfflineRuntime:
    """
    Sklada caly klient offline: lokalna baza, cache, kolejka, interceptor.
    Odpala install + activate. Kolejka sama podpina sie pod tag cart-sync,
    powrot polaczenia odpala drain bezposrednio.
    """
    engine = create_offline_engine(db_url)
    session_factory = await init_offline_database(engine)

    network = network or httpx.AsyncClient(base_url=API_BASE_URL, timeout=NETWORK_TIMEOUT_SECONDS)
    cache = CacheStorage(session_factory)
    store = OperationStore(session_factory)
    interceptor = Interceptor(network, cache, config)

    connectivity = Connectivity(online=online)
    sync = SyncManager(connectivity, retry_wait=sync_retry_wait)
    queue = MutationQueue(store, network, sync)

    connectivity.add_listener(queue.drain)

    await interceptor.install()
    await interceptor.activate()

    runtime = OfflineRuntime(engine, network, cache, store, interceptor, connectivity, sync, queue)
    logger.info(f"Offline runtime started ({await store.count()} queued operations)")
    return runtime
