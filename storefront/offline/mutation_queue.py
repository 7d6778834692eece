# storefront/offline/mutation_queue.py
import asyncio
from dataclasses import dataclass, field

import httpx

from storefront.offline.operation_store import OperationStore, OperationStoreError, QueuedOperation
from storefront.offline.sync import SyncManager
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SYNC_TAG = "cart-sync"


@dataclass
class DrainReport:
    replayed: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    interrupted: bool = False
    # doszly do serwera, ale nie udalo sie ich usunac ze store
    undeleted: list[int] = field(default_factory=list)


class DrainInterruptedError(RuntimeError):
    """Drain przerwany (siec albo store), w kolejce zostaly operacje do odtworzenia."""

    def __init__(self, report: DrainReport):
        self.report = report
        super().__init__(f"Drain interrupted, {len(report.failed) + len(report.undeleted)} operations left")


class MutationQueue:
    """
    Kolejka mutacji koszyka zleconych offline.

    enqueue zapisuje operacje i rejestruje sync; drain odtwarza je w kolejnosci
    dodania. Operacja jest usuwana ze store zaraz po udanym replayu, przed
    przejsciem do nastepnej - nigdy hurtem na koncu.
    """

    def __init__(self, store: OperationStore, network: httpx.AsyncClient, sync: SyncManager | None = None):
        self.store = store
        self.network = network
        self.sync = sync
        self._drain_lock = asyncio.Lock()
        if sync is not None:
            sync.on_sync(SYNC_TAG, self.drain_for_sync)

    async def enqueue(self, method: str, url: str, headers: dict | None = None, body: str | None = None) -> int | None:
        """
        Zwraca id operacji albo None gdy lokalny store zawiodl
        (wtedy mutacja przepada - lepiej niz zduplikowac).
        """
        try:
            op_id = await self.store.add(method, url, headers, body)
        except OperationStoreError as e:
            logger.error(f"Failed to queue cart operation {method} {url}: {e}")
            return None

        logger.info(f"Queued operation {op_id}: {method.upper()} {url}")
        if self.sync is not None:
            await self.sync.register(SYNC_TAG)
        return op_id

    async def pending(self) -> list[QueuedOperation]:
        return await self.store.pending()

    async def drain(self) -> DrainReport:
        # nakladajace sie drainy w jednym procesie ida po kolei
        async with self._drain_lock:
            return await self._drain()

    async def drain_for_sync(self) -> DrainReport:
        """
        Handler tagu cart-sync. Przerwany drain rzuca wyjatek, zeby
        SyncManager ponowil probe i nie zgubil tagu.
        Odrzucenia przez serwer (4xx/5xx) nie sa ponawiane w petli.
        """
        report = await self.drain()
        if report.interrupted:
            raise DrainInterruptedError(report)
        return report

    async def _drain(self) -> DrainReport:
        report = DrainReport()
        operations = await self.store.pending()
        if operations:
            logger.info(f"Draining {len(operations)} queued operations")

        for op in operations:
            # inny drainer (np. druga karta) mogl ja juz odtworzyc i usunac
            if await self.store.get(op.id) is None:
                report.skipped.append(op.id)
                continue

            try:
                response = await self._replay(op)
            except httpx.TransportError as e:
                # brak sieci: reszta zostaje, kolejnosc zachowana
                logger.warning(f"Operation {op.id} not delivered ({e!r}), stopping drain")
                report.failed.append(op.id)
                report.interrupted = True
                break

            if response.is_success:
                report.replayed.append(op.id)
                try:
                    await self.store.delete(op.id)
                except OperationStoreError as e:
                    # operacja juz zastosowana na serwerze; nastepny drain odtworzy ja drugi raz
                    logger.error(
                        f"Operation {op.id} replayed but could not be removed from the queue ({e}), "
                        f"stopping drain; it will be sent again on the next drain"
                    )
                    report.undeleted.append(op.id)
                    report.interrupted = True
                    break
                logger.info(f"Replayed operation {op.id}: {op.method} {op.url} -> {response.status_code}")
            else:
                report.failed.append(op.id)
                logger.error(
                    f"Failed to sync operation {op.id}: {op.method} {op.url} -> {response.status_code}, "
                    f"kept for next drain"
                )

        return report

    async def _replay(self, op: QueuedOperation) -> httpx.Response:
        return await self.network.request(
            op.method,
            op.url,
            headers=op.headers,
            content=op.body.encode("utf-8") if op.body is not None else None,
        )
