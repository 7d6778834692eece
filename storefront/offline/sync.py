# storefront/offline/sync.py
"""
Wyzwalacze synchronizacji: stan polaczenia i odroczony "background sync".
Oba moga odpalic drain jednoczesnie - to jest ok, kolejka sama to obsluguje.
"""

import asyncio
from typing import Awaitable, Callable

from storefront.utils.logging import get_logger
from storefront.utils.retry import sync_retry
from storefront.utils.settings import SYNC_RETRY_ATTEMPTS, SYNC_RETRY_WAIT_SECONDS

logger = get_logger(__name__)

Handler = Callable[[], Awaitable[object]]


class Connectivity:
    """Flaga online/offline + listenery odpalane przy powrocie polaczenia."""

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: list[Handler] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def online(self) -> bool:
        return self._online

    def add_listener(self, handler: Handler):
        self._listeners.append(handler)

    def set_online(self, online: bool):
        was_online = self._online
        self._online = online
        if online and not was_online:
            logger.info("Connectivity restored")
            for handler in self._listeners:
                self._spawn(handler)
        elif not online and was_online:
            logger.info("Connectivity lost")

    def _spawn(self, handler: Handler):
        task = asyncio.get_running_loop().create_task(_run_logged(handler, "online"))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self):
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


class SyncManager:
    """
    Rejestr tagow synchronizacji. register(tag) odpala handler od razu jesli
    jestesmy online, w przeciwnym razie przy najblizszym powrocie polaczenia.

    Handler ktory rzuci wyjatek jest ponawiany z backoffem dopoki flaga
    mowi online; po wyczerpaniu prob tag zostaje jako oczekujacy
    (odpali go nastepny register albo powrot polaczenia).
    """

    def __init__(
        self,
        connectivity: Connectivity,
        retry_attempts: int = SYNC_RETRY_ATTEMPTS,
        retry_wait: float = SYNC_RETRY_WAIT_SECONDS,
    ):
        self.connectivity = connectivity
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        self._handlers: dict[str, Handler] = {}
        self._pending: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        connectivity.add_listener(self._flush)

    def on_sync(self, tag: str, handler: Handler):
        self._handlers[tag] = handler

    @property
    def pending_tags(self) -> set[str]:
        return set(self._pending)

    async def register(self, tag: str):
        self._pending.add(tag)
        if self.connectivity.online:
            self._fire(tag)

    async def _flush(self):
        for tag in list(self._pending):
            self._fire(tag)

    def _fire(self, tag: str):
        handler = self._handlers.get(tag)
        if handler is None:
            logger.warning(f"No sync handler for tag {tag}")
            return
        self._pending.discard(tag)
        task = asyncio.get_running_loop().create_task(self._run(tag, handler))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, tag: str, handler: Handler):
        retrying = sync_retry(self._retry_while_online, self.retry_attempts, self.retry_wait)
        ok = await _run_logged(retrying(handler), tag)
        if not ok:
            self._pending.add(tag)

    def _retry_while_online(self, retry_state) -> bool:
        if not retry_state.outcome.failed or not self.connectivity.online:
            return False
        logger.warning(
            f"Sync attempt {retry_state.attempt_number} failed "
            f"({retry_state.outcome.exception()!r})"
        )
        return True

    async def wait_idle(self):
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


async def _run_logged(handler: Handler, label: str) -> bool:
    # tlo: loguj i jedz dalej, nic nie wycieka do UI
    try:
        await handler()
    except Exception:
        logger.exception(f"Sync handler for {label} failed")
        return False
    return True
