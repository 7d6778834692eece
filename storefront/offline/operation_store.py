# storefront/offline/operation_store.py
import time
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.offline.models import QueuedOperationModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OperationStoreError(RuntimeError):
    """Lokalny store niedostepny - operacji nie da sie zapisac/odczytac."""


@dataclass(frozen=True)
class QueuedOperation:
    id: int
    method: str
    url: str
    headers: dict = field(default_factory=dict)
    body: str | None = None
    timestamp: int = 0

    @classmethod
    def from_model(cls, row: QueuedOperationModel) -> "QueuedOperation":
        return cls(
            id=row.id,
            method=row.method,
            url=row.url,
            headers=dict(row.headers or {}),
            body=row.body,
            timestamp=row.timestamp,
        )


class OperationStore:
    """
    Trwaly log operacji offline. Kazda metoda to osobna transakcja,
    wiec usuniecie jednej operacji jest atomowe i niezalezne od reszty.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def add(self, method: str, url: str, headers: dict | None = None, body: str | None = None) -> int:
        row = QueuedOperationModel(
            method=method.upper(),
            url=url,
            headers=dict(headers or {}),
            body=body,
            timestamp=int(time.time() * 1000),
        )
        try:
            async with self.session_factory() as session, session.begin():
                session.add(row)
                await session.flush()
                op_id = row.id
        except SQLAlchemyError as e:
            raise OperationStoreError(f"Could not persist {method} {url}") from e
        return op_id

    async def pending(self) -> list[QueuedOperation]:
        """Wszystkie operacje w kolejnosci dodania (FIFO po id)."""
        try:
            async with self.session_factory() as session:
                rows = (
                    await session.execute(select(QueuedOperationModel).order_by(QueuedOperationModel.id))
                ).scalars().all()
        except SQLAlchemyError as e:
            raise OperationStoreError("Could not read queued operations") from e
        return [QueuedOperation.from_model(r) for r in rows]

    async def get(self, op_id: int) -> QueuedOperation | None:
        try:
            async with self.session_factory() as session:
                row = await session.get(QueuedOperationModel, op_id)
        except SQLAlchemyError as e:
            raise OperationStoreError(f"Could not read operation {op_id}") from e
        return QueuedOperation.from_model(row) if row else None

    async def delete(self, op_id: int) -> bool:
        try:
            async with self.session_factory() as session, session.begin():
                result = await session.execute(
                    delete(QueuedOperationModel).where(QueuedOperationModel.id == op_id)
                )
        except SQLAlchemyError as e:
            raise OperationStoreError(f"Could not delete operation {op_id}") from e
        return result.rowcount == 1

    async def count(self) -> int:
        try:
            async with self.session_factory() as session:
                return (await session.execute(select(func.count(QueuedOperationModel.id)))).scalar_one()
        except SQLAlchemyError as e:
            raise OperationStoreError("Could not count queued operations") from e
