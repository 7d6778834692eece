# storefront/offline/models.py
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, JSON, LargeBinary, String, Text, UniqueConstraint

from storefront.offline.database import OfflineBase


class QueuedOperationModel(OfflineBase):
    """Mutacja koszyka zlecona offline. Nigdy nie modyfikowana, tylko dodana albo usunieta."""

    __tablename__ = "cart_queue"

    # AUTOINCREMENT: id rosnace i nigdy nie uzyte ponownie, FIFO po id
    id = Column(Integer, primary_key=True, autoincrement=True)
    method = Column(String(10), nullable=False)
    url = Column(Text, nullable=False)
    headers = Column(JSON, nullable=False, default=dict)
    body = Column(Text, nullable=True)
    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = {"sqlite_autoincrement": True}


class CacheBucketModel(OfflineBase):
    __tablename__ = "cache_buckets"

    name = Column(String(200), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class CachedEntryModel(OfflineBase):
    __tablename__ = "cache_entries"

    id = Column(Integer, primary_key=True)
    bucket = Column(String(200), ForeignKey("cache_buckets.name", ondelete="CASCADE"), nullable=False, index=True)
    request_key = Column(Text, nullable=False)
    url = Column(Text, nullable=False)

    status_code = Column(Integer, nullable=False)
    headers = Column(JSON, nullable=False, default=list)
    content = Column(LargeBinary, nullable=False, default=b"")
    stored_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("bucket", "request_key", name="u_cache_bucket_request"),)
