"""
Klient offline-first: cache odpowiedzi, interceptor requestow i kolejka
mutacji koszyka odtwarzana po powrocie polaczenia.
"""

from storefront.offline.cart_client import CartClient, MutationResult
from storefront.offline.classify import RequestKind, classify
from storefront.offline.interceptor import CacheConfig, Interceptor, is_offline_response
from storefront.offline.mutation_queue import DrainInterruptedError, DrainReport, MutationQueue
from storefront.offline.operation_store import OperationStore, OperationStoreError, QueuedOperation
from storefront.offline.resource_cache import CacheBucket, CacheStorage, CacheStorageError, request_identity
from storefront.offline.runtime import OfflineRuntime, start_offline_runtime
from storefront.offline.sync import Connectivity, SyncManager

__all__ = [
    "CacheBucket",
    "CacheConfig",
    "CacheStorage",
    "CacheStorageError",
    "CartClient",
    "Connectivity",
    "DrainInterruptedError",
    "DrainReport",
    "Interceptor",
    "MutationQueue",
    "MutationResult",
    "OfflineRuntime",
    "OperationStore",
    "OperationStoreError",
    "QueuedOperation",
    "RequestKind",
    "SyncManager",
    "classify",
    "is_offline_response",
    "request_identity",
    "start_offline_runtime",
]
