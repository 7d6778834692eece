# storefront/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import redis


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


def sync_retry(should_retry, attempts: int, wait_seconds: float):
    """Ponawianie handlera background sync; should_retry dostaje retry_state."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=wait_seconds, min=wait_seconds, max=30),
        retry=should_retry,
    )
