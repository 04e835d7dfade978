from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Optional

import redis
from django.conf import settings

logger = logging.getLogger(__name__)


class ClaimLockError(Exception):
    """Raised when the per-participant claim lock cannot be acquired."""


def _redis_client() -> Optional[redis.Redis]:
    redis_url = getattr(settings, "REDIS_URL", None)
    if not redis_url:
        return None
    return redis.Redis.from_url(redis_url, decode_responses=True)


def _lock_name(campaign: str, dedup_key: str) -> str:
    prefix = getattr(settings, "CLAIM_LOCK_PREFIX", "promo:claim:")
    return f"{prefix}{campaign}:{dedup_key}"


@contextmanager
def identity_claim_lock(campaign: str, dedup_key: str):
    """Serialize claims made by one participant when redis is configured.

    Stock and duplicate safety come from the database; this only stops the
    same participant from racing themselves into a confusing error.
    """

    client = _redis_client()
    if client is None:
        yield
        return

    lock = client.lock(
        _lock_name(campaign, dedup_key),
        timeout=getattr(settings, "CLAIM_LOCK_TIMEOUT", 10),
        blocking_timeout=getattr(settings, "CLAIM_LOCK_WAIT", 5),
    )
    try:
        acquired = lock.acquire(blocking=True)
    except redis.RedisError as exc:
        raise ClaimLockError(f"Failed to acquire claim lock: {exc}") from exc
    if not acquired:
        raise ClaimLockError("Another claim for this participant is in progress. Please try again.")

    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError as exc:
            # Expired server-side before release; redis already dropped it.
            logger.warning("Claim lock %s expired before release: %s", lock.name, exc)
        except redis.RedisError as exc:
            # The claim itself is settled; the lock times out on its own.
            logger.warning("Failed to release claim lock %s: %s", lock.name, exc)
