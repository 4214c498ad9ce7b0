from redis import Redis
from typing import Optional, Union
from redis.lock import Lock

from trafficfines.src import exceptions
from trafficfines.src.constants import (
    REDIS_HOST,
    REDIS_PORT,
    REDIS_PASSWORD,
    MUTEX_LOCK_TIMEOUT,
    MUTEX_LOCK_MAX_WAIT_TIME,
)

# Redis client (connects lazily on first command)
redisClient = Redis(
    host=REDIS_HOST,
    port=REDIS_PORT,
    password=REDIS_PASSWORD,
    decode_responses=True,
)


def acquireLock(
    resourceName: str,
    key: Optional[Union[int, str]] = None,
    timeOut: int = MUTEX_LOCK_TIMEOUT,
    blockingTimeOut: int = MUTEX_LOCK_MAX_WAIT_TIME,
    client: Optional[Redis] = None,
) -> Lock:
    """
    Acquire a Redis-based mutex lock for a resource or one of its keys.

    Args:
        resourceName (str): Name of the table/resource to lock.
        key (int | str | None): Optional row id or key for fine grained locking.
        timeOut (int): Lock expiration in seconds (auto-released after this).
        blockingTimeOut (int): Maximum time (in seconds) to wait for lock acquisition.
        client (Redis | None): Client to lock with, defaults to the module client.

    Returns:
        Lock: A Redis lock object if successfully acquired.

    Raises:
        exceptions.LockAcquireTimeout: If the lock could not be acquired within blockingTimeOut.
    """
    client = redisClient if client is None else client
    try:
        lockName = f"lock:{resourceName}" if key is None else f"lock:{resourceName}:{key}"
        lock = client.lock(lockName, timeout=timeOut)
        if lock.acquire(blocking=True, blocking_timeout=blockingTimeOut):
            return lock
        raise exceptions.LockAcquireTimeout()
    except Exception as e:
        exceptions.handle(e)


def releaseLock(lock: Optional[Lock]) -> None:
    """
    Release a previously acquired Redis lock.

    Notes:
        - Ensures only the owner can release the lock.
        - Silently ignores invalid/unowned locks.
    """
    if lock and lock.locked() and lock.owned():
        lock.release()
