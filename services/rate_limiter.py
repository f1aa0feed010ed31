"""
Sliding-window request rate limiter backed by Redis.

Every generation attempt is logged as a member of a per-user sorted set
scored by its timestamp. The trim, add and count run in one MULTI/EXEC
transaction, so concurrent requests for the same user (on any process)
observe a consistent count.

Redis keys:
- ratelimit:generate:{user_id} -> zset {request_id: epoch_seconds}
"""

import logging
import time
import uuid
from collections.abc import Callable

from core.auth import VerifiedIdentity
from core.exceptions import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """At most ``max_requests`` per user in any rolling ``window_seconds``."""

    KEY_PREFIX = "ratelimit:generate"

    def __init__(
        self,
        redis_client,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self._redis = redis_client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock

    def _get_key(self, user_id: str) -> str:
        return f"{self.KEY_PREFIX}:{user_id}"

    async def check(self, identity: VerifiedIdentity) -> int:
        """
        Count this request and reject it if the window is already full.

        Entries stamped exactly ``window_seconds`` ago are still inside the
        window. Rejected attempts stay in the window as well.

        Returns:
            Number of requests in the window, including this one

        Raises:
            RateLimitError: If the user already made ``max_requests`` requests
                in the window
        """
        now = self._clock()
        window_start = now - self.window_seconds
        key = self._get_key(identity.user_id)
        member = f"{now:.6f}:{uuid.uuid4().hex}"

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, "-inf", f"({window_start}")
            pipe.zadd(key, {member: now})
            pipe.zcard(key)
            pipe.expire(key, self.window_seconds + 1)
            results = await pipe.execute()

        count = int(results[2])
        if count > self.max_requests:
            logger.warning(
                f"Rate limit exceeded: user={identity.user_id}, "
                f"count={count}, limit={self.max_requests}/{self.window_seconds}s"
            )
            raise RateLimitError(retry_after=self.window_seconds)

        return count
