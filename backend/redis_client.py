"""
Redis cache for reconstructed order views and login rate limiting.

The cache is optional: every method degrades to a no-op (or "allowed")
when Redis is unreachable, and the store stays the source of truth.
"""
import json
import logging
from typing import Any, Dict, Optional, Tuple

import redis

logger = logging.getLogger(__name__)

ORDER_VIEW_PREFIX = "order_view:"


class RedisClient:
    """Thin wrapper over a redis-py client"""

    def __init__(self, host: str = "redis", port: int = 6379, ttl: int = 180, client=None):
        self.redis_host = host
        self.redis_port = port
        self.ttl = ttl

        if client is not None:
            self.client = client
            return

        try:
            self.client = redis.Redis(
                host=self.redis_host,
                port=self.redis_port,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self.client.ping()
        except redis.RedisError as e:
            logger.warning("Could not connect to Redis at %s:%s: %s", host, port, e)
            self.client = None

    def is_available(self) -> bool:
        if not self.client:
            return False
        try:
            self.client.ping()
            return True
        except redis.RedisError:
            return False

    # ========== Order views ==========

    def cache_order_view(self, order_id: str, view: Dict[str, Any]) -> bool:
        if not self.is_available():
            return False
        try:
            self.client.setex(f"{ORDER_VIEW_PREFIX}{order_id}", self.ttl, json.dumps(view, default=str))
            return True
        except redis.RedisError as e:
            logger.warning("Failed to cache order view %s: %s", order_id, e)
            return False

    def get_cached_order_view(self, order_id: str) -> Optional[Dict[str, Any]]:
        if not self.is_available():
            return None
        try:
            cached = self.client.get(f"{ORDER_VIEW_PREFIX}{order_id}")
            if cached:
                return json.loads(cached)
        except (redis.RedisError, ValueError) as e:
            logger.warning("Failed to read cached order view %s: %s", order_id, e)
        return None

    def invalidate_order_view(self, order_id: str) -> bool:
        if not self.is_available():
            return False
        try:
            self.client.delete(f"{ORDER_VIEW_PREFIX}{order_id}")
            return True
        except redis.RedisError as e:
            logger.warning("Failed to invalidate order view %s: %s", order_id, e)
            return False

    def invalidate_all_order_views(self) -> bool:
        """Used when a food changes, since every view joins live food prices"""
        if not self.is_available():
            return False
        try:
            keys = list(self.client.scan_iter(f"{ORDER_VIEW_PREFIX}*"))
            if keys:
                self.client.delete(*keys)
            return True
        except redis.RedisError as e:
            logger.warning("Failed to invalidate order views: %s", e)
            return False

    # ========== Rate Limiting ==========

    def check_rate_limit(self, key: str, max_requests: int = 10, window: int = 60) -> Tuple[bool, int]:
        """
        Returns (allowed, remaining requests in the window)
        """
        if not self.is_available():
            return True, max_requests

        try:
            current = self.client.incr(key)
            if current == 1:
                # first request of the window sets its lifetime
                self.client.expire(key, window)

            remaining = max(0, max_requests - current)
            return current <= max_requests, remaining
        except redis.RedisError as e:
            logger.warning("Rate limit check failed: %s", e)
            return True, max_requests

    def get_cache_info(self) -> Dict[str, Any]:
        if not self.is_available():
            return {"status": "unavailable"}

        try:
            return {
                "status": "available",
                "cached_order_views": len(list(self.client.scan_iter(f"{ORDER_VIEW_PREFIX}*"))),
            }
        except redis.RedisError as e:
            return {"status": "error", "error": str(e)}
