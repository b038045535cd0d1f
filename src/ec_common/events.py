"""Order status-change notifications over Redis Pub/Sub.

Fire-and-forget: subscribers (push, SMS, IM) are outside this service.
A failed publish is logged and dropped; it never undoes a committed
transition.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.ec_common.redis_client import get_redis

logger = logging.getLogger(__name__)


class OrderEventPublisher:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        channel: str | None = None,
    ) -> None:
        self._redis_factory = redis_factory
        self._channel = channel or settings.ORDER_EVENTS_CHANNEL

    async def publish(self, event: str, order: Any) -> None:
        """Publish one status-change event for an order-like object."""
        payload = {
            "event": event,
            "order_id": order.id,
            "order_no": order.order_no,
            "status": order.status,
            "owner_id": order.user_id,
            "elderly_id": order.elderly_id,
            "angel_id": order.angel_id,
        }
        try:
            redis = await self._redis_factory()
            await redis.publish(self._channel, json.dumps(payload))
        except (RedisError, OSError):
            logger.warning(
                "Order event publish failed: order=%s event=%s", order.id, event, exc_info=True
            )
