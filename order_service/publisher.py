"""
Order Service — イベント発行

DB のコミットが成功した後にだけ呼ぶ。
発行に失敗しても注文はすでに確定しているので、ログを残して処理を続ける。
"""

import json
import logging

import redis.asyncio as aioredis
from pydantic import BaseModel
from redis.exceptions import RedisError

from . import config

logger = logging.getLogger(__name__)


async def publish_event(
    redis: aioredis.Redis | None,
    event: BaseModel,
    channel: str = config.ORDER_EVENTS_CHANNEL,
) -> None:
    """イベントを {"event_type", "data"} の JSON として発行する。"""
    event_type = type(event).__name__
    if redis is None:
        logger.debug("Redis not configured; skipping %s", event_type)
        return
    try:
        await redis.publish(
            channel,
            json.dumps(
                {
                    "event_type": event_type,
                    "data": event.model_dump(mode="json"),
                }
            ),
        )
    except RedisError:
        logger.exception("Failed to publish %s", event_type)
