"""
Invalidation signals for connected clients

After a committed mutation the core tells the outside world which view of
a room went stale. The transport that fans this out (websocket push, polling
endpoint) subscribes to the Redis channels and is not part of this package.
"""
import json
import logging
from enum import Enum
from typing import Optional
from uuid import UUID

import redis

from watchparty.utils.cache import redis_client
from watchparty.utils.time_sync import get_server_time_ms

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "watchparty:room"


class InvalidationTopic(str, Enum):
    ROOM_STATUS = "room-status"
    ROOM_MEMBERS = "room-members"
    ROOM_MOVIES = "room-movies"
    QUIZ_QUESTIONS = "quiz-questions"
    QUIZ_RESULTS = "quiz-results"


def channel_name(room_id: UUID, topic: InvalidationTopic) -> str:
    return f"{CHANNEL_PREFIX}:{room_id}:{topic.value}"


class InvalidationNotifier:
    """Publishes room-scoped invalidation messages on Redis pub/sub"""
    
    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis_client = client
    
    def invalidate(self, room_id: UUID, topic: InvalidationTopic) -> None:
        """
        Signal that ``topic`` for ``room_id`` changed
        
        Delivery is best effort: the mutation is already committed, so a
        publish failure is logged and dropped.
        """
        message = json.dumps({
            "room_id": str(room_id),
            "topic": topic.value,
            "timestamp": get_server_time_ms()
        })
        
        if not self.redis_client:
            logger.debug(f"Invalidation (no transport): {room_id} {topic.value}")
            return
        
        try:
            receivers = self.redis_client.publish(channel_name(room_id, topic), message)
            logger.debug(f"Invalidation published: {room_id} {topic.value} -> {receivers} subscribers")
        except redis.RedisError as e:
            logger.error(f"Invalidation publish failed for {room_id} {topic.value}: {str(e)}")


# Global instance
invalidation_notifier = InvalidationNotifier(redis_client)
