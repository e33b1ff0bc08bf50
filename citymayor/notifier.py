import logging
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError

from citymayor.load_settings import redis_host, redis_port

redis = Redis(host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30)


def player_channel(player_id: UUID) -> str:
    return f"player:{player_id}"


def grid_channel(player_id: UUID) -> str:
    return f"grid:{player_id}"


class ChangeNotifier:
    """Publish change notifications keyed by entity and owner."""

    def __init__(self, redis_client: Redis = redis):
        self.redis = redis_client

    async def publish(self, channel: str, payload: str) -> None:
        """Publish one message. Only called after the change was committed

        Args:
            channel (str): e.g. "grid:<player_id>"
            payload (str): Message body; subscribers only use it as a wake-up signal
        """
        try:
            await self.redis.publish(channel, payload)
        except (RedisError, OSError) as e:
            # the change is already committed; subscribers catch up on their next snapshot
            logging.warning(f"Failed to publish to {channel}: {e}")

    async def player_changed(self, player_id: UUID) -> None:
        await self.publish(player_channel(player_id), str(player_id))

    async def grid_changed(self, player_id: UUID) -> None:
        await self.publish(grid_channel(player_id), str(player_id))


notifier = ChangeNotifier()
