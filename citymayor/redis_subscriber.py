import json
import logging
from typing import AsyncGenerator, Awaitable, Callable

from pydantic import BaseModel
from redis.asyncio import Redis

from citymayor.errors import GameError


class RedisSubscriber:
    """Redis subscriber class to handle SSE events."""

    def __init__(self, read_snapshot: Callable[[], Awaitable[BaseModel]], event_name: str):
        """Initialize RedisSubscriber with the snapshot reader and the SSE event name.

        Args:
            read_snapshot (Callable[[], Awaitable[BaseModel]]): Reads the current state to send
            event_name (str): e.g. "player_update" or "grid_update"
        """
        self.read_snapshot = read_snapshot
        self.event_name = event_name

    async def format_event(self) -> str:
        snapshot = await self.read_snapshot()
        payload = json.dumps(snapshot.model_dump(mode="json"))
        logging.debug(f"Payload: {payload}")
        return f"event: {self.event_name}\ndata: {payload}\n\n"

    async def read_event(self) -> str | None:
        try:
            return await self.format_event()
        except GameError as e:
            logging.warning(f"Skipped {self.event_name} event: {e.detail}")
            return None

    async def event_generator(self, channel: str, redis: Redis) -> AsyncGenerator[str, None]:
        """Event generator to handle SSE events.

        The first event is the state at subscription time, then a fresh state
        is sent every time a message arrives on the channel. A snapshot that
        cannot be read is skipped and the stream stays open.

        Args:
            channel (str): e.g. "grid:<player_id>"
            redis (Redis): Redis connection object.
        """
        pubsub = redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            event = await self.read_event()
            while True:
                if event is not None:
                    yield event
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=None)
                event = None
                if msg and msg["type"] == "message":
                    event = await self.read_event()
        finally:
            logging.info(f"Unsubscribing from {channel}")
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
