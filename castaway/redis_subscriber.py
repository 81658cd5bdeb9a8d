import json
import logging
from typing import AsyncGenerator
from uuid import UUID

from redis.asyncio import Redis

from castaway.models.dc_models import ChallengeStateModel
from castaway.services.challenge_service import ChallengeService
from castaway.services.events import challenge_channel


class RedisSubscriber:
    """Redis subscriber class to handle SSE events."""

    def __init__(self, service: ChallengeService, challenge_id: UUID):
        """Initialize RedisSubscriber with the challenge service and challenge_id."""
        self.challenge_id: UUID = challenge_id
        self.service: ChallengeService = service

    async def _state_message(self, event: str) -> str:
        state: ChallengeStateModel = await self.service.get_challenge(self.challenge_id)
        payload = state.model_dump_json()
        logging.debug(f"Payload: {payload}")
        return f"event: {event}\ndata: {payload}\n\n"

    async def event_generator(self, redis: Redis) -> AsyncGenerator[str, None]:
        """Event generator to handle SSE events.

        Sends the current challenge state first, then one update per phase
        event published on the challenge channel.

        Args:
            redis (Redis): Redis connection object.
        """
        channel = challenge_channel(self.challenge_id)
        pubsub = redis.pubsub()

        yield await self._state_message("challenge_state")

        await pubsub.subscribe(channel)
        try:
            while True:
                msg = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=None
                )
                if msg and msg["type"] == "message":
                    event = json.loads(msg["data"])
                    logging.info(f"Challenge event: {event}")
                    yield await self._state_message("challenge_update")
        finally:
            logging.info("Unsubscribing from channel")
            if pubsub:
                await pubsub.unsubscribe(channel)
                await pubsub.close()
