"""Challenge phase events over Redis pub/sub.

Events are notifications only: the database rows are the audit trail, so a
failed publish is logged and never fails the operation that triggered it.
"""

import json
import logging
from datetime import datetime
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError


def challenge_channel(challenge_id: UUID) -> str:
    return f"challenge:{challenge_id}"


class ChallengeEventPublisher:
    def __init__(self, redis: Redis):
        self.redis = redis

    async def publish_phase(self, challenge_id: UUID, phase: str) -> None:
        """Publish a phase change on the challenge channel.

        Args:
            challenge_id (UUID): Challenge whose phase changed
            phase (str): New phase (or event name such as "REVEALED")
        """
        payload = json.dumps(
            {
                "challenge_id": str(challenge_id),
                "phase": phase,
                "at": datetime.now().isoformat(),
            }
        )
        try:
            await self.redis.publish(challenge_channel(challenge_id), payload)
        except RedisError as e:
            logging.warning(f"Failed to publish {phase} for challenge {challenge_id}: {e}")
