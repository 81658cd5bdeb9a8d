import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status, HTTPException
from fastapi.responses import StreamingResponse
from redis.asyncio import Redis

from castaway.db import Session
from castaway.exceptions import (
    ChallengeConflictError,
    ChallengeError,
    ChallengeNotFoundError,
    ChallengeNotReadyError,
    ChallengeValidationError,
    SeedIntegrityError,
)
from castaway.load_secrets import redis_host, redis_port
from castaway.models.dc_models import (
    AcknowledgementModel,
    ChallengeCreateModel,
    ChallengeStateModel,
    ClientSeedRevealModel,
    ScoreOutcomeModel,
    ScoreRequestModel,
    SeedCommitModel,
    TowerSubmitModel,
    TowerSubmitResponseModel,
    VerifyResultModel,
)
from castaway.redis_subscriber import RedisSubscriber
from castaway.services.challenge_service import ChallengeService
from castaway.services.events import ChallengeEventPublisher

redis = Redis(host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30)

challenge_router = APIRouter(prefix="/challenge", tags=["challenge"])
challenge_service = ChallengeService(Session, publisher=ChallengeEventPublisher(redis))

ERROR_STATUS = [
    (ChallengeNotFoundError, status.HTTP_404_NOT_FOUND),
    (ChallengeValidationError, status.HTTP_400_BAD_REQUEST),
    (ChallengeNotReadyError, status.HTTP_400_BAD_REQUEST),
    (ChallengeConflictError, status.HTTP_409_CONFLICT),
    (SeedIntegrityError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def get_challenge_service() -> ChallengeService:
    return challenge_service


def to_http_exception(error: ChallengeError) -> HTTPException:
    """Map a service error to the HTTP status the API promises for it."""
    for error_class, status_code in ERROR_STATUS:
        if isinstance(error, error_class):
            if status_code >= 500:
                logging.error(f"Challenge integrity failure: {error}")
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


class ChallengeAPI:
    @staticmethod
    @challenge_router.post("", response_model=ChallengeStateModel, status_code=status.HTTP_201_CREATED)
    async def create_challenge(
        request: ChallengeCreateModel,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        """Open a challenge; the response already carries the server seed_commit."""
        try:
            return await service.create_challenge(request)
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.get("/{challenge_id}", response_model=ChallengeStateModel)
    async def get_challenge(
        challenge_id: UUID,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        try:
            return await service.get_challenge(challenge_id)
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.post("/{challenge_id}/commit", response_model=AcknowledgementModel)
    async def commit_seed_hash(
        challenge_id: UUID,
        commit: SeedCommitModel,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        """Commit SHA-256(client_seed) while the commit window is open

        Args:
            challenge_id (UUID): To identify the challenge
            commit (SeedCommitModel): participant_id and the 64 hex char hash
        """
        try:
            return await service.commit_participant(
                challenge_id, commit.participant_id, commit.client_seed_hash
            )
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.post("/{challenge_id}/close", response_model=ChallengeStateModel)
    async def close_commit_window(
        challenge_id: UUID,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        try:
            return await service.close_commit_window(challenge_id)
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.post("/{challenge_id}/reveal", response_model=ChallengeStateModel)
    async def reveal_server_seed(
        challenge_id: UUID,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        try:
            return await service.reveal_server_seed(challenge_id)
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.post("/{challenge_id}/reveal-client", response_model=AcknowledgementModel)
    async def reveal_client_seed(
        challenge_id: UUID,
        reveal: ClientSeedRevealModel,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        try:
            return await service.reveal_client_seed(
                challenge_id, reveal.participant_id, reveal.client_seed
            )
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.post("/{challenge_id}/score", response_model=ScoreOutcomeModel)
    async def score_challenge(
        challenge_id: UUID,
        request: ScoreRequestModel,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        """Reveal the server seed and score every participant exactly once

        Args:
            challenge_id (UUID): To identify the challenge
            request (ScoreRequestModel): One live stat snapshot per participant
        """
        try:
            return await service.score_challenge(challenge_id, request.participants)
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.post("/{challenge_id}/verify", response_model=VerifyResultModel)
    async def verify_challenge(
        challenge_id: UUID,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        try:
            return await service.verify_challenge(challenge_id)
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.post("/{challenge_id}/tower/submit", response_model=TowerSubmitResponseModel)
    async def submit_tower(
        challenge_id: UUID,
        request: TowerSubmitModel,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        try:
            return await service.submit_tower(challenge_id, request)
        except ChallengeError as e:
            raise to_http_exception(e)

    @staticmethod
    @challenge_router.get("/{challenge_id}/stream")
    async def stream_challenge_events(
        challenge_id: UUID,
        service: ChallengeService = Depends(get_challenge_service),
    ):
        redis_subscriber = RedisSubscriber(service, challenge_id)

        return StreamingResponse(
            redis_subscriber.event_generator(redis),
            media_type="text/event-stream; charset=utf-8",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )
