"""CRUD helpers for challenge tables.

None of these helpers commit: the service layer owns every transaction
(`async with session.begin()`), so several helpers can share one atomic
read-modify-write.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import selectinload

from castaway.domain.scoring import ChallengeScore
from castaway.models.schema_models import ChallengeSchema
from castaway.models.schemas import (
    Base,
    Challenge,
    ChallengeCommit,
    ChallengeResult,
)


class CreateData:
    @staticmethod
    async def create_table(engine: AsyncEngine) -> None:
        """Create table if not exists"""
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except IntegrityError as e:
            logging.warning(f"Table already exists or other integrity error: {e}")

    @staticmethod
    async def add_challenge_data(
        session: AsyncSession,
        *,
        challenge_name: str,
        challenge_type: str,
        variant: str,
        top_k: int,
        roll_sides: int,
        season_id: Optional[UUID] = None,
        day: int = 0,
        discipline: Optional[str] = None,
        state_json: Optional[dict] = None,
    ) -> Challenge:
        """Add a new challenge in the OPEN phase (no commit)."""
        new_challenge = Challenge(
            season_id=season_id,
            day=day,
            challenge_name=challenge_name,
            challenge_type=challenge_type,
            variant=variant,
            discipline=discipline,
            top_k=top_k,
            roll_sides=roll_sides,
            phase="OPEN",
            state_json=state_json,
            integrity_failure=False,
            created_at=datetime.now(),
        )
        session.add(new_challenge)
        await session.flush()
        return new_challenge

    @staticmethod
    async def add_commit_data(
        challenge_id: UUID,
        participant_id: UUID,
        client_seed_hash: str,
        session: AsyncSession,
    ) -> ChallengeCommit:
        """Add a participant commitment (no commit)."""
        new_commit = ChallengeCommit(
            challenge_id=challenge_id,
            participant_id=participant_id,
            client_seed_hash=client_seed_hash,
            superseded=False,
            created_at=datetime.now(),
        )
        session.add(new_commit)
        await session.flush()
        return new_commit

    @staticmethod
    async def add_result_data(
        challenge_id: UUID,
        position: int,
        participant_id: UUID,
        team_id: Optional[UUID],
        client_seed: str,
        score: ChallengeScore,
        session: AsyncSession,
    ) -> ChallengeResult:
        """Add one participant's frozen score (no commit)."""
        new_result = ChallengeResult(
            challenge_id=challenge_id,
            position=position,
            participant_id=participant_id,
            team_id=team_id,
            roll=score.roll,
            client_seed=client_seed,
            modifiers_json=score.modifiers.to_dict(),
            total=score.total,
            breakdown=list(score.breakdown),
            created_at=datetime.now(),
        )
        session.add(new_result)
        return new_result


class ReadData:
    @staticmethod
    async def read_challenge_row(
        challenge_id: UUID, session: AsyncSession, for_update: bool = False
    ) -> Optional[Challenge]:
        """Read the challenge row, optionally locking it for the transaction."""
        stmt = select(Challenge).where(Challenge.challenge_id == challenge_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_challenge_data(
        challenge_id: UUID, session: AsyncSession
    ) -> Optional[ChallengeSchema]:
        """Read challenge data with every commitment and result.

        Args:
            challenge_id (UUID): To identify the challenge

        Returns:
            ChallengeSchema: Challenge data, or None if it does not exist
        """
        stmt = (
            select(Challenge)
            .where(Challenge.challenge_id == challenge_id)
            .options(
                selectinload(Challenge.commits),
                selectinload(Challenge.results),
            )
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        challenge = result.scalars().first()
        if challenge is None:
            return None
        return ChallengeSchema.model_validate(challenge)

    @staticmethod
    async def read_active_commits(
        challenge_id: UUID, session: AsyncSession
    ) -> List[ChallengeCommit]:
        stmt = (
            select(ChallengeCommit)
            .where(
                ChallengeCommit.challenge_id == challenge_id,
                ChallengeCommit.superseded.is_(False),
            )
            .order_by(ChallengeCommit.created_at)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_active_commit(
        challenge_id: UUID, participant_id: UUID, session: AsyncSession
    ) -> Optional[ChallengeCommit]:
        stmt = select(ChallengeCommit).where(
            ChallengeCommit.challenge_id == challenge_id,
            ChallengeCommit.participant_id == participant_id,
            ChallengeCommit.superseded.is_(False),
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_results(
        challenge_id: UUID, session: AsyncSession
    ) -> List[ChallengeResult]:
        stmt = (
            select(ChallengeResult)
            .where(ChallengeResult.challenge_id == challenge_id)
            .order_by(ChallengeResult.position)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_unverified_revealed_ids(session: AsyncSession) -> List[UUID]:
        """Collect ids of revealed challenges nobody has verified yet."""
        stmt = select(Challenge.challenge_id).where(
            Challenge.revealed_at.is_not(None),
            Challenge.verified_at.is_(None),
            Challenge.integrity_failure.is_(False),
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())


class UpdateData:
    @staticmethod
    async def supersede_commits_no_commit(
        challenge_id: UUID, participant_id: UUID, session: AsyncSession
    ) -> int:
        """Mark a participant's active commitments superseded (rows are kept)."""
        stmt = (
            update(ChallengeCommit)
            .where(
                ChallengeCommit.challenge_id == challenge_id,
                ChallengeCommit.participant_id == participant_id,
                ChallengeCommit.superseded.is_(False),
            )
            .values(superseded=True)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount

    @staticmethod
    async def transition_phase_no_commit(
        challenge_id: UUID,
        from_phases: Iterable[str],
        to_phase: str,
        session: AsyncSession,
        **values,
    ) -> bool:
        """Compare-and-set the challenge phase.

        The UPDATE only matches while the row is still in one of from_phases,
        so of two concurrent callers exactly one sees True.

        Args:
            challenge_id (UUID): To identify the challenge
            from_phases (Iterable[str]): Phases the row must currently be in
            to_phase (str): Phase to move to
            **values: Extra columns written in the same statement

        Returns:
            bool: True if this caller performed the transition
        """
        stmt = (
            update(Challenge)
            .where(
                Challenge.challenge_id == challenge_id,
                Challenge.phase.in_(list(from_phases)),
            )
            .values(phase=to_phase, **values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def flag_integrity_failure_no_commit(
        challenge_id: UUID, session: AsyncSession
    ) -> None:
        stmt = (
            update(Challenge)
            .where(Challenge.challenge_id == challenge_id)
            .values(integrity_failure=True, verification_valid=False)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)
