"""Challenge state machine: the DB-backed side of the commit-reveal protocol.

- Routers should not touch DB sessions directly; they call this service.
- This layer owns session/transaction boundaries. Every operation is one
  transaction around one read-modify-write of the challenge row.
- Phase changes that must happen exactly once use a compare-and-set UPDATE
  (UpdateData.transition_phase_no_commit).
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from castaway.converter import DataConverter
from castaway.crud import CreateData, ReadData, UpdateData
from castaway.domain.commit_reveal import (
    FROZEN_PHASES,
    SCORABLE_PHASES,
    ChallengePhase,
    SecureSeedSource,
    client_material,
    derive_roll,
    hash_seed,
    is_valid_commit_hash,
    verify_commit,
    verify_rolls,
)
from castaway.domain.modifiers import PlayerStats
from castaway.domain.player_classes import class_challenge_bonus
from castaway.domain.scoring import ChallengeScore, aggregate, compute_score, resolve_winner
from castaway.domain.tower_of_ten import (
    PHASE_COMPLETE,
    initialize_tower_of_ten,
    submit_building_height,
    submit_puzzle_guess,
    tower_results,
    tower_standings,
)
from castaway.exceptions import (
    ChallengeConflictError,
    ChallengeNotFoundError,
    ChallengeNotReadyError,
    ChallengeValidationError,
    InvalidCommitmentError,
    SeedIntegrityError,
)
from castaway.load_secrets import default_top_k, roll_sides
from castaway.models.dc_models import (
    AcknowledgementModel,
    ChallengeCreateModel,
    ChallengeStateModel,
    ChallengeTypeModel,
    ChallengeVariantModel,
    ParticipantEntryModel,
    ScoreOutcomeModel,
    TeamScoreModel,
    TowerSubmissionTypeModel,
    TowerSubmitModel,
    TowerSubmitResponseModel,
    VerifyResultModel,
)
from castaway.services.events import ChallengeEventPublisher

OPEN = ChallengePhase.open.value
COMMITTED = ChallengePhase.committed.value
SCORED = ChallengePhase.scored.value
VERIFIED = ChallengePhase.verified.value

data_converter = DataConverter()


def build_outcome(
    challenge_type: str,
    top_k: int,
    entries: Sequence[ParticipantEntryModel],
    scores: Sequence[ChallengeScore],
) -> dict:
    """Aggregate scores into team totals and pick the winner.

    Teams are ordered by first appearance in entries, so winner_index refers
    to that order. Individual challenges compare participant totals directly.
    """
    if challenge_type == ChallengeTypeModel.team.value:
        team_order: List[UUID] = []
        team_members: Dict[UUID, List[ChallengeScore]] = {}
        for entry, score in zip(entries, scores):
            if entry.team_id not in team_members:
                team_order.append(entry.team_id)
                team_members[entry.team_id] = []
            team_members[entry.team_id].append(score)

        team_scores = []
        for team_id in team_order:
            team_score = aggregate(team_members[team_id], top_k)
            team_scores.append(
                {
                    "team_id": str(team_id),
                    "total": team_score.total,
                    "contributors": team_score.contributors,
                }
            )
        winner_index = resolve_winner([team["total"] for team in team_scores])
        winner_id = team_scores[winner_index]["team_id"] if winner_index is not None else None
    else:
        team_scores = []
        winner_index = resolve_winner([score.total for score in scores])
        winner_id = str(entries[winner_index].participant_id) if winner_index is not None else None

    return {
        "team_scores": team_scores,
        "winner_index": winner_index,
        "winner_id": winner_id,
        "is_tie": winner_index is None,
    }


class ChallengeService:
    def __init__(
        self,
        Session: async_sessionmaker,
        seed_source: Optional[SecureSeedSource] = None,
        publisher: Optional[ChallengeEventPublisher] = None,
        sides: int = roll_sides,
        top_k: int = default_top_k,
        tower_rng=None,
    ):
        self.Session: async_sessionmaker = Session
        self.seed_source = seed_source or SecureSeedSource()
        self.publisher = publisher
        self.sides = sides
        self.default_top_k = top_k
        self.tower_rng = tower_rng

    async def _publish(self, challenge_id: UUID, phase: str) -> None:
        logging.info(f"Challenge {challenge_id} -> {phase}")
        if self.publisher is not None:
            await self.publisher.publish_phase(challenge_id, phase)

    async def _flag_integrity_failure(self, challenge_id: UUID) -> None:
        """Persist the integrity flag in its own transaction so it survives
        the rollback of the operation that detected the mismatch."""
        logging.error(
            f"Seed integrity failure on challenge {challenge_id}: "
            "revealed server seed does not match the published commitment"
        )
        async with self.Session() as session:
            async with session.begin():
                await UpdateData.flag_integrity_failure_no_commit(challenge_id, session)

    async def _load_for_update(self, challenge_id: UUID, session):
        row = await ReadData.read_challenge_row(challenge_id, session, for_update=True)
        if row is None:
            raise ChallengeNotFoundError(f"Challenge {challenge_id} not found")
        return row

    async def get_challenge(self, challenge_id: UUID) -> ChallengeStateModel:
        """Query: current phase, public seeds, commitments and frozen scores."""
        async with self.Session() as session:
            challenge = await ReadData.read_challenge_data(challenge_id, session)
        if challenge is None:
            raise ChallengeNotFoundError(f"Challenge {challenge_id} not found")
        return data_converter.convert_challengeschema_to_statemodel(challenge)

    async def create_challenge(self, request: ChallengeCreateModel) -> ChallengeStateModel:
        """Open a challenge and publish the server seed commitment right away.

        Args:
            request (ChallengeCreateModel): Challenge settings

        Returns:
            ChallengeStateModel: The OPEN challenge with its seed_commit
        """
        state_json = None
        if request.variant == ChallengeVariantModel.tower_of_ten:
            tribe_ids = [str(tribe_id) for tribe_id in request.tribe_ids]
            if len(set(tribe_ids)) < 2:
                raise ChallengeValidationError("Tower of Ten needs at least two tribes")
            state_json = initialize_tower_of_ten(tribe_ids, self.tower_rng)

        top_k = request.top_k if request.top_k is not None else self.default_top_k

        async with self.Session() as session:
            async with session.begin():
                challenge = await CreateData.add_challenge_data(
                    session,
                    challenge_name=request.challenge_name,
                    challenge_type=request.challenge_type.value,
                    variant=request.variant.value,
                    top_k=max(0, top_k),
                    roll_sides=self.sides,
                    season_id=request.season_id,
                    day=request.day,
                    discipline=request.discipline.value if request.discipline else None,
                    state_json=state_json,
                )
                challenge_id = challenge.challenge_id

        await self.commit_server_seed(challenge_id)
        await self._publish(challenge_id, OPEN)
        return await self.get_challenge(challenge_id)

    async def commit_server_seed(self, challenge_id: UUID) -> str:
        """Draw the secret server seed and store SHA-256(seed) as seed_commit.

        Returns:
            str: The published seed_commit
        """
        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if row.phase != OPEN:
                    raise ChallengeConflictError("Server seed can only be committed while OPEN")
                if row.seed_commit is not None:
                    raise ChallengeConflictError("Server seed already committed")
                server_seed = self.seed_source.new_seed()
                row.server_seed = server_seed
                row.seed_commit = hash_seed(server_seed)
                seed_commit = row.seed_commit
        logging.info(f"Server seed committed for challenge {challenge_id}: {seed_commit}")
        return seed_commit

    async def commit_participant(
        self, challenge_id: UUID, participant_id: UUID, client_seed_hash: str
    ) -> AcknowledgementModel:
        """Record a participant's SHA-256 commitment. A later commitment from
        the same participant supersedes the earlier one (last write wins).
        """
        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if not is_valid_commit_hash(client_seed_hash):
                    raise InvalidCommitmentError("Invalid hash format")
                if row.phase != OPEN:
                    raise ChallengeConflictError("Commit window closed")
                if row.seed_commit is None:
                    raise ChallengeNotReadyError("Server seed not committed yet")
                # Conditional no-op update: re-checks OPEN and holds the row
                # lock until this commitment is written.
                still_open = await UpdateData.transition_phase_no_commit(
                    challenge_id, [OPEN], OPEN, session
                )
                if not still_open:
                    raise ChallengeConflictError("Commit window closed")
                await UpdateData.supersede_commits_no_commit(challenge_id, participant_id, session)
                await CreateData.add_commit_data(
                    challenge_id, participant_id, client_seed_hash.lower(), session
                )
        logging.info(f"Participant {participant_id} committed seed hash for challenge {challenge_id}")
        return AcknowledgementModel(success=True, message="Seed commitment recorded")

    async def close_commit_window(self, challenge_id: UUID) -> ChallengeStateModel:
        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if row.seed_commit is None:
                    raise ChallengeNotReadyError("Server seed not committed yet")
                closed = await UpdateData.transition_phase_no_commit(
                    challenge_id, [OPEN], COMMITTED, session, committed_at=datetime.now()
                )
                if not closed:
                    raise ChallengeConflictError(f"Commit window is not open (phase {row.phase})")
        await self._publish(challenge_id, COMMITTED)
        return await self.get_challenge(challenge_id)

    async def reveal_server_seed(self, challenge_id: UUID) -> ChallengeStateModel:
        """Disclose the server seed after checking it against seed_commit.

        Raises:
            SeedIntegrityError: The stored seed does not hash to seed_commit
        """
        integrity_failed = False
        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if row.phase == OPEN:
                    raise ChallengeConflictError("Commit window still open")
                if row.revealed_at is None:
                    if verify_commit(row.server_seed, row.seed_commit):
                        row.revealed_at = datetime.now()
                    else:
                        integrity_failed = True

        if integrity_failed:
            await self._flag_integrity_failure(challenge_id)
            raise SeedIntegrityError("Revealed server seed does not match seed commit")
        await self._publish(challenge_id, "REVEALED")
        return await self.get_challenge(challenge_id)

    async def reveal_client_seed(
        self, challenge_id: UUID, participant_id: UUID, client_seed: str
    ) -> AcknowledgementModel:
        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if row.phase != COMMITTED:
                    raise ChallengeConflictError(
                        f"Client seeds are disclosed while COMMITTED (phase {row.phase})"
                    )
                commit = await ReadData.read_active_commit(challenge_id, participant_id, session)
                if commit is None:
                    raise ChallengeNotFoundError(f"No commitment for participant {participant_id}")
                if not verify_commit(client_seed, commit.client_seed_hash):
                    raise InvalidCommitmentError("Client seed does not match committed hash")
                if commit.client_seed is None:
                    commit.client_seed = client_seed
                    commit.revealed_at = datetime.now()
        return AcknowledgementModel(success=True, message="Client seed revealed")

    async def score_challenge(
        self, challenge_id: UUID, entries: Sequence[ParticipantEntryModel]
    ) -> ScoreOutcomeModel:
        """Reveal and score: derive every roll, fold in modifiers, aggregate
        teams, pick the winner and freeze everything in one transaction.

        Args:
            challenge_id (UUID): Challenge to score
            entries (Sequence[ParticipantEntryModel]): One stat snapshot per participant

        Raises:
            ChallengeConflictError: The challenge was already scored
            SeedIntegrityError: The server seed does not match seed_commit
        """
        if not entries:
            raise ChallengeValidationError("At least one participant is required")
        participant_ids = [entry.participant_id for entry in entries]
        if len(set(participant_ids)) != len(participant_ids):
            raise ChallengeValidationError("Duplicate participant in score request")

        integrity_failed = False
        outcome: dict = {}
        scores: List[ChallengeScore] = []

        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if row.phase in [phase.value for phase in FROZEN_PHASES]:
                    raise ChallengeConflictError("Challenge already scored")
                if row.variant != ChallengeVariantModel.roll.value:
                    raise ChallengeValidationError(
                        "Tower of Ten challenges are scored through their submissions"
                    )
                if row.challenge_type == ChallengeTypeModel.team.value and any(
                    entry.team_id is None for entry in entries
                ):
                    raise ChallengeValidationError("team_id is required for team challenges")
                if row.seed_commit is None:
                    raise ChallengeNotReadyError("Server seed not committed yet")

                if not verify_commit(row.server_seed, row.seed_commit):
                    integrity_failed = True
                else:
                    commits = {
                        commit.participant_id: commit
                        for commit in await ReadData.read_active_commits(challenge_id, session)
                    }
                    materials: List[str] = []
                    for entry in entries:
                        commit = commits.get(entry.participant_id)
                        material = (
                            client_material(commit.client_seed_hash)
                            if commit is not None
                            else ""
                        )
                        roll = derive_roll(
                            row.server_seed,
                            material,
                            str(challenge_id),
                            str(entry.participant_id),
                            row.roll_sides,
                        )
                        class_bonus = class_challenge_bonus(
                            roll, entry.player_class, row.discipline, entry.wildcard_ability
                        )
                        scores.append(
                            compute_score(
                                roll,
                                PlayerStats(**entry.stats.model_dump()),
                                entry.item_bonus,
                                entry.event_bonus + class_bonus,
                                entry.debuffs,
                            )
                        )
                        materials.append(material)

                    outcome = build_outcome(row.challenge_type, row.top_k, entries, scores)
                    now = datetime.now()
                    won = await UpdateData.transition_phase_no_commit(
                        challenge_id,
                        [phase.value for phase in SCORABLE_PHASES],
                        SCORED,
                        session,
                        scored_at=now,
                        revealed_at=row.revealed_at or now,
                        outcome_json=outcome,
                    )
                    if not won:
                        raise ChallengeConflictError("Challenge already scored")
                    for position, (entry, score, material) in enumerate(
                        zip(entries, scores, materials)
                    ):
                        await CreateData.add_result_data(
                            challenge_id,
                            position,
                            entry.participant_id,
                            entry.team_id,
                            material,
                            score,
                            session,
                        )

        if integrity_failed:
            await self._flag_integrity_failure(challenge_id)
            raise SeedIntegrityError("Revealed server seed does not match seed commit")

        await self._publish(challenge_id, SCORED)
        challenge = await self.get_challenge(challenge_id)
        return ScoreOutcomeModel(
            challenge_id=challenge_id,
            scores=challenge.scores,
            team_scores=[TeamScoreModel(**team) for team in outcome["team_scores"]],
            winner_index=outcome["winner_index"],
            winner_id=outcome["winner_id"],
            is_tie=outcome["is_tie"],
        )

    async def verify_challenge(self, challenge_id: UUID) -> VerifyResultModel:
        """Recompute SHA-256(server_seed), replay every frozen roll and compare.

        Verification never changes scores. A successful check on a SCORED
        challenge records VERIFIED; a failed one flags the challenge.

        Raises:
            ChallengeNotReadyError: The server seed has not been revealed yet
        """
        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if row.revealed_at is None:
                    raise ChallengeNotReadyError("Seeds not yet revealed")

                seed_valid = verify_commit(row.server_seed, row.seed_commit)
                commits = {
                    commit.participant_id: commit
                    for commit in await ReadData.read_active_commits(challenge_id, session)
                }
                results = await ReadData.read_results(challenge_id, session)

                roll_errors: List[str] = []
                for result in results:
                    commit = commits.get(result.participant_id)
                    expected_material = (
                        client_material(commit.client_seed_hash)
                        if commit is not None
                        else ""
                    )
                    if result.client_seed != expected_material:
                        roll_errors.append(
                            f"Client seed mismatch for {result.participant_id}"
                        )
                for participant_id, commit in commits.items():
                    if commit.client_seed is not None and not verify_commit(
                        commit.client_seed, commit.client_seed_hash
                    ):
                        roll_errors.append(f"Disclosed client seed mismatch for {participant_id}")
                _, replay_errors = verify_rolls(
                    row.server_seed,
                    {str(result.participant_id): result.client_seed for result in results},
                    str(challenge_id),
                    {str(result.participant_id): result.roll for result in results},
                    row.roll_sides,
                )
                roll_errors.extend(replay_errors)
                is_valid = seed_valid and not roll_errors

                if is_valid and row.phase == SCORED:
                    await UpdateData.transition_phase_no_commit(
                        challenge_id,
                        [SCORED],
                        VERIFIED,
                        session,
                        verified_at=datetime.now(),
                        verification_valid=True,
                    )
                response = VerifyResultModel(
                    challenge_id=challenge_id,
                    is_valid=is_valid,
                    seed_commit=row.seed_commit,
                    server_seed=row.server_seed,
                    roll_sides=row.roll_sides,
                    client_seeds={
                        str(result.participant_id): result.client_seed for result in results
                    },
                    roll_errors=roll_errors,
                )
                was_scored = row.phase == SCORED

        if not is_valid:
            await self._flag_integrity_failure(challenge_id)
        elif was_scored:
            await self._publish(challenge_id, VERIFIED)
        return response

    async def submit_tower(
        self, challenge_id: UUID, request: TowerSubmitModel
    ) -> TowerSubmitResponseModel:
        """Apply one Tower of Ten submission; completion freezes the challenge."""
        completed = False
        async with self.Session() as session:
            async with session.begin():
                row = await self._load_for_update(challenge_id, session)
                if row.variant != ChallengeVariantModel.tower_of_ten.value:
                    raise ChallengeValidationError("This challenge is not a Tower of Ten")
                if row.phase in [phase.value for phase in FROZEN_PHASES]:
                    raise ChallengeConflictError("Challenge already completed")

                tribe_id = str(request.tribe_id)
                if request.submission_type == TowerSubmissionTypeModel.building:
                    if request.height is None:
                        raise ChallengeValidationError("Height required for building")
                    result = submit_building_height(row.state_json, tribe_id, request.height)
                else:
                    if not request.guess:
                        raise ChallengeValidationError("Guess required for puzzle")
                    result = submit_puzzle_guess(row.state_json, tribe_id, request.guess)

                if not result.success:
                    raise ChallengeValidationError(result.message)

                row.state_json = result.state
                outcome = None
                if result.state["phase"] == PHASE_COMPLETE:
                    results = tower_results(result.state)
                    outcome = {
                        "winner_id": results.winner,
                        "loser_id": results.loser,
                        "placements": [
                            {
                                "tribe_id": placement.tribe_id,
                                "turns": placement.turns,
                                "placement": placement.placement,
                            }
                            for placement in results.placements
                        ],
                        "puzzle_solution": result.state["puzzle_solution"],
                    }
                    won = await UpdateData.transition_phase_no_commit(
                        challenge_id,
                        [phase.value for phase in SCORABLE_PHASES],
                        SCORED,
                        session,
                        scored_at=datetime.now(),
                        outcome_json=outcome,
                    )
                    if not won:
                        raise ChallengeConflictError("Challenge already completed")
                    completed = True

        if completed:
            await self._publish(challenge_id, SCORED)
        return TowerSubmitResponseModel(
            success=True,
            message=result.message,
            feedback=result.feedback,
            phase=result.state["phase"],
            standings=tower_standings(result.state),
            outcome=outcome,
        )

    async def audit_revealed_challenges(self) -> int:
        """Re-check every revealed, unverified challenge against its commit.

        Returns:
            int: Number of integrity failures found
        """
        async with self.Session() as session:
            challenge_ids = await ReadData.read_unverified_revealed_ids(session)

        failures = 0
        for challenge_id in challenge_ids:
            async with self.Session() as session:
                row = await ReadData.read_challenge_row(challenge_id, session)
            if row is not None and not verify_commit(row.server_seed, row.seed_commit):
                failures += 1
                await self._flag_integrity_failure(challenge_id)
        logging.info(f"Seed audit checked {len(challenge_ids)} challenges, {failures} failures")
        return failures
