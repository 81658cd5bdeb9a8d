from typing import List

from castaway.domain.tower_of_ten import tower_standings
from castaway.models.dc_models import (
    ChallengeScoreModel,
    ChallengeStateModel,
    CommitmentModel,
    ModifierModel,
)
from castaway.models.schema_models import ChallengeResultSchema, ChallengeSchema


class DataConverter:
    """This class is used to convert data between different formats."""

    def convert_result_to_scoremodel(self, result: ChallengeResultSchema) -> ChallengeScoreModel:
        """Convert a persisted result row to the score sent to clients

        Args:
            result (ChallengeResultSchema): Frozen result of one participant
        Returns:
            ChallengeScoreModel: Roll, modifiers, total and breakdown
        """
        return ChallengeScoreModel(
            participant_id=result.participant_id,
            team_id=result.team_id,
            roll=result.roll,
            modifiers=ModifierModel(**result.modifiers_json),
            total=result.total,
            breakdown=list(result.breakdown),
        )

    def convert_challengeschema_to_statemodel(self, challenge: ChallengeSchema) -> ChallengeStateModel:
        """Convert the ChallengeSchema to the ChallengeStateModel to send client

        The server seed stays hidden until it has been revealed, and the
        Tower of Ten state is reduced to public standings (no solution).

        Args:
            challenge (ChallengeSchema): Challenge with commitments and results
        Returns:
            ChallengeStateModel: Public view of the challenge
        """
        server_seed = challenge.server_seed if challenge.revealed_at is not None else None

        commitments: List[CommitmentModel] = [
            CommitmentModel(
                participant_id=commit.participant_id,
                client_seed_hash=commit.client_seed_hash,
                client_seed=commit.client_seed,
                superseded=commit.superseded,
                created_at=commit.created_at,
            )
            for commit in challenge.commits
        ]
        scores = [self.convert_result_to_scoremodel(result) for result in challenge.results]

        standings = None
        if challenge.state_json is not None:
            standings = tower_standings(challenge.state_json)

        return ChallengeStateModel(
            challenge_id=challenge.challenge_id,
            season_id=challenge.season_id,
            day=challenge.day,
            challenge_name=challenge.challenge_name,
            challenge_type=challenge.challenge_type,
            variant=challenge.variant,
            discipline=challenge.discipline,
            top_k=challenge.top_k,
            roll_sides=challenge.roll_sides,
            phase=challenge.phase,
            seed_commit=challenge.seed_commit,
            server_seed=server_seed,
            integrity_failure=challenge.integrity_failure,
            verification_valid=challenge.verification_valid,
            created_at=challenge.created_at,
            committed_at=challenge.committed_at,
            revealed_at=challenge.revealed_at,
            scored_at=challenge.scored_at,
            verified_at=challenge.verified_at,
            commitments=commitments,
            scores=scores,
            outcome=challenge.outcome_json,
            standings=standings,
        )
