from pydantic import BaseModel
from datetime import datetime
from enum import Enum
from uuid import UUID
from typing import Optional, Dict, List

from castaway.domain.player_classes import Discipline, PlayerClass


class ChallengeTypeModel(str, Enum):
    team = "team"
    individual = "individual"


class ChallengeVariantModel(str, Enum):
    roll = "roll"
    tower_of_ten = "tower_of_ten"


class TowerSubmissionTypeModel(str, Enum):
    building = "building"
    puzzle = "puzzle"


class ChallengeCreateModel(BaseModel):
    challenge_name: str
    season_id: Optional[UUID] = None
    day: int = 0
    challenge_type: ChallengeTypeModel = ChallengeTypeModel.team
    variant: ChallengeVariantModel = ChallengeVariantModel.roll
    discipline: Optional[Discipline] = None
    top_k: Optional[int] = None
    tribe_ids: List[UUID] = []  # tower_of_ten only


class SeedCommitModel(BaseModel):
    participant_id: UUID
    # Format is checked by the service so a bad hash is a 400, not a 422.
    client_seed_hash: str


class ClientSeedRevealModel(BaseModel):
    participant_id: UUID
    client_seed: str


class PlayerStatsModel(BaseModel):
    energy: int
    hunger: int
    thirst: int
    social: int = 0


class ParticipantEntryModel(BaseModel):
    participant_id: UUID
    team_id: Optional[UUID] = None
    stats: PlayerStatsModel
    item_bonus: int = 0
    event_bonus: int = 0
    debuffs: List[str] = []
    player_class: Optional[PlayerClass] = None
    wildcard_ability: Optional[PlayerClass] = None


class ScoreRequestModel(BaseModel):
    participants: List[ParticipantEntryModel]


class TowerSubmitModel(BaseModel):
    tribe_id: UUID
    submission_type: TowerSubmissionTypeModel
    height: Optional[int] = None
    guess: Optional[List[str]] = None


class AcknowledgementModel(BaseModel):
    success: bool
    message: str


class ModifierModel(BaseModel):
    energy: int
    hunger: int
    thirst: int
    item_bonus: int
    event_bonus: int
    debuffs: List[str]


class ChallengeScoreModel(BaseModel):
    participant_id: UUID
    team_id: Optional[UUID] = None
    roll: int
    modifiers: ModifierModel
    total: int
    breakdown: List[str]


class TeamScoreModel(BaseModel):
    team_id: UUID
    total: int
    contributors: List[int]


class ScoreOutcomeModel(BaseModel):
    challenge_id: UUID
    scores: List[ChallengeScoreModel]
    team_scores: List[TeamScoreModel]
    winner_index: Optional[int] = None
    winner_id: Optional[UUID] = None
    is_tie: bool


class VerifyResultModel(BaseModel):
    challenge_id: UUID
    is_valid: bool
    seed_commit: str
    server_seed: str
    roll_sides: int
    client_seeds: Dict[str, Optional[str]]
    roll_errors: List[str] = []


class CommitmentModel(BaseModel):
    participant_id: UUID
    client_seed_hash: str
    client_seed: Optional[str] = None
    superseded: bool
    created_at: datetime


class ChallengeStateModel(BaseModel):
    challenge_id: UUID
    season_id: Optional[UUID] = None
    day: int
    challenge_name: Optional[str] = None
    challenge_type: str
    variant: str
    discipline: Optional[str] = None
    top_k: int
    roll_sides: int
    phase: str
    seed_commit: Optional[str] = None
    server_seed: Optional[str] = None
    integrity_failure: bool
    verification_valid: Optional[bool] = None
    created_at: datetime
    committed_at: Optional[datetime] = None
    revealed_at: Optional[datetime] = None
    scored_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    commitments: List[CommitmentModel] = []
    scores: List[ChallengeScoreModel] = []
    outcome: Optional[dict] = None
    standings: Optional[List[dict]] = None


class TowerSubmitResponseModel(BaseModel):
    success: bool
    message: str
    feedback: str = ""
    phase: str
    standings: List[dict]
    outcome: Optional[dict] = None
