from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class ChallengeCommitSchema(BaseModel):
    commit_id: UUID
    challenge_id: UUID
    participant_id: UUID
    client_seed_hash: str
    client_seed: Optional[str] = None
    superseded: bool
    created_at: datetime
    revealed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChallengeResultSchema(BaseModel):
    result_id: UUID
    challenge_id: UUID
    participant_id: UUID
    team_id: Optional[UUID] = None
    position: int
    roll: int
    client_seed: str
    modifiers_json: dict
    total: int
    breakdown: List[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ChallengeSchema(BaseModel):
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
    state_json: Optional[dict] = None
    outcome_json: Optional[dict] = None
    integrity_failure: bool
    verification_valid: Optional[bool] = None
    created_at: datetime
    committed_at: Optional[datetime] = None
    revealed_at: Optional[datetime] = None
    scored_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    commits: List[ChallengeCommitSchema] = []
    results: List[ChallengeResultSchema] = []

    class Config:
        from_attributes = True
