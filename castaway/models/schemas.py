from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column, UniqueConstraint, Index
from sqlalchemy.types import Boolean, Integer, String, Uuid, DateTime, JSON
from uuid6 import uuid7
from datetime import datetime


class Base(DeclarativeBase):
    pass


class Challenge(Base):
    __tablename__ = "challenge"
    challenge_id = Column(Uuid, primary_key=True, default=uuid7)
    season_id = Column(Uuid, nullable=True)
    day = Column(Integer, default=0)
    challenge_name = Column(String)
    challenge_type = Column(String, nullable=False)  # "team" | "individual"
    variant = Column(String, nullable=False, default="roll")  # "roll" | "tower_of_ten"
    discipline = Column(String, nullable=True)  # "physical" | "puzzle"
    top_k = Column(Integer, nullable=False)
    # Roll range fixed at creation; scoring and every later verify replay with it.
    roll_sides = Column(Integer, nullable=False, default=20)
    phase = Column(String, nullable=False, default="OPEN")
    seed_commit = Column(String(64), nullable=True)
    # Secret until revealed_at is set; never returned before that.
    server_seed = Column(String, nullable=True)
    state_json = Column(JSON, nullable=True)
    outcome_json = Column(JSON, nullable=True)
    integrity_failure = Column(Boolean, nullable=False, default=False)
    verification_valid = Column(Boolean, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    committed_at = Column(DateTime, nullable=True)
    revealed_at = Column(DateTime, nullable=True)
    scored_at = Column(DateTime, nullable=True)
    verified_at = Column(DateTime, nullable=True)

    commits = relationship(
        "ChallengeCommit",
        primaryjoin="Challenge.challenge_id == foreign(ChallengeCommit.challenge_id)",
        back_populates="challenge",
        order_by="ChallengeCommit.created_at",
    )
    results = relationship(
        "ChallengeResult",
        primaryjoin="Challenge.challenge_id == foreign(ChallengeResult.challenge_id)",
        back_populates="challenge",
        order_by="ChallengeResult.position",
    )


class ChallengeCommit(Base):
    __tablename__ = "challenge_commit"
    __table_args__ = (
        Index("challenge_commit_challenge_participant_idx", "challenge_id", "participant_id"),
    )
    commit_id = Column(Uuid, primary_key=True, default=uuid7)
    challenge_id = Column(Uuid, nullable=False)
    participant_id = Column(Uuid, nullable=False)
    client_seed_hash = Column(String(64), nullable=False)
    client_seed = Column(String, nullable=True)
    superseded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now)
    revealed_at = Column(DateTime, nullable=True)

    challenge = relationship(
        "Challenge",
        primaryjoin="foreign(ChallengeCommit.challenge_id) == Challenge.challenge_id",
        back_populates="commits",
    )


class ChallengeResult(Base):
    __tablename__ = "challenge_result"
    __table_args__ = (
        UniqueConstraint("challenge_id", "participant_id", name="challenge_result_participant_uq"),
    )
    result_id = Column(Uuid, primary_key=True, default=uuid7)
    challenge_id = Column(Uuid, nullable=False)
    participant_id = Column(Uuid, nullable=False)
    team_id = Column(Uuid, nullable=True)
    position = Column(Integer, nullable=False)
    roll = Column(Integer, nullable=False)
    client_seed = Column(String, nullable=False, default="")
    modifiers_json = Column(JSON, nullable=False)
    total = Column(Integer, nullable=False)
    breakdown = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    challenge = relationship(
        "Challenge",
        primaryjoin="foreign(ChallengeResult.challenge_id) == Challenge.challenge_id",
        back_populates="results",
    )
