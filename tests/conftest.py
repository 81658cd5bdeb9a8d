"""Shared fixtures: a throwaway aiosqlite database per test."""
from __future__ import annotations

import asyncio
import os
import tempfile

os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("SQLITE_PATH", os.path.join(tempfile.gettempdir(), "castaway-test.sqlite3"))

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from castaway.crud import CreateData
from castaway.models.schemas import Challenge
from castaway.services.challenge_service import ChallengeService


class FixedSeedSource:
    """Seed source returning a known seed so rolls can be recomputed in tests."""

    def __init__(self, seed: str = "server-seed-1"):
        self.seed = seed

    def new_seed(self) -> str:
        return self.seed


def make_session_factory(database_url: str):
    engine = create_async_engine(database_url, poolclass=NullPool)
    Session = async_sessionmaker(
        autocommit=False,
        class_=AsyncSession,
        expire_on_commit=False,
        bind=engine,
    )
    return engine, Session


async def tamper_server_seed(Session, challenge_id, server_seed: str) -> None:
    """Swap the stored server seed behind the protocol's back."""
    async with Session() as session:
        async with session.begin():
            await session.execute(
                update(Challenge)
                .where(Challenge.challenge_id == challenge_id)
                .values(server_seed=server_seed)
            )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'challenge.sqlite3'}"


@pytest.fixture
def run_scenario(database_url):
    """Run `scenario(service, Session)` against a fresh database."""

    def _run(scenario, **service_kwargs):
        async def _main():
            engine, Session = make_session_factory(database_url)
            await CreateData.create_table(engine)
            service_kwargs.setdefault("seed_source", FixedSeedSource())
            service_kwargs.setdefault("sides", 20)
            service_kwargs.setdefault("top_k", 3)
            service = ChallengeService(Session, **service_kwargs)
            try:
                return await scenario(service, Session)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run
