"""HTTP surface: status codes for each service error and the happy path."""
from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from castaway.crud import CreateData
from castaway.domain.commit_reveal import derive_roll, generate_client_commit, hash_seed
from castaway.routers.challenge import challenge_router, get_challenge_service
from castaway.services.challenge_service import ChallengeService
from tests.conftest import FixedSeedSource, make_session_factory, tamper_server_seed


@pytest.fixture
def session_factory(database_url):
    engine, Session = make_session_factory(database_url)
    asyncio.run(CreateData.create_table(engine))
    yield Session
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory):
    service = ChallengeService(session_factory, seed_source=FixedSeedSource(), sides=20, top_k=3)
    app = FastAPI()
    app.include_router(challenge_router)
    app.dependency_overrides[get_challenge_service] = lambda: service
    return TestClient(app)


def create(client, **body):
    body.setdefault("challenge_name", "Immunity challenge")
    response = client.post("/challenge", json=body)
    assert response.status_code == 201
    return response.json()


def participant(team_id=None, **stats):
    entry = {
        "participant_id": str(uuid4()),
        "stats": {"energy": 50, "hunger": 50, "thirst": 50, **stats},
    }
    if team_id is not None:
        entry["team_id"] = str(team_id)
    return entry


class TestChallengeAPI:
    def test_create_and_query(self, client):
        challenge = create(client)
        assert challenge["phase"] == "OPEN"
        assert challenge["seed_commit"] == hash_seed("server-seed-1")
        assert challenge["server_seed"] is None

        response = client.get(f"/challenge/{challenge['challenge_id']}")
        assert response.status_code == 200
        assert response.json()["challenge_id"] == challenge["challenge_id"]

    def test_unknown_challenge_is_404(self, client):
        assert client.get(f"/challenge/{uuid4()}").status_code == 404

    def test_malformed_hash_is_400(self, client):
        challenge = create(client)
        response = client.post(
            f"/challenge/{challenge['challenge_id']}/commit",
            json={"participant_id": str(uuid4()), "client_seed_hash": "not-a-hash"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid hash format"

    def test_invalid_body_is_422(self, client):
        challenge = create(client)
        response = client.post(
            f"/challenge/{challenge['challenge_id']}/commit", json={"client_seed_hash": "a" * 64}
        )
        assert response.status_code == 422

    def test_commit_after_close_is_409(self, client):
        challenge = create(client)
        challenge_id = challenge["challenge_id"]
        assert client.post(f"/challenge/{challenge_id}/close").status_code == 200
        response = client.post(
            f"/challenge/{challenge_id}/commit",
            json={"participant_id": str(uuid4()), "client_seed_hash": "a" * 64},
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Commit window closed"

    def test_second_score_is_409(self, client):
        challenge = create(client, challenge_type="individual")
        body = {"participants": [participant()]}
        url = f"/challenge/{challenge['challenge_id']}/score"
        assert client.post(url, json=body).status_code == 200
        assert client.post(url, json=body).status_code == 409

    def test_verify_before_reveal_is_400(self, client):
        challenge = create(client)
        response = client.post(f"/challenge/{challenge['challenge_id']}/verify")
        assert response.status_code == 400
        assert response.json()["detail"] == "Seeds not yet revealed"

    def test_integrity_failure_is_500(self, client, session_factory):
        challenge = create(client)
        challenge_id = challenge["challenge_id"]
        client.post(f"/challenge/{challenge_id}/close")
        asyncio.run(tamper_server_seed(session_factory, UUID(challenge_id), "other-seed"))

        assert client.post(f"/challenge/{challenge_id}/reveal").status_code == 500
        assert client.get(f"/challenge/{challenge_id}").json()["integrity_failure"] is True

    def test_full_team_flow(self, client):
        team_a, team_b = uuid4(), uuid4()
        challenge = create(client, top_k=2, discipline="physical")
        challenge_id = challenge["challenge_id"]

        players = [participant(team_a), participant(team_a, hunger=10), participant(team_b)]
        seed, commit_hash = generate_client_commit()
        response = client.post(
            f"/challenge/{challenge_id}/commit",
            json={"participant_id": players[0]["participant_id"], "client_seed_hash": commit_hash},
        )
        assert response.json() == {"success": True, "message": "Seed commitment recorded"}

        client.post(f"/challenge/{challenge_id}/close")
        response = client.post(
            f"/challenge/{challenge_id}/reveal-client",
            json={"participant_id": players[0]["participant_id"], "client_seed": seed},
        )
        assert response.status_code == 200

        response = client.post(f"/challenge/{challenge_id}/score", json={"participants": players})
        assert response.status_code == 200
        outcome = response.json()
        assert len(outcome["scores"]) == 3
        assert [team["team_id"] for team in outcome["team_scores"]] == [str(team_a), str(team_b)]
        for team in outcome["team_scores"]:
            assert team["total"] == sum(team["contributors"])
        assert outcome["is_tie"] == (outcome["winner_index"] is None)

        response = client.post(f"/challenge/{challenge_id}/verify")
        assert response.status_code == 200
        verification = response.json()
        assert verification["is_valid"] is True
        assert verification["server_seed"] == "server-seed-1"
        assert verification["client_seeds"][players[0]["participant_id"]] == commit_hash

        state = client.get(f"/challenge/{challenge_id}").json()
        assert state["phase"] == "VERIFIED"

    def test_late_client_reveal_keeps_committed_roll(self, client):
        challenge = create(client, challenge_type="individual")
        challenge_id = challenge["challenge_id"]
        assert challenge["roll_sides"] == 20
        seed, commit_hash = generate_client_commit()
        entry = participant()
        client.post(
            f"/challenge/{challenge_id}/commit",
            json={"participant_id": entry["participant_id"], "client_seed_hash": commit_hash},
        )
        client.post(f"/challenge/{challenge_id}/close")
        revealed = client.post(f"/challenge/{challenge_id}/reveal").json()

        response = client.post(
            f"/challenge/{challenge_id}/reveal-client",
            json={"participant_id": entry["participant_id"], "client_seed": seed},
        )
        assert response.status_code == 200

        outcome = client.post(f"/challenge/{challenge_id}/score", json={"participants": [entry]}).json()
        assert outcome["scores"][0]["roll"] == derive_roll(
            revealed["server_seed"], commit_hash, challenge_id, entry["participant_id"], 20
        )

    def test_tower_submit_on_roll_challenge_is_400(self, client):
        challenge = create(client)
        response = client.post(
            f"/challenge/{challenge['challenge_id']}/tower/submit",
            json={"tribe_id": str(uuid4()), "submission_type": "building", "height": 3},
        )
        assert response.status_code == 400
