"""Commit-reveal protocol rules.

The server commits to SHA-256(server_seed) before any participant acts and
discloses the seed only after the commit window closes. Participants commit
to SHA-256(client_seed) before the window closes; that commitment hash is the
client half of every roll, so nothing a participant does after the server
seed is public can change it:

    HMAC-SHA256(key=server_seed, msg="{client_seed}:{challenge_id}:{subject_id}")

The first 4 bytes of the digest are read as a big-endian uint32. Values at or
above the largest multiple of `sides` below 2**32 are rejected and the HMAC is
recomputed with the suffix ":{counter}" (counter starting at 1), so every
roll in 1..sides is equally likely. The scheme is part of the audit contract.
"""

import hashlib
import hmac
import re
import secrets
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

SEED_BYTES = 32
UINT32_RANGE = 2**32
DEFAULT_ROLL_SIDES = 20

_COMMIT_HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


class ChallengePhase(str, Enum):
    open = "OPEN"  # accepting commitments
    committed = "COMMITTED"  # commit window closed
    scored = "SCORED"  # rolls and scores frozen
    verified = "VERIFIED"  # seed disclosure independently confirmed


ALLOWED_TRANSITIONS = {
    ChallengePhase.open: {ChallengePhase.committed, ChallengePhase.scored},
    ChallengePhase.committed: {ChallengePhase.scored},
    ChallengePhase.scored: {ChallengePhase.verified},
    ChallengePhase.verified: set(),
}

SCORABLE_PHASES = (ChallengePhase.open, ChallengePhase.committed)
FROZEN_PHASES = (ChallengePhase.scored, ChallengePhase.verified)


def can_transition(current: ChallengePhase, target: ChallengePhase) -> bool:
    return target in ALLOWED_TRANSITIONS[ChallengePhase(current)]


class SecureSeedSource:
    """Server seed generator backed by the OS CSPRNG."""

    def __init__(self, n_bytes: int = SEED_BYTES):
        self.n_bytes = n_bytes

    def new_seed(self) -> str:
        return secrets.token_hex(self.n_bytes)


def hash_seed(seed: str) -> str:
    """SHA-256 hex digest of a seed string."""
    return hashlib.sha256(seed.encode()).hexdigest()


def is_valid_commit_hash(value: str) -> bool:
    """True for exactly 64 hex characters (either case)."""
    return isinstance(value, str) and _COMMIT_HASH_PATTERN.match(value) is not None


def verify_commit(seed: str, commit: str) -> bool:
    """Recompute SHA-256(seed) and compare it with the published commitment."""
    if seed is None or commit is None:
        return False
    return hmac.compare_digest(hash_seed(seed), commit.lower())


def verify_client_commit(client_seed: str, client_seed_hash: str) -> bool:
    """Client side check of a disclosed seed against a well-formed commitment."""
    return is_valid_commit_hash(client_seed_hash) and verify_commit(client_seed, client_seed_hash)


def generate_client_commit() -> Tuple[str, str]:
    """Client side helper: returns (seed, SHA-256 hash of seed)."""
    seed = secrets.token_hex(SEED_BYTES)
    return seed, hash_seed(seed)


def client_material(commit_hash: Optional[str]) -> str:
    """Client half of the roll input: the commitment hash, else ''.

    The hash is fixed before the server seed is disclosed. A later client
    seed disclosure is checked against it but never changes the roll.
    """
    if commit_hash:
        return commit_hash.lower()
    return ""


def derive_roll(
    server_seed: str,
    client_seed: str,
    challenge_id: str,
    subject_id: str,
    sides: int = DEFAULT_ROLL_SIDES,
) -> int:
    """Deterministic roll in 1..sides from the combined seed material.

    Args:
        server_seed (str): Revealed server seed (HMAC key)
        client_seed (str): Client material for this subject
        challenge_id (str): Challenge the roll belongs to
        subject_id (str): Participant the roll belongs to
        sides (int): Size of the roll range

    Returns:
        int: Roll between 1 and sides inclusive
    """
    if sides < 1:
        raise ValueError("sides must be >= 1")

    limit = (UINT32_RANGE // sides) * sides
    message = f"{client_seed}:{challenge_id}:{subject_id}"
    counter = 0
    while True:
        payload = message if counter == 0 else f"{message}:{counter}"
        digest = hmac.new(
            server_seed.encode(), payload.encode(), hashlib.sha256
        ).digest()
        value = int.from_bytes(digest[:4], "big")
        if value < limit:
            return value % sides + 1
        counter += 1


def derive_team_rolls(
    server_seed: str,
    client_seeds: Mapping[str, str],
    challenge_id: str,
    sides: int = DEFAULT_ROLL_SIDES,
) -> Dict[str, int]:
    """Roll every subject in client_seeds (subject id -> client material)."""
    return {
        subject_id: derive_roll(server_seed, seed, challenge_id, subject_id, sides)
        for subject_id, seed in client_seeds.items()
    }


def verify_rolls(
    server_seed: str,
    client_seeds: Mapping[str, str],
    challenge_id: str,
    expected_rolls: Mapping[str, int],
    sides: int = DEFAULT_ROLL_SIDES,
) -> Tuple[bool, List[str]]:
    """Replay every roll from published seeds and report mismatches."""
    errors: List[str] = []
    for subject_id, expected in expected_rolls.items():
        actual = derive_roll(
            server_seed, client_seeds.get(subject_id, ""), challenge_id, subject_id, sides
        )
        if actual != expected:
            errors.append(
                f"Roll mismatch for {subject_id}: expected {expected}, got {actual}"
            )
    return len(errors) == 0, errors
