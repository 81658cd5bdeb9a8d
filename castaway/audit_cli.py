"""Offline verifier for published challenge seeds.

    python -m castaway.audit_cli --server-seed <seed> --seed-commit <hash>
    python -m castaway.audit_cli --server-seed <seed> --seed-commit <hash> \
        --challenge-id <id> --participant-id <id> --client-seed <seed> --roll 14

Needs nothing but the values returned by the verify endpoint.
"""

import argparse
import sys

from castaway.domain.commit_reveal import DEFAULT_ROLL_SIDES, derive_roll, hash_seed, verify_commit


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify a challenge seed disclosure")
    parser.add_argument("--server-seed", type=str, help="Revealed server seed", required=True)
    parser.add_argument("--seed-commit", type=str, help="Published seed commitment", required=True)
    parser.add_argument("--challenge-id", type=str, help="Challenge id, to replay a roll")
    parser.add_argument("--participant-id", type=str, help="Participant id, to replay a roll")
    parser.add_argument("--client-seed", type=str, default="", help="Client seed material used for the roll")
    parser.add_argument("--roll", type=int, help="Published roll to compare against")
    parser.add_argument(
        "--sides",
        type=int,
        default=DEFAULT_ROLL_SIDES,
        help="Roll range; use roll_sides from the challenge record (verify response)",
    )
    return parser


def main(argv=None) -> int:
    args = get_parser().parse_args(argv)

    commit_ok = verify_commit(args.server_seed, args.seed_commit)
    print(f"sha256(server_seed) = {hash_seed(args.server_seed)}")
    print(f"seed_commit         = {args.seed_commit.lower()}")
    print(f"commitment valid: {commit_ok}")

    roll_ok = True
    if args.challenge_id and args.participant_id:
        roll = derive_roll(
            args.server_seed, args.client_seed, args.challenge_id, args.participant_id, args.sides
        )
        print(f"replayed roll: {roll}")
        if args.roll is not None:
            roll_ok = roll == args.roll
            print(f"roll matches: {roll_ok}")

    return 0 if commit_ok and roll_ok else 1


if __name__ == "__main__":
    sys.exit(main())
