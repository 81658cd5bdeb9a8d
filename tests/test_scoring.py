"""Tests for challenge scores, team aggregation and winner resolution."""
from __future__ import annotations

import pytest

from castaway.domain.modifiers import PlayerStats
from castaway.domain.scoring import TIE, ChallengeScore, aggregate, compute_score, resolve_winner

RESTED = PlayerStats(energy=50, hunger=50, thirst=50)


def _score(total: int) -> ChallengeScore:
    return compute_score(total, PlayerStats(energy=0, hunger=100, thirst=100))


class TestComputeScore:
    def test_energy_and_hunger_scenario(self):
        score = compute_score(10, PlayerStats(energy=80, hunger=20, thirst=50))
        assert score.total == 12
        assert score.breakdown == ["Base roll: 10", "Energy bonus: +4", "Hunger penalty: -2"]

    def test_floor_scenario(self):
        score = compute_score(
            1, PlayerStats(energy=0, hunger=10, thirst=10), debuffs=["injured"]
        )
        assert score.total == 1
        assert score.breakdown == [
            "Base roll: 1",
            "Hunger penalty: -2",
            "Thirst penalty: -2",
            "Debuffs: -3",
        ]

    def test_breakdown_canonical_order(self):
        score = compute_score(
            7,
            PlayerStats(energy=100, hunger=0, thirst=0),
            item_bonus=3,
            event_bonus=-1,
            debuffs=["tainted_water"],
        )
        assert score.breakdown == [
            "Base roll: 7",
            "Energy bonus: +5",
            "Hunger penalty: -2",
            "Thirst penalty: -2",
            "Item bonus: +3",
            "Event modifier: -1",
            "Debuffs: -1",
        ]
        assert score.total == 7 + 5 - 2 - 2 + 3 - 1 - 1

    def test_positive_event_modifier_is_signed(self):
        score = compute_score(5, RESTED, event_bonus=2)
        assert "Event modifier: +2" in score.breakdown

    def test_zero_terms_are_omitted(self):
        score = compute_score(5, PlayerStats(energy=10, hunger=50, thirst=50))
        assert score.breakdown == ["Base roll: 5"]
        assert score.total == 5

    def test_deterministic(self):
        args = (13, PlayerStats(energy=61, hunger=12, thirst=44), 1, -2, ["exhausted", "nope"])
        first = compute_score(*args)
        second = compute_score(*args)
        assert first == second

    def test_total_never_below_one(self):
        for roll in range(1, 21):
            score = compute_score(
                roll,
                PlayerStats(energy=0, hunger=0, thirst=0),
                event_bonus=-50,
                debuffs=["injured", "exhausted", "tainted_water"],
            )
            assert score.total >= 1

    def test_more_energy_never_lowers_total(self):
        totals = [compute_score(10, PlayerStats(energy=e, hunger=50, thirst=50)).total for e in range(0, 101)]
        assert totals == sorted(totals)

    def test_starving_never_raises_total(self):
        for roll in range(1, 21):
            fed = compute_score(roll, PlayerStats(energy=50, hunger=30, thirst=50)).total
            starving = compute_score(roll, PlayerStats(energy=50, hunger=29, thirst=50)).total
            assert starving <= fed

    def test_modifiers_recorded(self):
        score = compute_score(10, PlayerStats(energy=80, hunger=20, thirst=50), item_bonus=1)
        assert score.roll == 10
        assert score.modifiers.energy == 4
        assert score.modifiers.hunger == -2
        assert score.modifiers.item_bonus == 1


class TestAggregate:
    def test_top_two_scenario(self):
        team = aggregate([_score(t) for t in (12, 18, 9, 20)], top_k=2)
        assert team.contributors == [20, 18]
        assert team.total == 38

    def test_empty_team(self):
        team = aggregate([], top_k=3)
        assert team.total == 0
        assert team.contributors == []

    @pytest.mark.parametrize("top_k", [0, -1, -10])
    def test_non_positive_top_k_is_empty(self, top_k):
        team = aggregate([_score(5), _score(6)], top_k=top_k)
        assert team.total == 0
        assert team.contributors == []

    def test_top_k_larger_than_team(self):
        team = aggregate([_score(3), _score(7)], top_k=5)
        assert team.contributors == [7, 3]
        assert team.total == 10

    def test_aggregation_invariants(self):
        totals = [4, 15, 15, 1, 9, 20, 2]
        scores = [_score(t) for t in totals]
        for top_k in range(0, len(totals) + 2):
            team = aggregate(scores, top_k)
            assert team.total == sum(team.contributors)
            assert len(team.contributors) == min(top_k, len(totals))
            assert team.contributors == sorted(totals, reverse=True)[:top_k]


class TestResolveWinner:
    def test_tie(self):
        assert resolve_winner([50, 50]) is TIE

    def test_single_leader(self):
        assert resolve_winner([50, 49]) == 0
        assert resolve_winner([10, 30, 20]) == 1

    def test_empty_is_no_winner(self):
        assert resolve_winner([]) is TIE

    def test_tie_at_top_only(self):
        assert resolve_winner([5, 9, 9, 1]) is TIE
        assert resolve_winner([9, 5, 5]) == 0

    def test_single_team(self):
        assert resolve_winner([0]) == 0
