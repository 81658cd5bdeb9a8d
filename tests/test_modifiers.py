"""Tests for stat, item and debuff modifiers."""
from __future__ import annotations

import logging

import pytest

from castaway.domain.modifiers import (
    PlayerStats,
    compute_modifiers,
    debuff_penalty,
    energy_term,
    hunger_term,
    thirst_term,
)


class TestStatTerms:
    @pytest.mark.parametrize(
        "energy, expected",
        [(0, 0), (19, 0), (20, 1), (39, 1), (80, 4), (99, 4), (100, 5)],
    )
    def test_energy_term_is_floor_of_fifth(self, energy, expected):
        assert energy_term(energy) == expected

    def test_energy_out_of_range_is_clamped(self):
        assert energy_term(-50) == 0
        assert energy_term(250) == 5

    def test_hunger_penalty_below_30_only(self):
        assert hunger_term(29) == -2
        assert hunger_term(30) == 0
        assert hunger_term(0) == -2

    def test_thirst_penalty_below_30_only(self):
        assert thirst_term(29) == -2
        assert thirst_term(30) == 0


class TestDebuffPenalty:
    def test_known_debuffs(self):
        assert debuff_penalty(["tainted_water"]) == -1
        assert debuff_penalty(["exhausted"]) == -2
        assert debuff_penalty(["injured"]) == -3
        assert debuff_penalty(["tainted_water", "exhausted", "injured"]) == -6

    def test_empty(self):
        assert debuff_penalty([]) == 0

    def test_unknown_debuff_is_ignored_and_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert debuff_penalty(["cursed", "injured"]) == -3
        assert "cursed" in caplog.text


class TestComputeModifiers:
    def test_pass_through_terms(self):
        modifier = compute_modifiers(
            PlayerStats(energy=80, hunger=20, thirst=50),
            item_bonus=2,
            event_bonus=-1,
            debuffs=["injured"],
        )
        assert modifier.energy == 4
        assert modifier.hunger == -2
        assert modifier.thirst == 0
        assert modifier.item_bonus == 2
        assert modifier.event_bonus == -1
        assert modifier.debuffs == ("injured",)

    def test_sign_invariants_hold_for_extreme_stats(self):
        for value in (-1000, -1, 0, 29, 30, 100, 1000):
            modifier = compute_modifiers(PlayerStats(energy=value, hunger=value, thirst=value))
            assert 0 <= modifier.energy <= 5
            assert modifier.hunger <= 0
            assert modifier.thirst <= 0

    def test_negative_item_bonus_counts_as_zero(self):
        modifier = compute_modifiers(PlayerStats(energy=50, hunger=50, thirst=50), item_bonus=-3)
        assert modifier.item_bonus == 0

    def test_to_dict(self):
        modifier = compute_modifiers(PlayerStats(energy=40, hunger=50, thirst=10), debuffs=["exhausted"])
        assert modifier.to_dict() == {
            "energy": 2,
            "hunger": 0,
            "thirst": -2,
            "item_bonus": 0,
            "event_bonus": 0,
            "debuffs": ["exhausted"],
        }
