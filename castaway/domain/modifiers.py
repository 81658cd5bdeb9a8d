"""Stat, item and debuff modifiers applied to a challenge roll.

Rule of thumb:
- Every function here is total: out-of-range stats are clamped, unknown
  debuffs are ignored (and logged), nothing raises.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Tuple

STAT_MIN = 0
STAT_MAX = 100
ENERGY_STEP = 20
LOW_STAT_THRESHOLD = 30
LOW_STAT_PENALTY = -2

DEBUFF_PENALTIES = {
    "tainted_water": -1,
    "exhausted": -2,
    "injured": -3,
}


@dataclass(frozen=True)
class PlayerStats:
    """Snapshot of a player's live stats at the instant of scoring."""
    energy: int
    hunger: int
    thirst: int
    social: int = 0


@dataclass(frozen=True)
class Modifier:
    """Numeric adjustments derived from one stats/items/debuffs snapshot."""
    energy: int = 0  # >= 0
    hunger: int = 0  # <= 0
    thirst: int = 0  # <= 0
    item_bonus: int = 0
    event_bonus: int = 0
    debuffs: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "energy": self.energy,
            "hunger": self.hunger,
            "thirst": self.thirst,
            "item_bonus": self.item_bonus,
            "event_bonus": self.event_bonus,
            "debuffs": list(self.debuffs),
        }


def clamp_stat(value: int) -> int:
    return max(STAT_MIN, min(STAT_MAX, int(value)))


def energy_term(energy: int) -> int:
    """floor(energy / 20) for energy clamped to [0, 100], i.e. 0..5."""
    return clamp_stat(energy) // ENERGY_STEP


def hunger_term(hunger: int) -> int:
    return LOW_STAT_PENALTY if hunger < LOW_STAT_THRESHOLD else 0


def thirst_term(thirst: int) -> int:
    return LOW_STAT_PENALTY if thirst < LOW_STAT_THRESHOLD else 0


def debuff_penalty(debuffs: Iterable[str]) -> int:
    """Sum the penalties of every recognised debuff.

    Unknown identifiers contribute 0 and are reported through logging.

    Args:
        debuffs (Iterable[str]): Debuff identifiers active on the participant

    Returns:
        int: Total penalty (always <= 0)
    """
    penalty = 0
    for debuff in debuffs:
        if debuff in DEBUFF_PENALTIES:
            penalty += DEBUFF_PENALTIES[debuff]
        else:
            logging.warning(f"Unknown debuff ignored: {debuff!r}")
    return penalty


def compute_modifiers(
    stats: PlayerStats,
    item_bonus: int = 0,
    event_bonus: int = 0,
    debuffs: Iterable[str] = (),
) -> Modifier:
    """Map a stat snapshot plus items, events and debuffs to a Modifier.

    Args:
        stats (PlayerStats): Live stats read once at scoring time
        item_bonus (int): Bonus from equipped items, negative values count as 0
        event_bonus (int): Signed modifier from the current game event
        debuffs (Iterable[str]): Active debuff identifiers

    Returns:
        Modifier: Energy bonus, hunger/thirst penalties and the pass-through terms
    """
    return Modifier(
        energy=energy_term(stats.energy),
        hunger=hunger_term(stats.hunger),
        thirst=thirst_term(stats.thirst),
        item_bonus=max(0, int(item_bonus)),
        event_bonus=int(event_bonus),
        debuffs=tuple(debuffs),
    )
