"""Challenge scoring: individual scores, team aggregation and winner resolution.

All functions are deterministic and never raise for valid-shaped input.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from castaway.domain.modifiers import (
    Modifier,
    PlayerStats,
    compute_modifiers,
    debuff_penalty,
)

MIN_SCORE = 1

# resolve_winner() result when no single team holds the best total.
TIE = None


@dataclass(frozen=True)
class ChallengeScore:
    roll: int
    modifiers: Modifier
    total: int
    breakdown: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TeamScore:
    total: int
    contributors: List[int] = field(default_factory=list)


def compute_score(
    roll: int,
    stats: PlayerStats,
    item_bonus: int = 0,
    event_bonus: int = 0,
    debuffs: Iterable[str] = (),
) -> ChallengeScore:
    """Fold stat, item, event and debuff modifiers into a committed roll.

    The breakdown always starts with the base roll and lists the remaining
    terms in a fixed order: energy, hunger, thirst, item, event, debuffs.
    Terms that do not apply are omitted.

    Args:
        roll (int): Roll derived from the revealed seeds
        stats (PlayerStats): Single stat snapshot taken for this scoring
        item_bonus (int): Item bonus
        event_bonus (int): Signed event modifier
        debuffs (Iterable[str]): Active debuffs

    Returns:
        ChallengeScore: Total (never below 1) with the itemized breakdown
    """
    modifier = compute_modifiers(stats, item_bonus, event_bonus, debuffs)
    breakdown = [f"Base roll: {roll}"]
    total = roll

    if modifier.energy > 0:
        breakdown.append(f"Energy bonus: +{modifier.energy}")
        total += modifier.energy

    if modifier.hunger < 0:
        breakdown.append(f"Hunger penalty: {modifier.hunger}")
        total += modifier.hunger

    if modifier.thirst < 0:
        breakdown.append(f"Thirst penalty: {modifier.thirst}")
        total += modifier.thirst

    if modifier.item_bonus > 0:
        breakdown.append(f"Item bonus: +{modifier.item_bonus}")
        total += modifier.item_bonus

    if modifier.event_bonus != 0:
        breakdown.append(f"Event modifier: {modifier.event_bonus:+d}")
        total += modifier.event_bonus

    penalty = debuff_penalty(modifier.debuffs)
    if penalty < 0:
        breakdown.append(f"Debuffs: {penalty}")
        total += penalty

    return ChallengeScore(
        roll=roll,
        modifiers=modifier,
        total=max(MIN_SCORE, total),
        breakdown=breakdown,
    )


def aggregate(scores: Sequence[ChallengeScore], top_k: int) -> TeamScore:
    """Sum the top_k best individual totals of a team.

    Args:
        scores (Sequence[ChallengeScore]): Individual scores of one team
        top_k (int): How many scores count, values <= 0 count nothing

    Returns:
        TeamScore: Total and the summed totals in descending order
    """
    top_k = max(0, top_k)
    ranked = sorted((score.total for score in scores), reverse=True)
    contributors = ranked[:top_k]
    return TeamScore(total=sum(contributors), contributors=contributors)


def resolve_winner(team_totals: Sequence[int]) -> Optional[int]:
    """Return the index of the single best total, or TIE.

    An empty input and a shared maximum both resolve to TIE.
    """
    if not team_totals:
        return TIE
    best = max(team_totals)
    leaders = [index for index, total in enumerate(team_totals) if total == best]
    if len(leaders) > 1:
        return TIE
    return leaders[0]
