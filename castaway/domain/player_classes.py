"""Player classes and the challenge bonus they grant."""

from enum import Enum
from typing import Optional


class PlayerClass(str, Enum):
    athlete = "athlete"
    strategist = "strategist"
    survivalist = "survivalist"
    opportunist = "opportunist"
    diplomat = "diplomat"
    wildcard = "wildcard"


class Discipline(str, Enum):
    physical = "physical"
    puzzle = "puzzle"


# Percentage bonus to challenge effectiveness, keyed by class and discipline.
CHALLENGE_BONUS_PERCENT = {
    (PlayerClass.athlete, Discipline.physical): 5,
    (PlayerClass.opportunist, Discipline.puzzle): 5,
}


def effective_class(
    player_class: Optional[PlayerClass], wildcard_ability: Optional[PlayerClass] = None
) -> Optional[PlayerClass]:
    """Wildcards play as their daily ability; everyone else as themselves."""
    if player_class == PlayerClass.wildcard:
        if wildcard_ability is None or wildcard_ability == PlayerClass.wildcard:
            return None
        return PlayerClass(wildcard_ability)
    return PlayerClass(player_class) if player_class is not None else None


def class_challenge_bonus(
    roll: int,
    player_class: Optional[PlayerClass],
    discipline: Optional[Discipline],
    wildcard_ability: Optional[PlayerClass] = None,
) -> int:
    """Integer bonus for a class playing its favoured discipline.

    Applied as floor(roll * percent / 100) so it stays deterministic and
    can be listed in the score breakdown.
    """
    if discipline is None:
        return 0
    playing_as = effective_class(player_class, wildcard_ability)
    if playing_as is None:
        return 0
    percent = CHALLENGE_BONUS_PERCENT.get((playing_as, Discipline(discipline)), 0)
    return (roll * percent) // 100
