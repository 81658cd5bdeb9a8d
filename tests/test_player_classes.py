from castaway.domain.player_classes import (
    Discipline,
    PlayerClass,
    class_challenge_bonus,
    effective_class,
)


class TestClassChallengeBonus:
    def test_athlete_on_physical(self):
        assert class_challenge_bonus(20, PlayerClass.athlete, Discipline.physical) == 1
        assert class_challenge_bonus(19, PlayerClass.athlete, Discipline.physical) == 0

    def test_athlete_on_puzzle(self):
        assert class_challenge_bonus(20, PlayerClass.athlete, Discipline.puzzle) == 0

    def test_opportunist_on_puzzle(self):
        assert class_challenge_bonus(40, PlayerClass.opportunist, Discipline.puzzle) == 2

    def test_other_classes(self):
        for player_class in (PlayerClass.strategist, PlayerClass.survivalist, PlayerClass.diplomat):
            assert class_challenge_bonus(20, player_class, Discipline.physical) == 0

    def test_no_discipline_or_class(self):
        assert class_challenge_bonus(20, PlayerClass.athlete, None) == 0
        assert class_challenge_bonus(20, None, Discipline.physical) == 0

    def test_wildcard_uses_daily_ability(self):
        assert class_challenge_bonus(
            20, PlayerClass.wildcard, Discipline.physical, PlayerClass.athlete
        ) == 1
        assert class_challenge_bonus(20, PlayerClass.wildcard, Discipline.physical) == 0

    def test_effective_class(self):
        assert effective_class(PlayerClass.diplomat) == PlayerClass.diplomat
        assert effective_class(PlayerClass.wildcard, PlayerClass.opportunist) == PlayerClass.opportunist
        assert effective_class(PlayerClass.wildcard, PlayerClass.wildcard) is None
        assert effective_class(None) is None
