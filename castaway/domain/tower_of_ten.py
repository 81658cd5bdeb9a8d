"""Tower of Ten: team puzzle challenge.

1. Building: each tribe secretly adds 1-5 feet per round; heights picked by
   more than one tribe in the same round gain nothing.
2. Puzzle: once any tribe reaches 15 ft, tribes guess a 5-symbol sequence and
   get the number of correct positions back.

Every submission is a turn. Fewest turns wins, most turns goes to council.
State is a plain dict so it can live in a JSON column.
"""

import copy
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

SYMBOLS = ["🔥", "💧", "⚡️", "🕳️", "⌛️", "🌲", "🧨", "🏝️"]
TOWER_HEIGHT_GOAL = 15
PUZZLE_LENGTH = 5
MIN_HEIGHT = 1
MAX_HEIGHT = 5

PHASE_BUILDING = "building"
PHASE_PUZZLE = "puzzle"
PHASE_COMPLETE = "complete"


@dataclass
class TowerSubmitResult:
    success: bool
    message: str
    state: dict
    feedback: str = ""


@dataclass
class TowerPlacement:
    tribe_id: str
    turns: int
    placement: int


@dataclass
class TowerResults:
    winner: Optional[str]
    loser: Optional[str]
    placements: List[TowerPlacement] = field(default_factory=list)


def initialize_tower_of_ten(
    tribe_ids: Sequence[str], rng: Optional[random.Random] = None
) -> dict:
    """Create the initial state with a hidden puzzle solution."""
    rng = rng or random.SystemRandom()
    solution = [rng.choice(SYMBOLS) for _ in range(PUZZLE_LENGTH)]
    return {
        "phase": PHASE_BUILDING,
        "tribe_heights": {tribe_id: 0 for tribe_id in tribe_ids},
        "pending_heights": {tribe_id: None for tribe_id in tribe_ids},
        "height_history": {tribe_id: [] for tribe_id in tribe_ids},
        "puzzle_solution": solution,
        "puzzle_guesses": {tribe_id: [] for tribe_id in tribe_ids},
        "turns": {tribe_id: 0 for tribe_id in tribe_ids},
    }


def submit_building_height(state: dict, tribe_id: str, height: int) -> TowerSubmitResult:
    """Record a tribe's secret height for this round and resolve the round
    once every tribe has submitted. A second submission in the same round
    replaces the first.
    """
    if state["phase"] != PHASE_BUILDING:
        return TowerSubmitResult(False, "Not in building phase", state)
    if tribe_id not in state["tribe_heights"]:
        return TowerSubmitResult(False, "Tribe is not part of this challenge", state)
    if height < MIN_HEIGHT or height > MAX_HEIGHT:
        return TowerSubmitResult(
            False, f"Height must be between {MIN_HEIGHT} and {MAX_HEIGHT} feet", state
        )

    new_state = copy.deepcopy(state)
    new_state["pending_heights"][tribe_id] = height

    if any(pending is None for pending in new_state["pending_heights"].values()):
        return TowerSubmitResult(
            True, f"Submitted {height} feet. Waiting for other tribes...", new_state
        )

    return TowerSubmitResult(True, "Building round complete!", _resolve_building_round(new_state))


def _resolve_building_round(state: dict) -> dict:
    submissions: Dict[str, int] = dict(state["pending_heights"])
    height_counts: Dict[int, int] = {}
    for height in submissions.values():
        height_counts[height] = height_counts.get(height, 0) + 1

    for tribe_id, height in submissions.items():
        gain = height if height_counts[height] == 1 else 0
        state["tribe_heights"][tribe_id] += gain
        state["height_history"][tribe_id].append(height)
        state["turns"][tribe_id] += 1
        state["pending_heights"][tribe_id] = None

    if any(height >= TOWER_HEIGHT_GOAL for height in state["tribe_heights"].values()):
        state["phase"] = PHASE_PUZZLE
    return state


def puzzle_feedback(solution: Sequence[str], guess: Sequence[str]) -> int:
    return sum(1 for expected, actual in zip(solution, guess) if expected == actual)


def submit_puzzle_guess(state: dict, tribe_id: str, guess: Sequence[str]) -> TowerSubmitResult:
    if state["phase"] != PHASE_PUZZLE:
        return TowerSubmitResult(False, "Not in puzzle phase", state)
    if tribe_id not in state["tribe_heights"]:
        return TowerSubmitResult(False, "Tribe is not part of this challenge", state)
    if len(guess) != PUZZLE_LENGTH:
        return TowerSubmitResult(
            False, f"Puzzle must be {PUZZLE_LENGTH} symbols long", state
        )
    if not all(symbol in SYMBOLS for symbol in guess):
        return TowerSubmitResult(False, "Invalid symbol in guess", state)

    correct = puzzle_feedback(state["puzzle_solution"], guess)
    feedback = f"{correct} correct position{'' if correct == 1 else 's'}"

    new_state = copy.deepcopy(state)
    new_state["puzzle_guesses"][tribe_id].append({"guess": list(guess), "feedback": feedback})
    new_state["turns"][tribe_id] += 1

    if correct == PUZZLE_LENGTH:
        new_state["phase"] = PHASE_COMPLETE
        new_state["solved_by"] = tribe_id
        return TowerSubmitResult(True, "Puzzle solved!", new_state, feedback)
    return TowerSubmitResult(True, "Guess recorded", new_state, feedback)


def tower_results(state: dict) -> TowerResults:
    """Placements by fewest turns. Empty until the puzzle is solved."""
    if state["phase"] != PHASE_COMPLETE:
        return TowerResults(winner=None, loser=None)

    ordered = sorted(state["turns"].items(), key=lambda item: item[1])
    placements = [
        TowerPlacement(tribe_id=tribe_id, turns=turns, placement=index + 1)
        for index, (tribe_id, turns) in enumerate(ordered)
    ]
    return TowerResults(
        winner=placements[0].tribe_id if placements else None,
        loser=placements[-1].tribe_id if placements else None,
        placements=placements,
    )


def tower_standings(state: dict) -> List[dict]:
    """Public view during play; never exposes the solution or pending heights."""
    return [
        {
            "tribe_id": tribe_id,
            "height": height,
            "turns": state["turns"].get(tribe_id, 0),
            "submitted_this_round": state["pending_heights"].get(tribe_id) is not None,
            "puzzle_solved": state.get("solved_by") == tribe_id,
        }
        for tribe_id, height in state["tribe_heights"].items()
    ]
