"""
Point tables: the single definition of every scoring constant.

The scoring functions, the recompute engine and the API all read from here.
Tables are bundled into an immutable ScoringTables instance that is passed
into the scoring functions, so a test can swap in its own values without
touching module state.
"""

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


class EventKind(str, enum.Enum):
    IDOL_FOUND = "idol_found"
    ADVANTAGE_FOUND = "advantage_found"
    IDOL_PLAYED_CORRECT = "idol_played_correct"
    IDOL_PLAYED_INCORRECT = "idol_played_incorrect"
    SHOT_IN_DARK_SUCCESS = "shot_in_dark_success"
    SHOT_IN_DARK_FAIL = "shot_in_dark_fail"
    FIRE_MAKING_WIN = "fire_making_win"
    INDIVIDUAL_IMMUNITY_WIN = "individual_immunity_win"
    INDIVIDUAL_REWARD_WIN = "individual_reward_win"
    FINAL_IMMUNITY_WIN = "final_immunity_win"
    MADE_JURY = "made_jury"
    PLACED_3RD = "placed_3rd"
    PLACED_RUNNER_UP = "placed_runner_up"
    SOLE_SURVIVOR = "sole_survivor"
    FIRST_BOOT = "first_boot"
    VOTED_OUT_WITH_IDOL = "voted_out_with_idol"
    VOTED_OUT_WITH_ADVANTAGE = "voted_out_with_advantage"
    VOTED_OUT_UNANIMOUSLY = "voted_out_unanimously"
    QUIT = "quit"
    SURVIVED_EPISODE = "survived_episode"  # Variable, see survival_points()


class PlacementCategory(str, enum.Enum):
    FIRST_BOOT = "first_boot"
    PRE_MERGE = "pre_merge"
    JURY = "jury"
    THIRD = "3rd"
    RUNNER_UP = "runner_up"
    WINNER = "winner"


# Points per event kind (Trusted Trio castaways)
EVENT_POINTS: Mapping[EventKind, int] = MappingProxyType({
    EventKind.IDOL_FOUND: 5,
    EventKind.ADVANTAGE_FOUND: 4,
    EventKind.IDOL_PLAYED_CORRECT: 8,
    EventKind.IDOL_PLAYED_INCORRECT: -3,
    EventKind.SHOT_IN_DARK_SUCCESS: 6,
    EventKind.SHOT_IN_DARK_FAIL: -5,
    EventKind.FIRE_MAKING_WIN: 10,
    EventKind.INDIVIDUAL_IMMUNITY_WIN: 6,
    EventKind.INDIVIDUAL_REWARD_WIN: 3,
    EventKind.FINAL_IMMUNITY_WIN: 12,
    EventKind.MADE_JURY: 5,
    EventKind.PLACED_3RD: 20,
    EventKind.PLACED_RUNNER_UP: 25,
    EventKind.SOLE_SURVIVOR: 40,
    EventKind.FIRST_BOOT: -25,
    EventKind.VOTED_OUT_WITH_IDOL: -12,
    EventKind.VOTED_OUT_WITH_ADVANTAGE: -10,
    EventKind.VOTED_OUT_UNANIMOUSLY: -5,
    EventKind.QUIT: -25,
    EventKind.SURVIVED_EPISODE: 0,
})

EVENT_LABELS: Mapping[EventKind, str] = MappingProxyType({
    EventKind.SURVIVED_EPISODE: "Survived Episode",
    EventKind.IDOL_FOUND: "Found Idol",
    EventKind.ADVANTAGE_FOUND: "Found or Earned Advantage",
    EventKind.INDIVIDUAL_IMMUNITY_WIN: "Won Individual Immunity",
    EventKind.INDIVIDUAL_REWARD_WIN: "Won Individual Reward",
    EventKind.IDOL_PLAYED_CORRECT: "Played Idol (Correctly)",
    EventKind.IDOL_PLAYED_INCORRECT: "Played Idol (Incorrectly)",
    EventKind.SHOT_IN_DARK_SUCCESS: "Shot in the Dark - Success",
    EventKind.SHOT_IN_DARK_FAIL: "Shot in the Dark - Still Unsafe",
    EventKind.FIRE_MAKING_WIN: "Won Fire Making Challenge",
    EventKind.FINAL_IMMUNITY_WIN: "Won Final Immunity (F4)",
    EventKind.VOTED_OUT_WITH_IDOL: "Voted Out with Idol",
    EventKind.VOTED_OUT_WITH_ADVANTAGE: "Voted Out with Advantage",
    EventKind.VOTED_OUT_UNANIMOUSLY: "Voted Out Unanimously",
    EventKind.QUIT: "Quit (Non-Medical)",
    EventKind.FIRST_BOOT: "First Boot",
    EventKind.MADE_JURY: "Made Jury",
    EventKind.PLACED_3RD: "3rd Place",
    EventKind.PLACED_RUNNER_UP: "Runner-Up",
    EventKind.SOLE_SURVIVOR: "Sole Survivor",
})

# Survival points by game phase. "final_4" is listed for reference only:
# survival_points() never returns it (episodes 13+ always score final_5).
SURVIVAL_PHASE_POINTS: Mapping[str, int] = MappingProxyType({
    "episodes_1_3": 1,
    "episodes_4_6": 2,
    "episodes_7_9": 3,
    "episodes_10_12": 5,
    "final_5": 7,
    "final_4": 10,
})

# Episode range per awarded phase (last = None means open-ended)
SURVIVAL_BRACKETS: tuple[tuple[str, int, int | None], ...] = (
    ("episodes_1_3", 1, 3),
    ("episodes_4_6", 4, 6),
    ("episodes_7_9", 7, 9),
    ("episodes_10_12", 10, 12),
    ("final_5", 13, None),
)


def survival_points(episode_number: int) -> int:
    """Points for surviving an episode. Episode 0 and negatives land in the first bracket."""
    if episode_number <= 3:
        return SURVIVAL_PHASE_POINTS["episodes_1_3"]
    if episode_number <= 6:
        return SURVIVAL_PHASE_POINTS["episodes_4_6"]
    if episode_number <= 9:
        return SURVIVAL_PHASE_POINTS["episodes_7_9"]
    if episode_number <= 12:
        return SURVIVAL_PHASE_POINTS["episodes_10_12"]
    return SURVIVAL_PHASE_POINTS["final_5"]


# Icky Pick points by final placement. RUNNER_UP scores nothing.
ICKY_POINTS: Mapping[PlacementCategory, int] = MappingProxyType({
    PlacementCategory.FIRST_BOOT: 15,
    PlacementCategory.PRE_MERGE: 8,
    PlacementCategory.JURY: -8,
    PlacementCategory.THIRD: -15,
    PlacementCategory.WINNER: -25,
})


@dataclass(frozen=True)
class ProphecyQuestion:
    id: int
    text: str
    points: int


PROPHECY_QUESTIONS: tuple[ProphecyQuestion, ...] = (
    ProphecyQuestion(1, "Q mentions cancelling Christmas", 1),
    ProphecyQuestion(2, 'Someone says they\'re "playing chess not checkers"', 1),
    ProphecyQuestion(3, "They play the eagle screech sound when Coach is on screen", 1),
    ProphecyQuestion(4, "Jeff uses his British accent", 2),
    ProphecyQuestion(5, "A live tribal occurs", 2),
    ProphecyQuestion(6, "Someone is voted out with an idol in their pocket", 2),
    ProphecyQuestion(7, "A player plays an idol for someone else", 2),
    ProphecyQuestion(8, "Someone plays a fake idol", 3),
    ProphecyQuestion(9, "A unanimous vote happens post-merge, pre-final tribal", 3),
    ProphecyQuestion(10, "A player gives up individual immunity", 4),
    ProphecyQuestion(11, "Someone plays Shot in the Dark successfully", 4),
    ProphecyQuestion(12, "A medical evacuation occurs", 4),
    ProphecyQuestion(13, "A rock draw happens", 4),
    ProphecyQuestion(14, "There is an actual loved one visit", 4),
    ProphecyQuestion(15, "The winner receives a unanimous jury vote", 4),
    ProphecyQuestion(16, "Final tribal ends in a 4-4 tie", 4),
)

# question_id -> points
PROPHECY_TIER_POINTS: Mapping[int, int] = MappingProxyType(
    {q.id: q.points for q in PROPHECY_QUESTIONS}
)

PROPHECY_QUESTION_IDS: frozenset[int] = frozenset(PROPHECY_TIER_POINTS)


@dataclass(frozen=True)
class ScoringTables:
    """Everything the scoring functions need, in one immutable bundle."""

    event_points: Mapping[EventKind, int] = field(default_factory=lambda: EVENT_POINTS)
    icky_points: Mapping[PlacementCategory, int] = field(default_factory=lambda: ICKY_POINTS)
    prophecy_points: Mapping[int, int] = field(default_factory=lambda: PROPHECY_TIER_POINTS)

    def __post_init__(self):
        missing = [kind.value for kind in EventKind if kind not in self.event_points]
        if missing:
            raise ValueError(f"event_points is missing event kinds: {', '.join(missing)}")

    def points_for_event(self, kind: EventKind, episode_number: int) -> int:
        if kind is EventKind.SURVIVED_EPISODE:
            return survival_points(episode_number)
        return self.event_points[kind]

    @property
    def max_prophecy_points(self) -> int:
        return sum(self.prophecy_points.values())


DEFAULT_TABLES = ScoringTables()


def scoring_rules(tables: ScoringTables = DEFAULT_TABLES) -> dict:
    """Every point value players can earn, labelled for display."""
    return {
        "events": [
            {
                "event_kind": kind,
                "label": EVENT_LABELS[kind],
                # Survival is scored per episode, see survival_brackets
                "points": None if kind is EventKind.SURVIVED_EPISODE else tables.event_points[kind],
            }
            for kind in EventKind
        ],
        "survival_brackets": [
            {
                "phase": phase,
                "first_episode": first,
                "last_episode": last,
                "points": SURVIVAL_PHASE_POINTS[phase],
            }
            for phase, first, last in SURVIVAL_BRACKETS
        ],
        "icky": [
            {"placement": placement, "points": tables.icky_points.get(placement, 0)}
            for placement in PlacementCategory
        ],
        "prophecy": [
            {"question_id": q.id, "text": q.text, "points": tables.prophecy_points[q.id]}
            for q in PROPHECY_QUESTIONS
        ],
        "max_prophecy_points": tables.max_prophecy_points,
    }
