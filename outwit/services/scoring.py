"""
Pure scoring functions. No database, no I/O.

Used by the recompute engine to fill the score cache and by the castaway
endpoints for per-castaway breakdowns. Every function takes the point tables
as an argument (defaulting to DEFAULT_TABLES) instead of reading globals.
"""

from dataclasses import dataclass
from itertools import groupby
from typing import Callable, Iterable, Mapping, Sequence

from outwit.services.point_tables import (
    DEFAULT_TABLES, EventKind, PlacementCategory, ScoringTables,
)

EpisodeNumberLookup = Callable[[int], int | None] | Mapping[int, int]


@dataclass(frozen=True)
class EventFact:
    """One logged (episode, castaway, event kind) fact. ORM CastawayEvent rows quack the same way."""
    episode_id: int
    castaway_id: int
    event_kind: EventKind


@dataclass(frozen=True)
class AnswerFact:
    question_id: int
    answer: bool


@dataclass(frozen=True)
class OutcomeFact:
    question_id: int
    outcome: bool | None


def _episode_number(lookup: EpisodeNumberLookup, episode_id: int) -> int:
    if isinstance(lookup, Mapping):
        number = lookup.get(episode_id)
    else:
        number = lookup(episode_id)
    # Unknown episodes fall into the first survival bracket
    return number if number is not None else 0


def castaway_points(
    castaway_id: int,
    events: Iterable,
    episode_number_of: EpisodeNumberLookup,
    tables: ScoringTables = DEFAULT_TABLES,
) -> int:
    """Total points earned by one castaway across every event in `events`."""
    total = 0
    for event in events:
        if event.castaway_id != castaway_id:
            continue
        kind = EventKind(event.event_kind)
        total += tables.points_for_event(kind, _episode_number(episode_number_of, event.episode_id))
    return total


def trio_breakdown(
    castaway_ids: Sequence[int],
    events: Iterable,
    episode_number_of: EpisodeNumberLookup,
    tables: ScoringTables = DEFAULT_TABLES,
) -> dict[int, int]:
    """Points per trio castaway, keyed by castaway id, in pick order."""
    if len(castaway_ids) != 3:
        raise ValueError(f"Trusted Trio needs exactly 3 castaways, got {len(castaway_ids)}")
    events = list(events)
    return {
        cid: castaway_points(cid, events, episode_number_of, tables)
        for cid in castaway_ids
    }


def trio_points(
    castaway_ids: Sequence[int],
    events: Iterable,
    episode_number_of: EpisodeNumberLookup,
    tables: ScoringTables = DEFAULT_TABLES,
) -> int:
    return sum(trio_breakdown(castaway_ids, events, episode_number_of, tables).values())


def icky_points(
    placement: PlacementCategory | str | None,
    tables: ScoringTables = DEFAULT_TABLES,
) -> int:
    """Icky Pick points for a final placement. Still active, runner-up or unknown score 0."""
    if placement is None:
        return 0
    try:
        category = PlacementCategory(placement)
    except ValueError:
        return 0
    return tables.icky_points.get(category, 0)


def prophecy_points(
    answers: Iterable,
    outcomes: Iterable,
    tables: ScoringTables = DEFAULT_TABLES,
) -> int:
    """Correct answer = question tier; wrong, unresolved or unknown outcome = 0."""
    outcome_by_question = {o.question_id: o.outcome for o in outcomes}
    total = 0
    for answer in answers:
        outcome = outcome_by_question.get(answer.question_id)
        if outcome is None:
            continue
        if answer.answer == outcome:
            total += tables.prophecy_points.get(answer.question_id, 0)
    return total


# --- Leaderboard ranking ---

def _score_key(entry: Mapping) -> tuple[int, int, int, int]:
    return (
        entry["total_points"],
        entry["trio_points"],
        entry["prophecy_points"],
        entry["icky_points"],
    )


def _sort_key(entry: Mapping):
    total, trio, prophecy, icky = _score_key(entry)
    name = entry["display_name"]
    return (-total, -trio, -prophecy, -icky, name.casefold(), name)


def rank_players(players: Iterable[Mapping]) -> list[dict]:
    """
    Order players Total → Trio → Prophecy → Icky → name, and assign
    competition ranks.

    Players whose (total, trio, prophecy, icky) match exactly form a tied
    block: every member gets the same rank and is_tied=True. The next block
    ranks at its position + 1, so ranks skip (1, 1, 3).

    Input entries are copied, never modified. Returns new dicts with "rank"
    and "is_tied" added.
    """
    ordered = sorted(players, key=_sort_key)

    ranked = []
    for _, block in groupby(ordered, key=_score_key):
        block = list(block)
        rank = len(ranked) + 1
        is_tied = len(block) > 1
        for entry in block:
            ranked.append({**entry, "rank": rank, "is_tied": is_tied})
    return ranked
