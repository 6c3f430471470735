"""
Scoring Engine: rebuilds the score cache from source data.

The cache is a projection: every row can be recomputed at any time from
castaway events, picks, prophecy answers and prophecy outcomes. A recompute
always works over the full history, so running it twice on the same data
leaves the cache exactly as it was. Commissioners can re-run it freely after
a failure or a double click.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.models.models import (
    Castaway, CastawayEvent, Episode, Picks, Player, ProphecyAnswer,
    ProphecyOutcome, ScoreCache, ScoreCacheTrioDetail, ScoreSnapshot,
)
from outwit.services.point_tables import DEFAULT_TABLES, PlacementCategory, ScoringTables
from outwit.services.scoring import (
    castaway_points, icky_points, prophecy_points, rank_players, trio_breakdown,
)
from outwit.services.season import get_season_config

logger = logging.getLogger(__name__)


class RecalculationError(RuntimeError):
    """The recompute could not be written. The previous cache is intact; retry in full."""


@dataclass
class PlayerScore:
    player_id: int
    trio_points: int = 0
    icky_points: int = 0
    prophecy_points: int = 0
    trio_detail: dict[int, int] = field(default_factory=dict)  # castaway_id -> points

    @property
    def total_points(self) -> int:
        return self.trio_points + self.icky_points + self.prophecy_points

    def totals(self) -> tuple[int, int, int, int]:
        return (self.trio_points, self.icky_points, self.prophecy_points, self.total_points)


@dataclass
class ScoringInputs:
    player_ids: list[int]
    picks: dict[int, Picks]                      # player_id -> picks
    answers: dict[int, list[ProphecyAnswer]]     # player_id -> answers
    outcomes: list[ProphecyOutcome]
    events: list[CastawayEvent]                  # finalized episodes only
    episode_numbers: dict[int, int]              # episode_id -> episode_number
    placements: dict[int, PlacementCategory | None]  # castaway_id -> final placement


@dataclass
class RecalculationSummary:
    players_updated: int
    trio_detail_rows: int
    rows_changed: int
    snapshot_episode_number: int | None = None


def compute_player_scores(
    inputs: ScoringInputs,
    tables: ScoringTables = DEFAULT_TABLES,
) -> list[PlayerScore]:
    """Pure half of the recompute: one PlayerScore per player, zeros for players without picks."""
    scores = []
    for player_id in inputs.player_ids:
        pick = inputs.picks.get(player_id)
        if pick is None:
            scores.append(PlayerScore(player_id=player_id))
            continue

        detail = trio_breakdown(pick.trio, inputs.events, inputs.episode_numbers, tables)
        scores.append(PlayerScore(
            player_id=player_id,
            trio_points=sum(detail.values()),
            icky_points=icky_points(inputs.placements.get(pick.icky_castaway), tables),
            prophecy_points=prophecy_points(inputs.answers.get(player_id, []), inputs.outcomes, tables),
            trio_detail=detail,
        ))
    return scores


async def load_scoring_inputs(db: AsyncSession) -> ScoringInputs:
    ep_result = await db.execute(
        select(Episode.id, Episode.episode_number).where(Episode.is_finalized == True)
    )
    episode_numbers = {row.id: row.episode_number for row in ep_result.all()}

    events_result = await db.execute(
        select(CastawayEvent).order_by(CastawayEvent.episode_id, CastawayEvent.castaway_id, CastawayEvent.id)
    )
    events = []
    for event in events_result.scalars().all():
        if event.episode_id not in episode_numbers:
            logger.debug("Ignoring event %s: episode %s is not finalized", event.id, event.episode_id)
            continue
        events.append(event)

    player_result = await db.execute(select(Player.id).order_by(Player.id))
    player_ids = list(player_result.scalars().all())

    picks_result = await db.execute(select(Picks))
    picks = {p.player_id: p for p in picks_result.scalars().all()}

    answers_result = await db.execute(select(ProphecyAnswer).order_by(ProphecyAnswer.question_id))
    answers: dict[int, list[ProphecyAnswer]] = {}
    for answer in answers_result.scalars().all():
        answers.setdefault(answer.player_id, []).append(answer)

    outcomes_result = await db.execute(select(ProphecyOutcome))
    outcomes = list(outcomes_result.scalars().all())

    castaway_result = await db.execute(select(Castaway.id, Castaway.final_placement))
    placements = {row.id: row.final_placement for row in castaway_result.all()}

    return ScoringInputs(
        player_ids=player_ids,
        picks=picks,
        answers=answers,
        outcomes=outcomes,
        events=events,
        episode_numbers=episode_numbers,
        placements=placements,
    )


# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


async def _insert_or_update(db: AsyncSession, model, key: tuple[str, ...], values: dict) -> None:
    """
    Insert a derived row that the session has not seen. When the dialect
    supports it this is an upsert, so a row written by a concurrent recompute
    is overwritten instead of raising IntegrityError.
    """
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is None:
        db.add(model(**values))
        return
    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(key),
        set_={name: stmt.excluded[name] for name in values if name not in key},
    )
    await db.execute(stmt)


async def _write_score_cache(db: AsyncSession, scores: list[PlayerScore], now: datetime) -> int:
    """Full replace keyed by player id. Returns how many cache rows actually changed."""
    existing_result = await db.execute(select(ScoreCache))
    existing = {row.player_id: row for row in existing_result.scalars().all()}

    changed = 0
    for score in scores:
        trio, icky, prophecy, total = score.totals()
        row = existing.pop(score.player_id, None)
        if row is None:
            await _insert_or_update(db, ScoreCache, ("player_id",), {
                "player_id": score.player_id,
                "trio_points": trio,
                "icky_points": icky,
                "prophecy_points": prophecy,
                "total_points": total,
                "last_calculated_at": now,
            })
        elif (row.trio_points, row.icky_points, row.prophecy_points, row.total_points) == score.totals():
            continue
        else:
            row.trio_points, row.icky_points, row.prophecy_points, row.total_points = trio, icky, prophecy, total
            row.last_calculated_at = now
        changed += 1

    for stale in existing.values():
        await db.delete(stale)
        changed += 1
    return changed


async def _write_trio_detail(db: AsyncSession, scores: list[PlayerScore]) -> int:
    existing_result = await db.execute(select(ScoreCacheTrioDetail))
    existing = {(row.player_id, row.castaway_id): row for row in existing_result.scalars().all()}

    written = 0
    for score in scores:
        for castaway_id, points in score.trio_detail.items():
            row = existing.pop((score.player_id, castaway_id), None)
            if row is None:
                await _insert_or_update(db, ScoreCacheTrioDetail, ("player_id", "castaway_id"), {
                    "player_id": score.player_id,
                    "castaway_id": castaway_id,
                    "points_earned": points,
                })
            elif row.points_earned != points:
                row.points_earned = points
            written += 1

    # Castaways no longer in a player's trio
    for stale in existing.values():
        await db.delete(stale)
    return written


async def _write_snapshots(db: AsyncSession, scores: list[PlayerScore], episode_number: int) -> None:
    existing_result = await db.execute(
        select(ScoreSnapshot).where(ScoreSnapshot.episode_number == episode_number)
    )
    existing = {row.player_id: row for row in existing_result.scalars().all()}

    for score in scores:
        trio, icky, prophecy, total = score.totals()
        row = existing.get(score.player_id)
        if row is None:
            await _insert_or_update(db, ScoreSnapshot, ("player_id", "episode_number"), {
                "player_id": score.player_id,
                "episode_number": episode_number,
                "trio_points": trio,
                "icky_points": icky,
                "prophecy_points": prophecy,
                "total_points": total,
            })
        else:
            row.trio_points, row.icky_points, row.prophecy_points, row.total_points = trio, icky, prophecy, total


async def recalculate_scores(
    db: AsyncSession,
    episode_id: int | None = None,
    tables: ScoringTables = DEFAULT_TABLES,
) -> RecalculationSummary:
    """
    Recompute every player's cached score from the full event history.

    episode_id is a scope hint: the totals are always cumulative, but when it
    is given the resulting totals are also snapshotted under that episode's
    number. Any storage failure rolls the session back and raises
    RecalculationError; nothing is half-written.
    """
    logger.info("Recalculating scores (scope: %s)", "all" if episode_id is None else f"episode {episode_id}")
    try:
        snapshot_number = None
        if episode_id is not None:
            ep_result = await db.execute(select(Episode.episode_number).where(Episode.id == episode_id))
            snapshot_number = ep_result.scalar_one_or_none()
            if snapshot_number is None:
                logger.warning("Episode %s not found; recalculating without a snapshot", episode_id)

        inputs = await load_scoring_inputs(db)
        scores = compute_player_scores(inputs, tables)
        now = datetime.now(timezone.utc)

        changed = await _write_score_cache(db, scores, now)
        detail_rows = await _write_trio_detail(db, scores)
        if snapshot_number is not None:
            await _write_snapshots(db, scores, snapshot_number)
        await db.flush()
    except SQLAlchemyError as e:
        logger.exception("Score recalculation failed; rolling back")
        await db.rollback()
        raise RecalculationError("Score recalculation failed; safe to retry") from e

    logger.info("Recalculated %d players (%d cache rows changed)", len(scores), changed)
    return RecalculationSummary(
        players_updated=len(scores),
        trio_detail_rows=detail_rows,
        rows_changed=changed,
        snapshot_episode_number=snapshot_number,
    )


# --- Read side ---

async def get_leaderboard(db: AsyncSession) -> list[dict]:
    """
    Every player, ranked from the score cache. Players without a cache row
    (no recompute yet, no picks) show up with zeros. Picks are attached only
    once the commissioner has revealed them.
    """
    config = await get_season_config(db)

    players_result = await db.execute(select(Player).order_by(Player.id))
    players = players_result.scalars().all()

    cache_result = await db.execute(select(ScoreCache))
    cache = {row.player_id: row for row in cache_result.scalars().all()}

    picks = {}
    if config.picks_revealed:
        picks_result = await db.execute(select(Picks))
        picks = {p.player_id: p for p in picks_result.scalars().all()}

    entries = []
    for player in players:
        score = cache.get(player.id)
        pick = picks.get(player.id)
        entries.append({
            "player_id": player.id,
            "display_name": player.display_name,
            "avatar_url": player.avatar_url,
            "trio_points": score.trio_points if score else 0,
            "icky_points": score.icky_points if score else 0,
            "prophecy_points": score.prophecy_points if score else 0,
            "total_points": score.total_points if score else 0,
            "trio_castaways": list(pick.trio) if pick else None,
            "icky_castaway": pick.icky_castaway if pick else None,
        })

    return rank_players(entries)


async def get_player_breakdown(db: AsyncSession, player_id: int) -> dict | None:
    player_result = await db.execute(select(Player).where(Player.id == player_id))
    player = player_result.scalar_one_or_none()
    if player is None:
        return None

    cache_result = await db.execute(select(ScoreCache).where(ScoreCache.player_id == player_id))
    score = cache_result.scalar_one_or_none()

    detail_result = await db.execute(
        select(ScoreCacheTrioDetail, Castaway.name)
        .join(Castaway, ScoreCacheTrioDetail.castaway_id == Castaway.id)
        .where(ScoreCacheTrioDetail.player_id == player_id)
        .order_by(ScoreCacheTrioDetail.points_earned.desc(), Castaway.name)
    )
    trio_detail = [
        {"castaway_id": row.castaway_id, "castaway_name": name, "points_earned": row.points_earned}
        for row, name in detail_result.all()
    ]

    # Hidden until the commissioner reveals picks
    prophecy_answers = None
    config = await get_season_config(db)
    if config.picks_revealed:
        answers_result = await db.execute(
            select(ProphecyAnswer)
            .where(ProphecyAnswer.player_id == player_id)
            .order_by(ProphecyAnswer.question_id)
        )
        prophecy_answers = {a.question_id: a.answer for a in answers_result.scalars().all()}

    return {
        "player_id": player.id,
        "display_name": player.display_name,
        "trio_points": score.trio_points if score else 0,
        "icky_points": score.icky_points if score else 0,
        "prophecy_points": score.prophecy_points if score else 0,
        "total_points": score.total_points if score else 0,
        "last_calculated_at": score.last_calculated_at if score else None,
        "trio_detail": trio_detail,
        "prophecy_answers": prophecy_answers,
    }


async def get_castaway_totals(
    db: AsyncSession,
    tables: ScoringTables = DEFAULT_TABLES,
) -> dict[int, int]:
    """Season-to-date event points per castaway (finalized episodes only)."""
    inputs = await load_scoring_inputs(db)
    return {
        castaway_id: castaway_points(castaway_id, inputs.events, inputs.episode_numbers, tables)
        for castaway_id in inputs.placements
    }
