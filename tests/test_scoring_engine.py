from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from outwit.models.models import (
    Castaway, CastawayEvent, Episode, Picks, ProphecyAnswer, ProphecyOutcome,
    ScoreCache, ScoreCacheTrioDetail, ScoreSnapshot,
)
from outwit.services.point_tables import EventKind, PlacementCategory
from outwit.services.scoring import EventFact
from outwit.services.scoring_engine import (
    RecalculationError, ScoringInputs, _insert_or_update, compute_player_scores, get_castaway_totals,
    get_leaderboard, get_player_breakdown, recalculate_scores,
)
from outwit.services.season import get_season_config


async def cache_state(db):
    cache = (await db.execute(select(ScoreCache).order_by(ScoreCache.player_id))).scalars().all()
    detail = (await db.execute(
        select(ScoreCacheTrioDetail).order_by(ScoreCacheTrioDetail.player_id, ScoreCacheTrioDetail.castaway_id)
    )).scalars().all()
    return (
        [(c.player_id, c.trio_points, c.icky_points, c.prophecy_points, c.total_points, c.last_calculated_at)
         for c in cache],
        [(d.player_id, d.castaway_id, d.points_earned) for d in detail],
    )


def totals(state):
    return {row[0]: row[1:5] for row in state[0]}


@pytest.fixture
async def played(db, season):
    """
    Alice: trio 1/2/3, icky 4 (first boot), answers all True.
    Bob: trio 5/6/7, icky 8 (still in), answers all False.
    Charlie: trio 2/5/8, icky 1, no prophecy answers.
    Dana: no picks.
    """
    db.add_all([
        Picks(player_id=1, trio_castaway_1=1, trio_castaway_2=2, trio_castaway_3=3, icky_castaway=4),
        Picks(player_id=2, trio_castaway_1=5, trio_castaway_2=6, trio_castaway_3=7, icky_castaway=8),
        Picks(player_id=3, trio_castaway_1=2, trio_castaway_2=5, trio_castaway_3=8, icky_castaway=1),
    ])
    db.add_all([ProphecyAnswer(player_id=1, question_id=q, answer=True) for q in range(1, 17)])
    db.add_all([ProphecyAnswer(player_id=2, question_id=q, answer=False) for q in range(1, 17)])
    db.add_all([
        CastawayEvent(episode_id=101, castaway_id=1, event_kind=EventKind.IDOL_FOUND),
        CastawayEvent(episode_id=101, castaway_id=2, event_kind=EventKind.ADVANTAGE_FOUND),
        CastawayEvent(episode_id=101, castaway_id=3, event_kind=EventKind.INDIVIDUAL_IMMUNITY_WIN),
        CastawayEvent(episode_id=101, castaway_id=4, event_kind=EventKind.FIRST_BOOT),
    ])
    db.add_all([
        CastawayEvent(episode_id=100 + n, castaway_id=5, event_kind=EventKind.SURVIVED_EPISODE)
        for n in (1, 2, 3)
    ])
    db.add_all([
        ProphecyOutcome(question_id=10, outcome=True),
        ProphecyOutcome(question_id=1, outcome=False),
        ProphecyOutcome(question_id=2, outcome=None),
    ])
    castaway_4 = await db.get(Castaway, 4)
    castaway_4.is_active = False
    castaway_4.final_placement = PlacementCategory.FIRST_BOOT
    await db.commit()


async def test_players_without_picks_get_zero_rows(db, season):
    summary = await recalculate_scores(db)
    await db.commit()

    assert summary.players_updated == 4
    assert summary.trio_detail_rows == 0
    state = await cache_state(db)
    assert totals(state) == {pid: (0, 0, 0, 0) for pid in (1, 2, 3, 4)}
    assert state[1] == []


async def test_recalculate_scores_totals(db, played):
    await recalculate_scores(db)
    await db.commit()

    state = await cache_state(db)
    # (trio, icky, prophecy, total)
    assert totals(state) == {
        1: (15, 15, 4, 34),     # idol + advantage + immunity; icky first boot; Q10
        2: (3, 0, 1, 4),        # three early survivals; icky still in; Q1
        3: (7, 0, 0, 7),        # advantage + survivals; icky castaway 1 still in
        4: (0, 0, 0, 0),
    }
    assert (1, 1, 5) in state[1] and (1, 4, 0) not in state[1]
    assert [(d[1], d[2]) for d in state[1] if d[0] == 3] == [(2, 4), (5, 3), (8, 0)]


async def test_recalculate_is_idempotent(db, played):
    first_summary = await recalculate_scores(db)
    await db.commit()
    first = await cache_state(db)

    second_summary = await recalculate_scores(db, episode_id=None)
    await db.commit()
    second = await cache_state(db)

    assert first == second
    assert first_summary.rows_changed == 4
    assert second_summary.rows_changed == 0


async def test_only_changed_rows_get_new_timestamp(db, played):
    await recalculate_scores(db)
    await db.commit()
    before = {row[0]: row[5] for row in (await cache_state(db))[0]}

    db.add(CastawayEvent(episode_id=102, castaway_id=6, event_kind=EventKind.IDOL_FOUND))
    await db.commit()
    summary = await recalculate_scores(db)
    await db.commit()
    after = {row[0]: row[5] for row in (await cache_state(db))[0]}

    assert summary.rows_changed == 1
    assert after[1] == before[1]
    assert after[2] != before[2]


async def test_events_from_open_episodes_are_ignored(db, played):
    db.add(Episode(id=104, episode_number=4, is_finalized=False))
    db.add(CastawayEvent(episode_id=104, castaway_id=1, event_kind=EventKind.SOLE_SURVIVOR))
    await db.commit()

    await recalculate_scores(db)
    await db.commit()
    assert totals(await cache_state(db))[1] == (15, 15, 4, 34)


async def test_changed_trio_drops_stale_detail_rows(db, played):
    await recalculate_scores(db)
    await db.commit()

    picks = (await db.execute(select(Picks).where(Picks.player_id == 1))).scalar_one()
    picks.trio_castaway_3 = 7
    await db.commit()

    await recalculate_scores(db)
    await db.commit()
    detail = [(d[1], d[2]) for d in (await cache_state(db))[1] if d[0] == 1]
    assert detail == [(1, 5), (2, 4), (7, 0)]


async def test_episode_scope_writes_snapshot(db, played):
    summary = await recalculate_scores(db, episode_id=103)
    await db.commit()
    assert summary.snapshot_episode_number == 3

    snaps = (await db.execute(select(ScoreSnapshot).order_by(ScoreSnapshot.player_id))).scalars().all()
    assert [(s.player_id, s.episode_number, s.total_points) for s in snaps] == [
        (1, 3, 34), (2, 3, 4), (3, 3, 7), (4, 3, 0),
    ]

    # Re-running the same scope overwrites rather than duplicates
    await recalculate_scores(db, episode_id=103)
    await db.commit()
    snaps = (await db.execute(select(ScoreSnapshot))).scalars().all()
    assert len(snaps) == 4


async def test_unknown_episode_scope_still_recalculates(db, played):
    summary = await recalculate_scores(db, episode_id=999)
    assert summary.snapshot_episode_number is None
    assert summary.players_updated == 4


async def test_failed_write_leaves_previous_cache(db, played, monkeypatch):
    await recalculate_scores(db)
    await db.commit()
    # Compare database state on both sides of the rollback
    db.expire_all()
    before = await cache_state(db)

    db.add(CastawayEvent(episode_id=103, castaway_id=1, event_kind=EventKind.FIRE_MAKING_WIN))
    await db.commit()

    async def failing_flush(*args, **kwargs):
        raise OperationalError("UPDATE score_cache", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "flush", failing_flush)
    with pytest.raises(RecalculationError):
        await recalculate_scores(db)
    monkeypatch.undo()

    assert await cache_state(db) == before

    # A retry converges
    await recalculate_scores(db)
    await db.commit()
    assert totals(await cache_state(db))[1] == (25, 15, 4, 44)


async def test_leaderboard_ranks_every_player(db, played):
    await recalculate_scores(db)
    await db.commit()

    board = await get_leaderboard(db)
    assert [(e["display_name"], e["rank"], e["is_tied"]) for e in board] == [
        ("Alice", 1, False), ("Charlie", 2, False), ("Bob", 3, False), ("Dana", 4, False),
    ]
    assert all(e["trio_castaways"] is None for e in board)


async def test_leaderboard_shows_picks_once_revealed(db, played):
    config = await get_season_config(db)
    config.picks_revealed = True
    await db.commit()

    board = await get_leaderboard(db)
    by_name = {e["display_name"]: e for e in board}
    assert by_name["Alice"]["trio_castaways"] == [1, 2, 3]
    assert by_name["Alice"]["icky_castaway"] == 4
    assert by_name["Dana"]["trio_castaways"] is None
    # Nothing recalculated yet: everyone ties at zero
    assert {e["rank"] for e in board} == {1}
    assert all(e["is_tied"] for e in board)


async def test_player_breakdown(db, played):
    await recalculate_scores(db)
    await db.commit()

    breakdown = await get_player_breakdown(db, 1)
    assert breakdown["total_points"] == 34
    assert [d["castaway_name"] for d in breakdown["trio_detail"]] == ["Rizzo", "Colby", "Genevieve"]
    assert await get_player_breakdown(db, 42) is None
    assert breakdown["prophecy_answers"] is None


async def test_player_breakdown_shows_answers_once_revealed(db, played):
    config = await get_season_config(db)
    config.picks_revealed = True
    await db.commit()

    assert (await get_player_breakdown(db, 2))["prophecy_answers"] == {q: False for q in range(1, 17)}
    assert (await get_player_breakdown(db, 3))["prophecy_answers"] == {}


async def test_first_write_converges_with_a_concurrent_insert(db, played):
    # Another recompute wrote the row after this one read the cache
    db.add(ScoreCache(player_id=1, trio_points=1, icky_points=1, prophecy_points=1, total_points=3))
    await db.commit()

    await _insert_or_update(db, ScoreCache, ("player_id",), {
        "player_id": 1, "trio_points": 15, "icky_points": 15, "prophecy_points": 4, "total_points": 34,
    })
    await db.commit()
    db.expire_all()

    rows = (await db.execute(select(ScoreCache))).scalars().all()
    assert [(r.player_id, r.total_points) for r in rows] == [(1, 34)]


async def test_castaway_totals(db, played):
    castaway_totals = await get_castaway_totals(db)
    assert castaway_totals[1] == 5
    assert castaway_totals[4] == -25
    assert castaway_totals[5] == 3
    assert castaway_totals[8] == 0


def test_compute_player_scores_without_database():
    inputs = ScoringInputs(
        player_ids=[1, 2],
        picks={1: SimpleNamespace(trio=(1, 2, 3), icky_castaway=9)},
        answers={1: [SimpleNamespace(question_id=16, answer=True)]},
        outcomes=[SimpleNamespace(question_id=16, outcome=True)],
        events=[
            EventFact(episode_id=7, castaway_id=1, event_kind=EventKind.IDOL_FOUND),
            EventFact(episode_id=7, castaway_id=2, event_kind=EventKind.ADVANTAGE_FOUND),
            EventFact(episode_id=7, castaway_id=3, event_kind=EventKind.INDIVIDUAL_IMMUNITY_WIN),
        ],
        episode_numbers={7: 1},
        placements={9: PlacementCategory.WINNER},
    )
    alice, bob = compute_player_scores(inputs)
    assert alice.totals() == (15, -25, 4, -6)
    assert alice.trio_detail == {1: 5, 2: 4, 3: 6}
    assert bob.totals() == (0, 0, 0, 0)
    assert bob.trio_detail == {}
