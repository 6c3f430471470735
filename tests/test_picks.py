from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from conftest import all_answers, valid_payload
from outwit.models.models import Picks, ProphecyAnswer
from outwit.services.picks import (
    PicksLockedError, get_player_picks, lock_all_picks, submit_picks,
)
from outwit.services.season import get_season_config
from outwit.services.validation import PicksValidationError


async def test_submit_stores_picks_and_answers(db, season):
    bob = season["players"][1]
    picks = await submit_picks(db, bob, valid_payload())
    await db.commit()

    assert picks.trio == (1, 2, 3)
    assert picks.icky_castaway == 4
    assert picks.is_locked is False
    stored, answers = await get_player_picks(db, bob.id)
    assert stored.id == picks.id
    assert answers == {q: True for q in range(1, 17)}


async def test_resubmit_overwrites(db, season):
    bob = season["players"][1]
    await submit_picks(db, bob, valid_payload())
    await submit_picks(db, bob, valid_payload(
        trio_castaway_1=5, icky_castaway=1, prophecy_answers=all_answers(False),
    ))
    await db.commit()

    rows = (await db.execute(select(Picks).where(Picks.player_id == bob.id))).scalars().all()
    assert len(rows) == 1
    assert rows[0].trio == (5, 2, 3)
    answers = (await db.execute(
        select(ProphecyAnswer).where(ProphecyAnswer.player_id == bob.id)
    )).scalars().all()
    assert len(answers) == 16
    assert not any(a.answer for a in answers)


async def test_invalid_payload_is_rejected_before_writing(db, season):
    with pytest.raises(PicksValidationError):
        await submit_picks(db, season["players"][1], valid_payload(icky_castaway=1))
    assert (await db.execute(select(Picks))).scalars().all() == []


async def test_unknown_castaway_is_rejected(db, season):
    with pytest.raises(PicksValidationError) as exc:
        await submit_picks(db, season["players"][1], valid_payload(trio_castaway_2=77))
    assert [v.field for v in exc.value.violations] == ["trio_castaway_2"]


async def test_locked_picks_cannot_change(db, season):
    bob = season["players"][1]
    await submit_picks(db, bob, valid_payload())
    assert await lock_all_picks(db) == 1
    await db.commit()

    with pytest.raises(PicksLockedError):
        await submit_picks(db, bob, valid_payload(trio_castaway_1=5))


async def test_deadline_blocks_submission(db, season):
    config = await get_season_config(db)
    config.picks_deadline = datetime(2026, 3, 1, tzinfo=timezone.utc)
    await db.commit()

    with pytest.raises(PicksLockedError):
        await submit_picks(db, season["players"][1], valid_payload(), now=config.picks_deadline)
    picks = await submit_picks(
        db, season["players"][1], valid_payload(),
        now=config.picks_deadline - timedelta(minutes=1),
    )
    assert picks.player_id == 2


async def test_lock_all_picks_is_idempotent(db, season):
    for player in season["players"][:3]:
        await submit_picks(db, player, valid_payload())
    await db.commit()

    assert await lock_all_picks(db) == 3
    assert await lock_all_picks(db) == 0
