"""Picks submission and locking."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.models.models import Castaway, Picks, Player, ProphecyAnswer
from outwit.services.season import get_season_config
from outwit.services.validation import (
    CASTAWAY_FIELDS, PicksSubmission, PicksValidationError, Violation,
    validate_picks_submission,
)

logger = logging.getLogger(__name__)


class PicksLockedError(RuntimeError):
    pass


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def _check_castaways_exist(db: AsyncSession, submission: PicksSubmission) -> None:
    ids = {getattr(submission, f) for f in CASTAWAY_FIELDS}
    result = await db.execute(select(Castaway.id).where(Castaway.id.in_(ids)))
    known = set(result.scalars().all())
    unknown = [
        Violation(field=f, reason=f"Castaway {getattr(submission, f)} does not exist")
        for f in CASTAWAY_FIELDS
        if getattr(submission, f) not in known
    ]
    if unknown:
        raise PicksValidationError(unknown)


async def submit_picks(
    db: AsyncSession,
    player: Player,
    payload: dict | PicksSubmission,
    now: datetime | None = None,
) -> Picks:
    """
    Validate and store a player's picks plus all 16 prophecy answers.

    Raises PicksValidationError for a bad payload and PicksLockedError once
    the player's picks are locked or the deadline has passed.
    """
    submission = validate_picks_submission(payload)
    await _check_castaways_exist(db, submission)

    now = now or datetime.now(timezone.utc)
    config = await get_season_config(db)
    if config.picks_deadline is not None and now >= _as_utc(config.picks_deadline):
        raise PicksLockedError("The picks deadline has passed")

    result = await db.execute(select(Picks).where(Picks.player_id == player.id))
    picks = result.scalar_one_or_none()
    if picks is not None and picks.is_locked:
        raise PicksLockedError("Picks are locked")

    if picks is None:
        picks = Picks(player_id=player.id)
        db.add(picks)
    picks.trio_castaway_1, picks.trio_castaway_2, picks.trio_castaway_3 = submission.trio
    picks.icky_castaway = submission.icky_castaway
    picks.submitted_at = now

    answers_result = await db.execute(
        select(ProphecyAnswer).where(ProphecyAnswer.player_id == player.id)
    )
    existing = {a.question_id: a for a in answers_result.scalars().all()}
    for question_id, answer in submission.prophecy_answers.items():
        row = existing.get(question_id)
        if row is None:
            db.add(ProphecyAnswer(player_id=player.id, question_id=question_id, answer=answer))
        else:
            row.answer = answer

    await db.flush()
    await db.refresh(picks)
    logger.info("Player %s submitted picks", player.id)
    return picks


async def get_player_picks(db: AsyncSession, player_id: int) -> tuple[Picks | None, dict[int, bool]]:
    result = await db.execute(select(Picks).where(Picks.player_id == player_id))
    picks = result.scalar_one_or_none()
    answers_result = await db.execute(
        select(ProphecyAnswer)
        .where(ProphecyAnswer.player_id == player_id)
        .order_by(ProphecyAnswer.question_id)
    )
    answers = {a.question_id: a.answer for a in answers_result.scalars().all()}
    return picks, answers


async def lock_all_picks(db: AsyncSession) -> int:
    """Lock every unlocked picks row. Returns how many were locked; 0 on a repeat run."""
    result = await db.execute(select(Picks).where(Picks.is_locked == False))
    rows = result.scalars().all()
    for picks in rows:
        picks.is_locked = True
    await db.flush()
    locked = len(rows)
    logger.info("Locked %d pick(s)", locked)
    return locked
