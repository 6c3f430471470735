"""Prophecy outcome resolution."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.models.models import ProphecyOutcome
from outwit.services.point_tables import PROPHECY_QUESTION_IDS, PROPHECY_QUESTIONS
from outwit.services.scoring_engine import RecalculationSummary, recalculate_scores

logger = logging.getLogger(__name__)


async def get_prophecy_board(db: AsyncSession) -> list[dict]:
    """The 16-question catalog with each question's current outcome."""
    result = await db.execute(select(ProphecyOutcome))
    outcomes = {o.question_id: o for o in result.scalars().all()}
    board = []
    for question in PROPHECY_QUESTIONS:
        outcome = outcomes.get(question.id)
        board.append({
            "id": question.id,
            "text": question.text,
            "points": question.points,
            "outcome": outcome.outcome if outcome else None,
            "resolved_at": outcome.resolved_at if outcome else None,
            "episode_number": outcome.episode_number if outcome else None,
        })
    return board


async def resolve_prophecy(
    db: AsyncSession,
    question_id: int,
    outcome: bool | None,
    episode_number: int | None = None,
    updated_by: int | None = None,
) -> tuple[ProphecyOutcome, RecalculationSummary]:
    """Set (or with None, re-open) a question's outcome, then rebuild every score."""
    if question_id not in PROPHECY_QUESTION_IDS:
        raise LookupError(f"Unknown prophecy question {question_id}")

    result = await db.execute(
        select(ProphecyOutcome).where(ProphecyOutcome.question_id == question_id)
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = ProphecyOutcome(question_id=question_id)
        db.add(row)

    row.outcome = outcome
    row.resolved_at = datetime.now(timezone.utc) if outcome is not None else None
    row.episode_number = episode_number if outcome is not None else None
    row.updated_by = updated_by
    await db.flush()

    logger.info("Prophecy question %d resolved to %s", question_id, outcome)
    summary = await recalculate_scores(db)
    return row, summary
