"""Episode logging and finalization."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.models.models import Castaway, CastawayEvent, Episode
from outwit.services.point_tables import EventKind
from outwit.services.scoring_engine import RecalculationSummary, recalculate_scores
from outwit.services.season import get_season_config

logger = logging.getLogger(__name__)


class EpisodeFinalizedError(RuntimeError):
    pass


class UnknownCastawayError(LookupError):
    pass


@dataclass(frozen=True)
class LoggedEvent:
    castaway_id: int
    event_kind: EventKind


async def upsert_episode(db: AsyncSession, episode_number: int, **fields) -> Episode:
    """Create the episode, or update the open one with the same number."""
    result = await db.execute(select(Episode).where(Episode.episode_number == episode_number))
    episode = result.scalar_one_or_none()
    if episode is None:
        episode = Episode(episode_number=episode_number, is_finalized=False)
        db.add(episode)
    elif episode.is_finalized and fields:
        raise EpisodeFinalizedError(f"Episode {episode_number} is finalized")
    for name, value in fields.items():
        setattr(episode, name, value)
    await db.flush()
    await db.refresh(episode)
    return episode


async def log_events(db: AsyncSession, episode: Episode, events: list[LoggedEvent]) -> int:
    """
    Upsert (episode, castaway, kind) facts. Re-logging an existing fact is a
    no-op. Returns the number of new facts.
    """
    castaway_ids = {e.castaway_id for e in events}
    if castaway_ids:
        result = await db.execute(select(Castaway.id).where(Castaway.id.in_(castaway_ids)))
        missing = castaway_ids - set(result.scalars().all())
        if missing:
            raise UnknownCastawayError(f"Unknown castaway id(s): {', '.join(map(str, sorted(missing)))}")

    existing_result = await db.execute(
        select(CastawayEvent.castaway_id, CastawayEvent.event_kind)
        .where(CastawayEvent.episode_id == episode.id)
    )
    existing = {(row.castaway_id, row.event_kind) for row in existing_result.all()}

    created = 0
    for event in events:
        key = (event.castaway_id, EventKind(event.event_kind))
        if key in existing:
            continue
        db.add(CastawayEvent(episode_id=episode.id, castaway_id=key[0], event_kind=key[1]))
        existing.add(key)
        created += 1
    await db.flush()
    return created


async def finalize_episode(
    db: AsyncSession,
    episode_id: int,
    events: list[LoggedEvent],
) -> tuple[Episode, int, RecalculationSummary]:
    """
    Save the episode's events, mark it finalized, advance the season's current
    episode and rebuild the score cache. Everything lands in the caller's
    transaction, so a failed recompute also discards the logged events.
    """
    result = await db.execute(select(Episode).where(Episode.id == episode_id))
    episode = result.scalar_one_or_none()
    if episode is None:
        raise LookupError(f"Episode {episode_id} not found")

    created = await log_events(db, episode, events)
    episode.is_finalized = True

    config = await get_season_config(db)
    config.current_episode = max(config.current_episode or 0, episode.episode_number)
    await db.flush()

    logger.info("Finalized episode %s with %d new event(s)", episode.episode_number, created)
    summary = await recalculate_scores(db, episode_id=episode.id)
    return episode, created, summary
