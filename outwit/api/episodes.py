import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from outwit.core.database import get_db
from outwit.models.models import Episode, Player
from outwit.schemas.episodes import (
    EpisodeCreate, EpisodeResponse, EpisodeFinalize, EpisodeFinalizeResponse,
)
from outwit.schemas.scores import RecalculateResponse
from outwit.api.deps import get_current_user, require_commissioner
from outwit.api.scores import recalculation_failed
from outwit.services.episodes import (
    EpisodeFinalizedError, LoggedEvent, UnknownCastawayError,
    finalize_episode, upsert_episode,
)
from outwit.services.scoring_engine import RecalculationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/episodes", tags=["Episodes"])


@router.post("", response_model=EpisodeResponse, status_code=201)
async def create_episode(
    body: EpisodeCreate,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_commissioner),
):
    fields = body.model_dump(exclude={"episode_number"})
    try:
        return await upsert_episode(db, body.episode_number, **fields)
    except EpisodeFinalizedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("", response_model=list[EpisodeResponse])
async def list_episodes(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_user),
):
    result = await db.execute(select(Episode).order_by(Episode.episode_number))
    return result.scalars().all()


@router.post("/{episode_id}/finalize", response_model=EpisodeFinalizeResponse)
async def finalize(
    episode_id: int,
    body: EpisodeFinalize,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_commissioner),
):
    events = [LoggedEvent(castaway_id=e.castaway_id, event_kind=e.event_kind) for e in body.events]
    try:
        episode, created, summary = await finalize_episode(db, episode_id, events)
    except UnknownCastawayError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError:
        raise HTTPException(status_code=404, detail="Episode not found")
    except RecalculationError as e:
        raise recalculation_failed(e)

    return EpisodeFinalizeResponse(
        episode=EpisodeResponse.model_validate(episode),
        events_created=created,
        scores=RecalculateResponse(**asdict(summary)),
    )
