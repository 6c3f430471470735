import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.core.database import get_db
from outwit.models.models import Player
from outwit.schemas.scores import RecalculateRequest, RecalculateResponse
from outwit.api.deps import require_commissioner
from outwit.services.scoring_engine import RecalculationError, recalculate_scores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scores", tags=["Scores"])


def recalculation_failed(e: RecalculationError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail=f"{e}. Previous scores are unchanged.",
    )


@router.post("/recalculate", response_model=RecalculateResponse)
async def recalculate(
    body: RecalculateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Player = Depends(require_commissioner),
):
    logger.info("Recalculation requested by player %s", current_user.id)
    try:
        summary = await recalculate_scores(db, episode_id=body.episode_id)
    except RecalculationError as e:
        raise recalculation_failed(e)
    return RecalculateResponse(**asdict(summary))
