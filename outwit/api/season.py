import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.core.database import get_db
from outwit.models.models import Player
from outwit.schemas.season import SeasonUpdate, SeasonResponse
from outwit.api.deps import get_current_user, require_commissioner
from outwit.services.season import get_season_config, reveal_picks, update_season

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/season", tags=["Season"])


@router.get("", response_model=SeasonResponse)
async def get_season(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_user),
):
    return await get_season_config(db)


@router.patch("", response_model=SeasonResponse)
async def patch_season(
    body: SeasonUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Player = Depends(require_commissioner),
):
    updates = body.model_dump(exclude_unset=True)
    if updates.get("season_name", "") is None:
        raise HTTPException(status_code=422, detail="season_name cannot be null")
    logger.info("Season update by player %s", current_user.id)
    return await update_season(db, **updates)


@router.post("/reveal", response_model=SeasonResponse)
async def reveal(
    db: AsyncSession = Depends(get_db),
    current_user: Player = Depends(require_commissioner),
):
    logger.info("Picks reveal requested by player %s", current_user.id)
    return await reveal_picks(db)
