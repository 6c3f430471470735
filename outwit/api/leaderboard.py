from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.core.database import get_db
from outwit.models.models import Player
from outwit.schemas.leaderboard import (
    LeaderboardResponse, LeaderboardEntry, PlayerBreakdownResponse,
)
from outwit.api.deps import get_current_user
from outwit.services.scoring_engine import get_leaderboard, get_player_breakdown
from outwit.services.season import get_season_config

router = APIRouter(prefix="/api/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_user),
):
    config = await get_season_config(db)
    raw = await get_leaderboard(db)
    return LeaderboardResponse(
        picks_revealed=config.picks_revealed,
        current_episode=config.current_episode,
        entries=[LeaderboardEntry(**e) for e in raw],
    )


@router.get("/players/{player_id}", response_model=PlayerBreakdownResponse)
async def player_breakdown(
    player_id: int,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_user),
):
    breakdown = await get_player_breakdown(db, player_id)
    if breakdown is None:
        raise HTTPException(status_code=404, detail="Player not found")
    return breakdown
