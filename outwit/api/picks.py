from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.core.database import get_db
from outwit.models.models import Player
from outwit.schemas.picks import PicksResponse, LockPicksResponse
from outwit.api.deps import get_current_user, require_commissioner
from outwit.services.picks import (
    PicksLockedError, get_player_picks, lock_all_picks, submit_picks,
)
from outwit.services.validation import PicksValidationError

router = APIRouter(prefix="/api/picks", tags=["Picks"])


def _build_picks_response(picks, answers: dict[int, bool]) -> PicksResponse:
    return PicksResponse(
        player_id=picks.player_id,
        trio_castaway_1=picks.trio_castaway_1,
        trio_castaway_2=picks.trio_castaway_2,
        trio_castaway_3=picks.trio_castaway_3,
        icky_castaway=picks.icky_castaway,
        submitted_at=picks.submitted_at,
        is_locked=picks.is_locked,
        prophecy_answers=answers,
    )


@router.post("", response_model=PicksResponse)
async def submit(
    payload: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user: Player = Depends(get_current_user),
):
    try:
        await submit_picks(db, current_user, payload)
    except PicksValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[v.model_dump() for v in e.violations],
        )
    except PicksLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))

    picks, answers = await get_player_picks(db, current_user.id)
    return _build_picks_response(picks, answers)


@router.get("/mine", response_model=PicksResponse)
async def my_picks(
    db: AsyncSession = Depends(get_db),
    current_user: Player = Depends(get_current_user),
):
    picks, answers = await get_player_picks(db, current_user.id)
    if picks is None:
        raise HTTPException(status_code=404, detail="No picks submitted yet")
    return _build_picks_response(picks, answers)


@router.post("/lock", response_model=LockPicksResponse)
async def lock(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_commissioner),
):
    locked = await lock_all_picks(db)
    return LockPicksResponse(locked=locked)
