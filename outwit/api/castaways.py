import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from outwit.core.database import get_db
from outwit.models.models import Castaway, Player
from outwit.schemas.castaways import CastawayUpdate, CastawayResponse, CastawayWithPoints
from outwit.api.deps import get_current_user, require_commissioner
from outwit.api.scores import recalculation_failed
from outwit.services.scoring_engine import (
    RecalculationError, get_castaway_totals, recalculate_scores,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/castaways", tags=["Castaways"])


async def _get_castaway_or_404(db: AsyncSession, castaway_id: int) -> Castaway:
    result = await db.execute(select(Castaway).where(Castaway.id == castaway_id))
    castaway = result.scalar_one_or_none()
    if not castaway:
        raise HTTPException(status_code=404, detail="Castaway not found")
    return castaway


@router.get("", response_model=list[CastawayWithPoints])
async def list_castaways(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_user),
):
    result = await db.execute(
        select(Castaway).order_by(Castaway.original_tribe, Castaway.name)
    )
    castaways = result.scalars().all()
    totals = await get_castaway_totals(db)

    return [
        CastawayWithPoints(
            **CastawayResponse.model_validate(c).model_dump(),
            total_points=totals.get(c.id, 0),
        )
        for c in castaways
    ]


@router.patch("/{castaway_id}", response_model=CastawayResponse)
async def update_castaway(
    castaway_id: int,
    body: CastawayUpdate,
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(require_commissioner),
):
    castaway = await _get_castaway_or_404(db, castaway_id)
    updates = body.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(castaway, field, value)
    await db.flush()

    # Placement drives icky points
    if "final_placement" in updates:
        logger.info("Castaway %s placement set to %s", castaway.id, castaway.final_placement)
        try:
            await recalculate_scores(db)
        except RecalculationError as e:
            raise recalculation_failed(e)

    await db.refresh(castaway)
    return castaway
