from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.core.database import get_db
from outwit.models.models import Player
from outwit.schemas.prophecy import (
    ProphecyQuestionItem, ProphecyResolve, ProphecyResolveResponse,
)
from outwit.schemas.scores import RecalculateResponse
from outwit.api.deps import get_current_user, require_commissioner
from outwit.api.scores import recalculation_failed
from outwit.services.prophecy import get_prophecy_board, resolve_prophecy
from outwit.services.scoring_engine import RecalculationError

router = APIRouter(prefix="/api/prophecy", tags=["Prophecy"])


@router.get("/questions", response_model=list[ProphecyQuestionItem])
async def list_questions(
    db: AsyncSession = Depends(get_db),
    _: Player = Depends(get_current_user),
):
    return await get_prophecy_board(db)


@router.put("/outcomes/{question_id}", response_model=ProphecyResolveResponse)
async def resolve(
    question_id: int,
    body: ProphecyResolve,
    db: AsyncSession = Depends(get_db),
    current_user: Player = Depends(require_commissioner),
):
    try:
        outcome, summary = await resolve_prophecy(
            db, question_id, body.outcome,
            episode_number=body.episode_number,
            updated_by=current_user.id,
        )
    except LookupError:
        raise HTTPException(status_code=404, detail="Prophecy question not found")
    except RecalculationError as e:
        raise recalculation_failed(e)

    return ProphecyResolveResponse(
        question_id=outcome.question_id,
        outcome=outcome.outcome,
        resolved_at=outcome.resolved_at,
        scores=RecalculateResponse(**asdict(summary)),
    )
