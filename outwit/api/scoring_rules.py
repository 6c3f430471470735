from fastapi import APIRouter

from outwit.schemas.scoring_rules import ScoringRulesResponse
from outwit.services.point_tables import scoring_rules

router = APIRouter(prefix="/api/scoring", tags=["Scoring Rules"])


@router.get("/rules", response_model=ScoringRulesResponse)
async def get_scoring_rules():
    # Public: the rules are the same for everyone
    return scoring_rules()
