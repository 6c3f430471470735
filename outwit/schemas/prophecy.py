from pydantic import BaseModel, Field
from datetime import datetime

from outwit.schemas.scores import RecalculateResponse


class ProphecyQuestionItem(BaseModel):
    id: int
    text: str
    points: int
    outcome: bool | None
    resolved_at: datetime | None
    episode_number: int | None


class ProphecyResolve(BaseModel):
    outcome: bool | None  # Null re-opens the question
    episode_number: int | None = Field(default=None, gt=0)


class ProphecyResolveResponse(BaseModel):
    question_id: int
    outcome: bool | None
    resolved_at: datetime | None
    scores: RecalculateResponse
