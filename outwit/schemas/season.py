from pydantic import BaseModel, Field
from datetime import datetime


class SeasonUpdate(BaseModel):
    season_name: str | None = Field(default=None, min_length=1, max_length=100)
    # Null clears the deadline
    picks_deadline: datetime | None = None


class SeasonResponse(BaseModel):
    season_name: str
    picks_deadline: datetime | None
    picks_revealed: bool
    current_episode: int

    model_config = {"from_attributes": True}
