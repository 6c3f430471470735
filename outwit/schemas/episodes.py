from pydantic import BaseModel, Field
from datetime import datetime

from outwit.services.point_tables import EventKind
from outwit.schemas.scores import RecalculateResponse


class EpisodeCreate(BaseModel):
    episode_number: int = Field(..., gt=0)
    title: str | None = None
    air_date: datetime | None = None
    is_merge: bool = False
    is_finale: bool = False


class EpisodeResponse(BaseModel):
    id: int
    episode_number: int
    title: str | None
    air_date: datetime | None
    is_merge: bool
    is_finale: bool
    is_finalized: bool

    model_config = {"from_attributes": True}


class CastawayEventInput(BaseModel):
    castaway_id: int = Field(..., gt=0)
    event_kind: EventKind


class EpisodeFinalize(BaseModel):
    events: list[CastawayEventInput] = []


class EpisodeFinalizeResponse(BaseModel):
    episode: EpisodeResponse
    events_created: int
    scores: RecalculateResponse
