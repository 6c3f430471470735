from pydantic import BaseModel

from outwit.services.point_tables import EventKind, PlacementCategory


class EventRule(BaseModel):
    event_kind: EventKind
    label: str
    points: int | None  # Null for survival, which depends on the episode


class SurvivalBracket(BaseModel):
    phase: str
    first_episode: int
    last_episode: int | None
    points: int


class IckyRule(BaseModel):
    placement: PlacementCategory
    points: int


class ProphecyRule(BaseModel):
    question_id: int
    text: str
    points: int


class ScoringRulesResponse(BaseModel):
    events: list[EventRule]
    survival_brackets: list[SurvivalBracket]
    icky: list[IckyRule]
    prophecy: list[ProphecyRule]
    max_prophecy_points: int
