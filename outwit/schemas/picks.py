from pydantic import BaseModel
from datetime import datetime


class PicksResponse(BaseModel):
    player_id: int
    trio_castaway_1: int
    trio_castaway_2: int
    trio_castaway_3: int
    icky_castaway: int
    submitted_at: datetime | None
    is_locked: bool
    prophecy_answers: dict[int, bool]


class LockPicksResponse(BaseModel):
    success: bool = True
    locked: int
