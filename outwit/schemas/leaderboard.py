from pydantic import BaseModel
from datetime import datetime


class LeaderboardEntry(BaseModel):
    rank: int
    is_tied: bool
    player_id: int
    display_name: str
    avatar_url: str | None = None
    trio_points: int
    icky_points: int
    prophecy_points: int
    total_points: int
    # Null until the commissioner reveals picks
    trio_castaways: list[int] | None = None
    icky_castaway: int | None = None


class LeaderboardResponse(BaseModel):
    picks_revealed: bool
    current_episode: int
    entries: list[LeaderboardEntry]


class TrioDetailItem(BaseModel):
    castaway_id: int
    castaway_name: str
    points_earned: int


class PlayerBreakdownResponse(BaseModel):
    player_id: int
    display_name: str
    trio_points: int
    icky_points: int
    prophecy_points: int
    total_points: int
    last_calculated_at: datetime | None
    trio_detail: list[TrioDetailItem]
    # question_id -> answer; null until picks are revealed
    prophecy_answers: dict[int, bool] | None = None
