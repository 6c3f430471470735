from pydantic import BaseModel, Field


class RecalculateRequest(BaseModel):
    # Null = full recompute; an id also snapshots totals under that episode
    episode_id: int | None = Field(default=None, gt=0)


class RecalculateResponse(BaseModel):
    success: bool = True
    players_updated: int
    trio_detail_rows: int
    rows_changed: int
    snapshot_episode_number: int | None = None
