from pydantic import BaseModel, Field

from outwit.services.point_tables import PlacementCategory


class CastawayUpdate(BaseModel):
    current_tribe: str | None = None
    is_active: bool | None = None
    boot_order: int | None = Field(default=None, gt=0)
    final_placement: PlacementCategory | None = None


class CastawayResponse(BaseModel):
    id: int
    name: str
    original_tribe: str | None
    current_tribe: str | None
    photo_url: str | None
    is_active: bool
    boot_order: int | None
    final_placement: PlacementCategory | None

    model_config = {"from_attributes": True}


class CastawayWithPoints(CastawayResponse):
    total_points: int = 0
