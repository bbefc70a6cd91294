from typing import Tuple

from pydantic import BaseModel, Field


class ScenarioSettings(BaseModel):
    """Tunable scenario configuration."""
    command_interval_ms: int = Field(default=2000, gt=0)  # tactical tick
    outcome_interval_ms: int = Field(default=250, gt=0)  # score polling tick
    battlefield_center: Tuple[float, float] = (512.0, 512.0)
    staging_distance: float = Field(default=200.0, gt=0)  # wave spawn distance from player formation
    title: str = "practice"
    map: str = "Maps/Practice.png"
    local_player_id: str = "local"
