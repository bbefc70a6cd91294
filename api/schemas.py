from typing import List, Optional, Tuple
from pydantic import BaseModel, Field

class StartRequest(BaseModel):
    """Scenario start request schema."""
    start_match: bool = True  # flag the match as started right away
    time_compression: float = Field(default=1.0, gt=0)
    player_ids: List[str] = Field(default_factory=lambda: ["local"])

class UnitOut(BaseModel):
    """Unit snapshot schema."""
    id: str
    alliance: str
    archetype: str
    center: Optional[Tuple[float, float]] = None
    routed: bool
    max_range: Optional[float] = None
    fighters: int
    path: List[Tuple[float, float]]
    facing: float
    running: bool

class StateResponse(BaseModel):
    """Scenario state response schema."""
    ts_ms: int
    started: bool
    wave_number: int
    player_alliance: Optional[str] = None
    enemy_alliance: Optional[str] = None
    units: dict[str, UnitOut]
    scores: dict[str, int]

class EventsResponse(BaseModel):
    """Events response schema."""
    next_offset: int
    events: list[dict]
