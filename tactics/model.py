from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

Position = Tuple[float, float]  # (x, y) battlefield units, y grows south

PLAYER_RANK = 1
ENEMY_RANK = 2
SCRIPT_PLAYER_ID = "$"  # player id of the scripted commander


class UnitClass(Enum):
    """Unit classification"""
    ASHIGARU = "ashigaru"
    SAMURAI = "samurai"
    CAVALRY = "cavalry"
    GENERAL = "general"


class Weapon(Enum):
    """Primary weapon of a unit archetype"""
    BOW = "bow"
    ARQUEBUS = "arq"
    YARI = "yari"
    NAGINATA = "nagi"
    KATANA = "kata"


@dataclass(frozen=True)
class UnitArchetype:
    """Template defining characteristics of a unit archetype"""
    key: str
    name: str
    unit_class: UnitClass
    weapon: Weapon
    max_range: float  # 0 = melee
    speed: float  # walking speed, units per second
    fighters: int


# Predefined unit archetypes
UNIT_TYPES: Dict[str, UnitArchetype] = {
    "ash_arq": UnitArchetype("ash_arq", "Ashigaru Arquebusiers", UnitClass.ASHIGARU, Weapon.ARQUEBUS, 110, 7.0, 80),
    "ash_bow": UnitArchetype("ash_bow", "Ashigaru Archers", UnitClass.ASHIGARU, Weapon.BOW, 150, 7.0, 80),
    "ash_kata": UnitArchetype("ash_kata", "Ashigaru Swordsmen", UnitClass.ASHIGARU, Weapon.KATANA, 0, 7.0, 80),
    "ash_nagi": UnitArchetype("ash_nagi", "Ashigaru Naginata", UnitClass.ASHIGARU, Weapon.NAGINATA, 0, 7.0, 80),
    "ash_yari": UnitArchetype("ash_yari", "Ashigaru Spearmen", UnitClass.ASHIGARU, Weapon.YARI, 0, 7.0, 80),
    "cav_bow": UnitArchetype("cav_bow", "Mounted Archers", UnitClass.CAVALRY, Weapon.BOW, 150, 14.0, 40),
    "cav_kata": UnitArchetype("cav_kata", "Mounted Swordsmen", UnitClass.CAVALRY, Weapon.KATANA, 0, 14.0, 40),
    "cav_nagi": UnitArchetype("cav_nagi", "Mounted Naginata", UnitClass.CAVALRY, Weapon.NAGINATA, 0, 14.0, 40),
    "cav_yari": UnitArchetype("cav_yari", "Mounted Spearmen", UnitClass.CAVALRY, Weapon.YARI, 0, 14.0, 40),
    "gen_kata": UnitArchetype("gen_kata", "General", UnitClass.GENERAL, Weapon.KATANA, 0, 14.0, 40),
    "sam_arq": UnitArchetype("sam_arq", "Samurai Arquebusiers", UnitClass.SAMURAI, Weapon.ARQUEBUS, 110, 7.0, 40),
    "sam_bow": UnitArchetype("sam_bow", "Samurai Archers", UnitClass.SAMURAI, Weapon.BOW, 150, 7.0, 40),
    "sam_kata": UnitArchetype("sam_kata", "Samurai Swordsmen", UnitClass.SAMURAI, Weapon.KATANA, 0, 7.0, 40),
    "sam_nagi": UnitArchetype("sam_nagi", "Samurai Naginata", UnitClass.SAMURAI, Weapon.NAGINATA, 0, 7.0, 40),
    "sam_yari": UnitArchetype("sam_yari", "Samurai Spearmen", UnitClass.SAMURAI, Weapon.YARI, 0, 7.0, 40),
}


@dataclass(frozen=True)
class Alliance:
    id: str
    position: int  # 1 = player, 2 = scripted enemy


@dataclass(frozen=True)
class Commander:
    id: str
    alliance: Alliance
    player_id: str


@dataclass(frozen=True)
class Placement:
    """Spawn point and bearing of a unit."""
    x: float
    y: float
    bearing: float

    @property
    def position(self) -> Position:
        return (self.x, self.y)


class ManeuverKind(Enum):
    """Tactical decision taken for a scripted unit"""
    ADVANCE = "advance"
    RETREAT = "retreat"
    HOLD = "hold"
    CHARGE = "charge"
    REGROUP = "regroup"


@dataclass(frozen=True)
class ManeuverCommand:
    unit_id: str
    kind: ManeuverKind
    path: Tuple[Position, ...]  # 0, 1 or 2 waypoints
    facing: float  # radians
    running: bool = False

    def to_fields(self) -> Dict[str, Any]:
        """Payload of the UpdateCommand mutation."""
        return {
            "unit_id": self.unit_id,
            "path": [list(p) for p in self.path],
            "facing": self.facing,
            "running": self.running,
        }


@dataclass
class BattleUnit:
    id: str
    alliance: Alliance
    archetype: UnitArchetype
    commander: Optional[Commander] = None
    center: Optional[Position] = None  # None until the unit has materialized
    placement: Optional[Placement] = None
    routed: bool = False
    max_range: Optional[float] = None  # None or 0 = melee
    fighters: int = 0
    deleted_by_gesture: bool = False
    can_not_rally: bool = False
    # last accepted command, maintained by the world
    path: List[Position] = field(default_factory=list)
    facing: float = 0.0
    running: bool = False

    @property
    def is_ranged(self) -> bool:
        return (self.max_range or 0) > 0

    @property
    def is_active(self) -> bool:
        """Eligible for tactical consideration this tick."""
        return not self.routed and self.center is not None


@dataclass
class TeamKills:
    alliance: Alliance
    kills: int = 0


@dataclass
class Event:
    kind: str
    ts_ms: int
    data: Dict
