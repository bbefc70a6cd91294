from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass(frozen=True)
class MutationOutcome:
    ok: bool
    reason: Optional[str] = None


ACCEPTED = MutationOutcome(ok=True)


def rejected(reason: str) -> MutationOutcome:
    return MutationOutcome(ok=False, reason=reason)


@dataclass
class Team:
    id: str
    slots: List[str]  # player ids
    score: int = 0
    outcome: str = ""


@dataclass
class Match:
    """Match descriptor shared with the lobby."""
    teams: List[Team] = field(default_factory=list)
    started: bool = False


class World(Protocol):
    """Live entity store the scenario reads from and mutates."""

    def query(self, kind: str) -> List[Any]:
        """Current live entities of the given kind ("Unit", "TeamKills", ...)."""
        ...

    def create(self, kind: str, fields: Dict[str, Any]) -> Any:
        """Spawn a new entity and return its handle."""
        ...

    async def request_mutation(self, kind: str, fields: Dict[str, Any]) -> MutationOutcome:
        """Ask the world to apply a mutation. May be refused."""
        ...
