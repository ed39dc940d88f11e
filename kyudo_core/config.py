"""Static tournament configuration: rounds, squads, store locking."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .errors import InvalidInputError


@dataclass(frozen=True)
class RoundSpec:
    key: str
    label: str
    max_score: int

    @property
    def order_field(self) -> str:
        return f"order_{self.key}"

    @property
    def score_field(self) -> str:
        return f"score_{self.key}"

    @property
    def status_field(self) -> str:
        return f"status_{self.key}"


class RoundConfig:
    """Qualifying rounds in shooting sequence"""

    ROUNDS: Tuple[RoundSpec, ...] = (
        RoundSpec(key="am1", label="morning 1", max_score=2),
        RoundSpec(key="am2", label="morning 2", max_score=2),
        RoundSpec(key="pm1", label="afternoon 1", max_score=4),
    )

    BY_KEY: Dict[str, RoundSpec] = {spec.key: spec for spec in ROUNDS}

    @classmethod
    def keys(cls) -> Tuple[str, ...]:
        return tuple(spec.key for spec in cls.ROUNDS)

    @classmethod
    def get(cls, round_key: str) -> RoundSpec:
        spec = cls.BY_KEY.get(round_key) if isinstance(round_key, str) else None
        if spec is None:
            raise InvalidInputError(
                f"round must be one of {list(cls.BY_KEY)}, got {round_key!r}"
            )
        return spec


class SquadConfig:
    """Squad grouping defaults"""

    SQUAD_SIZE = 5
    # Squads alternate between the two shooting ranges by index parity
    VENUES: Tuple[str, str] = ("first range", "second range")


class LockConfig:
    """Store write serialization"""

    # Writes that cannot take the store lock within this window fail instead of hanging
    ACQUIRE_TIMEOUT_SEC = 5.0
