from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Literal, NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import math
import random

Condition = Literal["healthy", "weak", "dead"]
Rng = Callable[[], float]

HEALTHY: Condition = "healthy"
WEAK: Condition = "weak"
DEAD: Condition = "dead"
CONDITIONS = (HEALTHY, WEAK, DEAD)

WEAK_AFTER_DAYS = 3
DEAD_AFTER_DAYS = 7
GROWTH_BASE = 0.001
GROWTH_SPREAD = 0.002
TOUCH_REACTION_CHANCE = 0.1

INITIAL_LOG = "Resting quietly at the bottom of the river."
DEAD_LOG = "Only the quiet flow of the river remains."
FIRST_DAY_LOG = "Found a new home under the rocks."
WEAK_LOGS = (
    "Lying still among the pebbles.",
    "Time drifts by slowly.",
    "Listening to the sound of the river.",
)
HEALTHY_LOGS = (
    "Spending another calm day.",
    "Growing a little, slowly.",
    "Letting the current carry it along.",
    "Resting in the shade of a rock.",
    "Swimming between the waterweeds.",
)

RECORD_FIELDS = (
    "startDate",
    "lastVisitDate",
    "lastGrowthDate",
    "sizeFactor",
    "condition",
    "latestLog",
)


class SessionResult(NamedTuple):
    state: PetState
    log_refreshed: bool


@dataclass
class PetState:
    start_date: date
    last_visit_date: date
    last_growth_date: date
    size_factor: float
    condition: Condition
    latest_log: str

    def to_record(self) -> dict[str, Any]:
        return {
            "startDate": self.start_date.isoformat(),
            "lastVisitDate": self.last_visit_date.isoformat(),
            "lastGrowthDate": self.last_growth_date.isoformat(),
            "sizeFactor": self.size_factor,
            "condition": self.condition,
            "latestLog": self.latest_log,
        }

    @classmethod
    def from_record(cls, record: Any) -> PetState:
        """Build a state from its persisted record.

        Raises ValueError when the record is not a mapping, misses a field,
        or holds a value outside the persisted layout.
        """
        if not isinstance(record, dict):
            raise ValueError("pet record must be an object")
        missing = [field for field in RECORD_FIELDS if field not in record]
        if missing:
            raise ValueError(f"pet record is missing {', '.join(missing)}")
        condition = record["condition"]
        if condition not in CONDITIONS:
            raise ValueError(f"unknown condition {condition!r}")
        size_factor = record["sizeFactor"]
        if isinstance(size_factor, bool) or not isinstance(size_factor, (int, float)):
            raise ValueError("sizeFactor must be a number")
        if not math.isfinite(size_factor):
            raise ValueError("sizeFactor must be finite")
        if size_factor <= 0:
            raise ValueError("sizeFactor must be positive")
        latest_log = record["latestLog"]
        if not isinstance(latest_log, str):
            raise ValueError("latestLog must be a string")
        return cls(
            start_date=_parse_date(record["startDate"]),
            last_visit_date=_parse_date(record["lastVisitDate"]),
            last_growth_date=_parse_date(record["lastGrowthDate"]),
            size_factor=float(size_factor),
            condition=condition,
            latest_log=latest_log,
        )


def _parse_date(value: Any) -> date:
    if not isinstance(value, str):
        raise ValueError(f"expected a YYYY-MM-DD string, got {value!r}")
    if len(value) != 10 or value[4] != "-" or value[7] != "-":
        raise ValueError(f"expected a YYYY-MM-DD string, got {value!r}")
    return date.fromisoformat(value)


def today_in(tz_name: str | None = None) -> date:
    now = datetime.now(timezone.utc)
    if not tz_name:
        return now.date()
    try:
        return now.astimezone(ZoneInfo(tz_name)).date()
    except (ZoneInfoNotFoundError, ValueError):
        return now.date()


def create_initial_state(today: date) -> PetState:
    return PetState(
        start_date=today,
        last_visit_date=today,
        last_growth_date=today,
        size_factor=1.0,
        condition=HEALTHY,
        latest_log=INITIAL_LOG,
    )


def days_between(first: date, second: date) -> int:
    return abs((second - first).days)


def condition_for(days_since_visit: int) -> Condition:
    if days_since_visit >= DEAD_AFTER_DAYS:
        return DEAD
    if days_since_visit >= WEAK_AFTER_DAYS:
        return WEAK
    return HEALTHY


def condition_transform(state: PetState, today: date) -> PetState:
    days_since_visit = days_between(state.last_visit_date, today)
    return replace(
        state,
        condition=condition_for(days_since_visit),
        last_visit_date=today,
    )


def growth_transform(state: PetState, today: date, rng: Rng = random.random) -> PetState:
    if state.last_growth_date == today:
        return replace(state, last_growth_date=today)
    if state.condition != HEALTHY:
        return replace(state, last_growth_date=today)
    rate = 1.0 + GROWTH_BASE + rng() * GROWTH_SPREAD
    return replace(state, size_factor=state.size_factor * rate, last_growth_date=today)


def _pick(pool: tuple[str, ...], rng: Rng) -> str:
    index = min(int(rng() * len(pool)), len(pool) - 1)
    return pool[index]


def generate_log(state: PetState, rng: Rng = random.random) -> str:
    if state.condition == DEAD:
        return DEAD_LOG
    if state.condition == WEAK:
        return _pick(WEAK_LOGS, rng)
    if days_between(state.start_date, state.last_visit_date) == 0:
        return FIRST_DAY_LOG
    return _pick(HEALTHY_LOGS, rng)


def run_session(state: PetState, today: date, rng: Rng = random.random) -> SessionResult:
    """Run one activation pass: condition, then growth, then the daily log.

    The log is only replaced when the visit recorded by the condition pass
    is today's. The condition pass always records today, so every
    activation draws a fresh line, repeated ones on the same day included.
    """
    updated = condition_transform(state, today)
    updated = growth_transform(updated, today, rng)
    new_log = generate_log(updated, rng)
    if updated.last_visit_date != today:
        return SessionResult(updated, False)
    return SessionResult(replace(updated, latest_log=new_log), True)


def react_to_touch(state: PetState, rng: Rng = random.random) -> bool:
    if state.condition != HEALTHY:
        return False
    return rng() < TOUCH_REACTION_CHANCE


def display_size(state: PetState, base: float = 100.0) -> float:
    return state.size_factor * base


def display_opacity(state: PetState) -> float:
    return 0.5 if state.condition == WEAK else 1.0
