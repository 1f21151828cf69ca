"""Selectors: wait for the first of several inputs.

A selector lists the inputs a saga is ready to react to (named signals,
timers). ``SagaContext.select`` resolves it to exactly one of them and
returns a ``Selected`` value tagged with the arm that won.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pickup.host.execution import EntryKind, HistoryEntry


class ArmKind(Enum):
    SIGNAL = "signal"
    TIMER = "timer"


@dataclass(frozen=True)
class Timer:
    """Handle for a started timer. ``id`` is the sequence of its start entry."""

    id: int
    name: str
    fire_at: datetime


@dataclass(frozen=True)
class Arm:
    kind: ArmKind
    name: str
    timer_id: int | None = None

    @property
    def label(self) -> str:
        if self.kind is ArmKind.TIMER:
            return f"timer:{self.name}#{self.timer_id}"
        return f"signal:{self.name}"

    def matches(self, entry: HistoryEntry) -> bool:
        if self.kind is ArmKind.SIGNAL:
            return entry.kind is EntryKind.SIGNAL and entry.name == self.name
        return entry.kind is EntryKind.TIMER_FIRED and entry.payload["timer_id"] == self.timer_id


@dataclass(frozen=True)
class Selected:
    arm: Arm
    payload: Any
    sequence: int

    @property
    def is_timer(self) -> bool:
        return self.arm.kind is ArmKind.TIMER


@dataclass
class Selector:
    arms: list[Arm] = field(default_factory=list)

    def on_signal(self, name: str) -> "Selector":
        self.arms.append(Arm(kind=ArmKind.SIGNAL, name=name))
        return self

    def on_timer(self, timer: Timer) -> "Selector":
        self.arms.append(Arm(kind=ArmKind.TIMER, name=timer.name, timer_id=timer.id))
        return self

    @property
    def key(self) -> str:
        """Stable description recorded with each selection and checked on replay."""
        return "|".join(arm.label for arm in self.arms)

    def arm_for(self, entry: HistoryEntry) -> Arm | None:
        return next((arm for arm in self.arms if arm.matches(entry)), None)
