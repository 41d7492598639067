from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Union

from trts_sim.events import MicrotickRecord


class MicrotickObserver(ABC):
    """
    Consumer of per-microtick records.
    The orchestrator must be able to run with observer=None (no records).
    """

    @abstractmethod
    def observe(self, record: MicrotickRecord) -> None: ...


@dataclass
class InMemoryObserver(MicrotickObserver):
    """Simple observer for tests/demos: keeps every record in order."""

    records: list[MicrotickRecord] = field(default_factory=list)

    def observe(self, record: MicrotickRecord) -> None:
        self.records.append(record)

    def for_tick(self, tick: int) -> list[MicrotickRecord]:
        return [r for r in self.records if r.tick == tick]


ObserverLike = Union[MicrotickObserver, Callable[[MicrotickRecord], None], None]


def as_callback(observer: ObserverLike) -> Callable[[MicrotickRecord], None] | None:
    if observer is None:
        return None
    if isinstance(observer, MicrotickObserver):
        return observer.observe
    if callable(observer):
        return observer
    raise TypeError(f"observer must be a MicrotickObserver or callable, got {type(observer).__name__}")
