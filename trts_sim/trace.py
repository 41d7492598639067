from __future__ import annotations

import csv
import io
from dataclasses import dataclass

from trts_sim.config import RunConfig
from trts_sim.events import MicrotickRecord
from trts_sim.models import KOPPA_HISTORY_DEPTH
from trts_sim.rational import Rational
from trts_sim.simulate import run_stream

TRACE_HEADER: tuple[str, ...] = (
    "tick",
    "mt",
    "upsilon_num",
    "upsilon_den",
    "beta_num",
    "beta_den",
    "koppa_num",
    "koppa_den",
    *(f"koppa_stack{i}_{part}" for i in range(KOPPA_HISTORY_DEPTH) for part in ("num", "den")),
    "koppa_stack_size",
)


@dataclass(frozen=True)
class MicrotickTrace:
    tick: int
    microtick: int
    phase: str
    upsilon: Rational
    beta: Rational
    koppa: Rational
    koppa_history: tuple[Rational, ...]


def snapshot_microtick(record: MicrotickRecord) -> MicrotickTrace:
    """
    Reduce a record to the propagation essentials.

    This function does not modify simulation behavior.
    """
    s = record.state
    return MicrotickTrace(
        tick=record.tick,
        microtick=record.microtick,
        phase=record.phase.value,
        upsilon=s.upsilon,
        beta=s.beta,
        koppa=s.koppa,
        koppa_history=s.koppa_history,
    )


def run_with_trace(config: RunConfig) -> list[MicrotickTrace]:
    """
    Run config, returning one trace entry per microtick.

    Notes:
    - Uses simulate.run_stream() for behavior (same rules) + observability.
    - Adds observability only (no rule changes).
    """
    log: list[MicrotickTrace] = []
    run_stream(config, lambda record: log.append(snapshot_microtick(record)))
    return log


def format_trace_csv(log: list[MicrotickTrace]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(TRACE_HEADER)
    for entry in log:
        history = list(entry.koppa_history)
        history += [Rational.zero()] * (KOPPA_HISTORY_DEPTH - len(history))
        row: list[object] = [entry.tick, entry.microtick]
        for value in (entry.upsilon, entry.beta, entry.koppa, *history):
            row.extend((value.num, value.den))
        row.append(len(entry.koppa_history))
        writer.writerow(row)
    return buf.getvalue()
