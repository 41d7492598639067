from __future__ import annotations

from tests._support.run_helpers import q
from trts_sim.config import RunConfig
from trts_sim.events import MICROTICKS_PER_TICK
from trts_sim.trace import TRACE_HEADER, format_trace_csv, run_with_trace


def test_one_entry_per_microtick():
    log = run_with_trace(RunConfig(ticks=2))
    assert len(log) == 2 * MICROTICKS_PER_TICK
    assert [(e.tick, e.microtick) for e in log[:3]] == [(1, 1), (1, 2), (1, 3)]
    assert log[0].phase == "E"


def test_trace_matches_the_stream():
    log = run_with_trace(RunConfig(ticks=1, koppa_seed=q("1/1"), multi_level_koppa=True))
    assert log[1].upsilon == q("3/3")
    assert log[1].koppa == q("36/9")
    assert log[1].koppa_history == (q("1/1"),)


def test_csv_rows_are_padded_to_four_slots():
    text = format_trace_csv(run_with_trace(RunConfig(ticks=1)))
    lines = text.splitlines()
    assert lines[0] == ",".join(TRACE_HEADER)
    assert len(lines) == 1 + MICROTICKS_PER_TICK
    assert all(len(line.split(",")) == len(TRACE_HEADER) for line in lines)
    # mt1 of a collapsed run: everything undefined, empty history.
    assert lines[1] == "1,1," + ",".join(["0"] * 14) + ",0"
