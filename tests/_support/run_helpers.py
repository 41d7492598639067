# tests/_support/run_helpers.py
from __future__ import annotations

from typing import Iterator

from trts_sim.models import SimulationState
from trts_sim.rational import Rational
from trts_sim.snapshots import StateView


def q(text: str) -> Rational:
    """Shorthand: q("3/2") -> Rational(3, 2), literally."""
    return Rational.parse(text)


def make_state(**registers: object) -> SimulationState:
    """
    Build a SimulationState with the given registers.

    Rational registers may be passed as "N/D" strings. previous_upsilon and
    previous_beta default to the current values so deltas start undefined.
    """
    converted = {
        k: (q(v) if isinstance(v, str) else v) for k, v in registers.items()
    }
    state = SimulationState(**converted)
    if "previous_upsilon" not in registers:
        state.previous_upsilon = state.upsilon
    if "previous_beta" not in registers:
        state.previous_beta = state.beta
    return state


def view_rationals(view: StateView) -> Iterator[tuple[str, Rational]]:
    """Every rational slot of a view, history included, by name."""
    for name in (
        "upsilon",
        "beta",
        "koppa",
        "epsilon",
        "phi",
        "previous_upsilon",
        "previous_beta",
        "delta_upsilon",
        "delta_beta",
        "triangle_phi_over_epsilon",
        "triangle_prev_over_phi",
        "triangle_epsilon_over_prev",
        "koppa_sample",
    ):
        yield name, getattr(view, name)
    for i, value in enumerate(view.koppa_history):
        yield f"koppa_history[{i}]", value
