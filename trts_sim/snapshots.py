from __future__ import annotations

from dataclasses import dataclass

from trts_sim.models import SimulationState
from trts_sim.rational import Rational


@dataclass(frozen=True, slots=True)
class StateView:
    """
    By-value copy of a SimulationState handed to observers.

    Rationals are immutable, so a shallow copy of every slot (and a tuple
    for the history) is enough to keep later microticks from leaking in.
    """

    tick: int
    upsilon: Rational
    beta: Rational
    koppa: Rational
    epsilon: Rational
    phi: Rational
    previous_upsilon: Rational
    previous_beta: Rational
    delta_upsilon: Rational
    delta_beta: Rational
    triangle_phi_over_epsilon: Rational
    triangle_prev_over_phi: Rational
    triangle_epsilon_over_prev: Rational
    koppa_history: tuple[Rational, ...]
    koppa_sample: Rational
    koppa_sample_index: int
    rho_pending: bool
    psi_triple: bool
    psi_strength_applied: bool
    ratio_triggered: bool
    ratio_threshold_triggered: bool
    dual_engine_used: bool
    sign_flip_polarity: bool

    @property
    def koppa_history_size(self) -> int:
        return len(self.koppa_history)

    @classmethod
    def capture(cls, state: SimulationState) -> StateView:
        return cls(
            tick=state.tick,
            upsilon=state.upsilon,
            beta=state.beta,
            koppa=state.koppa,
            epsilon=state.epsilon,
            phi=state.phi,
            previous_upsilon=state.previous_upsilon,
            previous_beta=state.previous_beta,
            delta_upsilon=state.delta_upsilon,
            delta_beta=state.delta_beta,
            triangle_phi_over_epsilon=state.triangle_phi_over_epsilon,
            triangle_prev_over_phi=state.triangle_prev_over_phi,
            triangle_epsilon_over_prev=state.triangle_epsilon_over_prev,
            koppa_history=tuple(state.koppa_history),
            koppa_sample=state.koppa_sample,
            koppa_sample_index=state.koppa_sample_index,
            rho_pending=state.rho_pending,
            psi_triple=state.psi_triple,
            psi_strength_applied=state.psi_strength_applied,
            ratio_triggered=state.ratio_triggered,
            ratio_threshold_triggered=state.ratio_threshold_triggered,
            dual_engine_used=state.dual_engine_used,
            sign_flip_polarity=state.sign_flip_polarity,
        )
