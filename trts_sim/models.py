from __future__ import annotations

from dataclasses import dataclass, field

from trts_sim.config import RunConfig
from trts_sim.rational import Rational

KOPPA_HISTORY_DEPTH = 4
# koppa_sample_index when the sample is the live κ rather than a history slot.
NO_SAMPLE = -1


def _zero() -> Rational:
    return Rational.zero()


@dataclass
class SimulationState:
    # Primary registers
    upsilon: Rational = field(default_factory=_zero)
    beta: Rational = field(default_factory=_zero)
    koppa: Rational = field(default_factory=_zero)

    # Supplementary
    epsilon: Rational = field(default_factory=_zero)
    phi: Rational = field(default_factory=_zero)

    # Values before the most recent successful engine step
    previous_upsilon: Rational = field(default_factory=_zero)
    previous_beta: Rational = field(default_factory=_zero)

    # Derived
    delta_upsilon: Rational = field(default_factory=_zero)
    delta_beta: Rational = field(default_factory=_zero)
    triangle_phi_over_epsilon: Rational = field(default_factory=_zero)
    triangle_prev_over_phi: Rational = field(default_factory=_zero)
    triangle_epsilon_over_prev: Rational = field(default_factory=_zero)

    # κ history (oldest first) and the value sampled for observation
    koppa_history: list[Rational] = field(default_factory=list)
    koppa_sample: Rational = field(default_factory=_zero)
    koppa_sample_index: int = NO_SAMPLE

    # Flags
    rho_pending: bool = False
    rho_latched: bool = False
    psi_fired: bool = False
    psi_triple: bool = False
    psi_strength_applied: bool = False
    ratio_triggered: bool = False
    ratio_threshold_triggered: bool = False
    dual_engine_used: bool = False
    sign_flip_polarity: bool = False
    koppa_after_psi_armed: bool = False

    tick: int = 0

    @classmethod
    def from_config(cls, config: RunConfig) -> SimulationState:
        return cls(
            upsilon=config.upsilon_seed,
            beta=config.beta_seed,
            koppa=config.koppa_seed,
            previous_upsilon=config.upsilon_seed,
            previous_beta=config.beta_seed,
            koppa_sample=config.koppa_seed,
        )

    @property
    def koppa_history_size(self) -> int:
        return len(self.koppa_history)

    def push_koppa_history(self, value: Rational) -> None:
        """Append to the bounded FIFO, evicting the oldest entry when full."""
        if len(self.koppa_history) >= KOPPA_HISTORY_DEPTH:
            del self.koppa_history[0]
        self.koppa_history.append(value)

    def begin_microtick(self) -> None:
        """Clear the flags that only describe a single microtick."""
        self.ratio_triggered = False
        self.ratio_threshold_triggered = False
        self.psi_fired = False
        self.psi_triple = False
        self.psi_strength_applied = False
        self.dual_engine_used = False
        self.koppa_sample = self.koppa
        self.koppa_sample_index = NO_SAMPLE

    def registers(self) -> dict[str, Rational]:
        """Every rational-valued slot by name, history excluded."""
        return {
            "upsilon": self.upsilon,
            "beta": self.beta,
            "koppa": self.koppa,
            "epsilon": self.epsilon,
            "phi": self.phi,
            "previous_upsilon": self.previous_upsilon,
            "previous_beta": self.previous_beta,
            "delta_upsilon": self.delta_upsilon,
            "delta_beta": self.delta_beta,
            "triangle_phi_over_epsilon": self.triangle_phi_over_epsilon,
            "triangle_prev_over_phi": self.triangle_prev_over_phi,
            "triangle_epsilon_over_prev": self.triangle_epsilon_over_prev,
            "koppa_sample": self.koppa_sample,
        }
