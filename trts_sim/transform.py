from __future__ import annotations

import logging

from trts_sim.config import RunConfig, TransformMode
from trts_sim.models import SimulationState
from trts_sim.patterns import count_primes
from trts_sim.rational import Rational

logger = logging.getLogger(__name__)


def _cross(num: Rational, den: Rational) -> Rational:
    # num / den as raw cross products: (a/b) / (c/d) -> (a*d) / (b*c)
    return Rational(num.num * den.den, num.den * den.num)


def transform_pair(upsilon: Rational, beta: Rational) -> tuple[Rational, Rational] | None:
    """(υ, β) -> (β/υ, υ/β), or None when either register is undefined."""
    if upsilon.is_zero() or beta.is_zero():
        return None
    return _cross(beta, upsilon), _cross(upsilon, beta)


def transform_triple(
        upsilon: Rational, beta: Rational, koppa: Rational
) -> tuple[Rational, Rational, Rational] | None:
    """(υ, β, κ) -> (β/κ, κ/υ, κ/β), or None when any register is undefined."""
    if upsilon.is_zero() or beta.is_zero() or koppa.is_zero():
        return None
    return _cross(beta, koppa), _cross(koppa, upsilon), _cross(koppa, beta)


def _strength(config: RunConfig, state: SimulationState) -> int:
    if not (config.psi_strength and state.rho_pending):
        return 1
    return max(count_primes(state.upsilon, state.beta, state.koppa), 1)


def _use_triple(config: RunConfig, state: SimulationState, strength: int, fire: int) -> bool:
    if config.triple_psi:
        return True
    if config.conditional_triple_psi and count_primes(state.upsilon, state.beta, state.koppa) >= 3:
        return True
    return strength >= 3 and fire >= strength - 3


def transform_step(config: RunConfig, state: SimulationState) -> bool:
    """
    Fire the ψ transform (possibly several times) if eligible.

    Eligible when ρ is pending or the mode fires on every memory step.
    Stops at the first failed fire; only a successful first fire clears
    the pending flag. Returns True if any fire succeeded.
    """
    state.psi_fired = False
    state.psi_triple = False
    state.psi_strength_applied = False

    if not (state.rho_pending or config.transform_mode == TransformMode.EVERY_MEMORY_STEP):
        return False

    strength = _strength(config, state)
    state.psi_strength_applied = strength > 1

    for fire in range(strength):
        if _use_triple(config, state, strength, fire):
            result3 = transform_triple(state.upsilon, state.beta, state.koppa)
            if result3 is None:
                logger.debug("triple transform failed at tick=%s fire=%s", state.tick, fire)
                break
            state.upsilon, state.beta, state.koppa = result3
            state.psi_triple = True
        else:
            result2 = transform_pair(state.upsilon, state.beta)
            if result2 is None:
                logger.debug("transform failed at tick=%s fire=%s", state.tick, fire)
                break
            state.upsilon, state.beta = result2

        if fire == 0:
            state.rho_pending = False
        state.psi_fired = True

    return state.psi_fired
