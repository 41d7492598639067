from __future__ import annotations

from trts_sim.config import AccrualOp, AccrualTrigger, RunConfig
from trts_sim.models import NO_SAMPLE, SimulationState
from trts_sim.rational import Rational

# Microtick -> (history index sampled, minimum history size required).
SAMPLE_SLOTS: dict[int, tuple[int, int]] = {
    11: (0, 1),
    5: (2, 3),
}


def _triggered(
        config: RunConfig, state: SimulationState, *, psi_fired: bool, is_memory_step: bool
) -> bool:
    trigger = config.accrual_trigger
    if trigger == AccrualTrigger.ON_TRANSFORM:
        return psi_fired
    if trigger == AccrualTrigger.EVERY_MEMORY_STEP:
        return is_memory_step
    if trigger == AccrualTrigger.EVERY_MICROTICK:
        return True
    return is_memory_step and not psi_fired and state.koppa_after_psi_armed


def _apply_op(op: AccrualOp, koppa: Rational, epsilon: Rational) -> Rational:
    if op == AccrualOp.RESET:
        return Rational.zero()
    if op == AccrualOp.REPLACE_WITH_EPSILON:
        return epsilon
    return koppa + epsilon


def accrual_step(
        config: RunConfig,
        state: SimulationState,
        *,
        psi_fired: bool,
        is_memory_step: bool,
        microtick: int,
        force: bool = False,
) -> bool:
    """
    Update κ when the trigger condition holds, then refresh the sample.

    AFTER_TRANSFORM is armed by the first transform fire and stays armed:
    every later memory step without a fire of its own triggers, up to and
    excluding the next fire.

    Never fails; returns whether κ was updated.
    """
    triggered = force or _triggered(
        config, state, psi_fired=psi_fired, is_memory_step=is_memory_step
    )

    if psi_fired:
        state.koppa_after_psi_armed = True

    if triggered:
        if config.multi_level_koppa:
            state.push_koppa_history(state.koppa)
        koppa = _apply_op(config.accrual_op, state.koppa, state.epsilon)
        state.koppa = koppa + (state.upsilon + state.beta)

    state.koppa_sample = state.koppa
    state.koppa_sample_index = NO_SAMPLE
    if config.multi_level_koppa and microtick in SAMPLE_SLOTS:
        index, min_size = SAMPLE_SLOTS[microtick]
        if state.koppa_history_size >= min_size:
            state.koppa_sample = state.koppa_history[index]
            state.koppa_sample_index = index

    return triggered
