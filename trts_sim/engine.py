from __future__ import annotations

import logging

from trts_sim.config import EngineMode, RunConfig, SignFlipMode, TrackMode
from trts_sim.models import SimulationState
from trts_sim.rational import Rational

logger = logging.getLogger(__name__)

# Fixed (upsilon, beta) track overrides for the asymmetric cascade.
CASCADE_TABLE: dict[int, tuple[TrackMode, TrackMode]] = {
    1: (TrackMode.MULTI, TrackMode.ADD),
    4: (TrackMode.ADD, TrackMode.SLIDE),
    7: (TrackMode.SLIDE, TrackMode.MULTI),
    10: (TrackMode.ADD, TrackMode.ADD),
}

KOPPA_GATE_SLIDE_BELOW = 10
KOPPA_GATE_MULTI_BELOW = 100


def _base_tracks(config: RunConfig) -> tuple[TrackMode, TrackMode]:
    if config.dual_track:
        return config.upsilon_track, config.beta_track
    if config.engine_mode == EngineMode.DELTA_ADD:
        # Only reached when modulations are consulted; delta-add bypasses tracks.
        return TrackMode.ADD, TrackMode.ADD
    mode = TrackMode(int(config.engine_mode))
    return mode, mode


def _stack_depth_track(depth: int) -> TrackMode:
    if depth <= 1:
        return TrackMode.ADD
    if depth <= 3:
        return TrackMode.MULTI
    return TrackMode.SLIDE


def _koppa_gate_track(koppa: Rational) -> TrackMode:
    magnitude = abs(koppa.num)
    if magnitude < KOPPA_GATE_SLIDE_BELOW:
        return TrackMode.SLIDE
    if magnitude < KOPPA_GATE_MULTI_BELOW:
        return TrackMode.MULTI
    return TrackMode.ADD


def select_tracks(
        config: RunConfig, state: SimulationState, microtick: int
) -> tuple[TrackMode, TrackMode]:
    """
    Resolve the (upsilon, beta) track modes for this microtick.

    Overrides apply in order, each replacing the previous selection:
      1) asymmetric cascade (microticks 1, 4, 7, 10)
      2) κ-history depth
      3) |κ.num| gate
    """
    ups, beta = _base_tracks(config)
    if config.asymmetric_cascade and microtick in CASCADE_TABLE:
        ups, beta = CASCADE_TABLE[microtick]
    if config.stack_depth_modes:
        ups = beta = _stack_depth_track(state.koppa_history_size)
    if config.koppa_gated_engine:
        ups = beta = _koppa_gate_track(state.koppa)
    return ups, beta


def apply_track(
        mode: TrackMode, current: Rational, counterpart: Rational, koppa: Rational
) -> Rational | None:
    """Return the updated value, or None when SLIDE has nothing to divide by."""
    if mode == TrackMode.ADD:
        return current + counterpart + koppa
    if mode == TrackMode.MULTI:
        return current * (counterpart + koppa)
    if koppa.is_zero():
        return None
    total = current + counterpart
    if total.is_zero():
        return None
    return total / koppa


def _sign_flip(config: RunConfig, polarity: bool) -> tuple[bool, bool]:
    """Return (flip_now, new_polarity)."""
    if not config.sign_flip or config.sign_flip_mode == SignFlipMode.NONE:
        return False, False
    if config.sign_flip_mode == SignFlipMode.ALWAYS:
        return True, True
    flip_now = not polarity
    return flip_now, flip_now


def _ratio_or_zero(num: Rational, den: Rational) -> Rational:
    if den.is_zero():
        return Rational.zero()
    return num / den


def _wrap_numerator(value: Rational, bound: int) -> Rational:
    magnitude = abs(value.num) % bound
    if value.num < 0:
        magnitude = -magnitude
    if magnitude == 0:
        return Rational.zero()
    return Rational(magnitude, value.den)


def apply_modular_wrap(config: RunConfig, state: SimulationState) -> None:
    if not config.modular_wrap:
        return
    if config.koppa_wrap_threshold > 0 and abs(state.koppa.num) > config.koppa_wrap_threshold:
        state.koppa = state.koppa.mod(state.beta)
    if config.modulus_bound > 0:
        state.upsilon = _wrap_numerator(state.upsilon, config.modulus_bound)
        state.beta = _wrap_numerator(state.beta, config.modulus_bound)
        state.koppa = _wrap_numerator(state.koppa, config.modulus_bound)


def engine_step(config: RunConfig, state: SimulationState, microtick: int) -> bool:
    """
    Advance upsilon and beta by one engine update.

    All intermediate values are computed locally; the state is written only
    when every track succeeded. Returns False (state untouched apart from
    dual_engine_used) when a SLIDE track had an undefined divisor or sum.
    """
    ups_before = state.upsilon
    beta_before = state.beta
    koppa = state.koppa

    delta_ups = ups_before - state.previous_upsilon
    delta_beta = beta_before - state.previous_beta

    if config.engine_mode == EngineMode.DELTA_ADD and not config.dual_track:
        new_ups: Rational | None = ups_before + delta_ups
        new_beta: Rational | None = beta_before + delta_beta
    else:
        ups_mode, beta_mode = select_tracks(config, state, microtick)
        new_ups = apply_track(ups_mode, ups_before, beta_before, koppa)
        new_beta = apply_track(beta_mode, beta_before, ups_before, koppa)

    if new_ups is None or new_beta is None:
        logger.debug("engine step failed at tick=%s mt=%s", state.tick, microtick)
        state.dual_engine_used = False
        return False

    if config.delta_cross_propagation:
        new_ups = new_ups + delta_beta
        new_beta = new_beta + delta_ups
        if config.delta_koppa_offset:
            new_ups = new_ups + koppa
            new_beta = new_beta + koppa

    flip_now, polarity = _sign_flip(config, state.sign_flip_polarity)
    if flip_now:
        new_ups = -new_ups
        new_beta = -new_beta

    # Commit
    state.upsilon = new_ups
    state.beta = new_beta
    state.delta_upsilon = new_ups - ups_before
    state.delta_beta = new_beta - beta_before
    state.previous_upsilon = ups_before
    state.previous_beta = beta_before
    state.sign_flip_polarity = polarity
    state.dual_engine_used = config.dual_track

    if config.epsilon_phi_triangle:
        state.triangle_phi_over_epsilon = _ratio_or_zero(state.phi, state.epsilon)
        state.triangle_prev_over_phi = _ratio_or_zero(ups_before, state.phi)
        state.triangle_epsilon_over_prev = _ratio_or_zero(state.epsilon, ups_before)

    apply_modular_wrap(config, state)
    return True
