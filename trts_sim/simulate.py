from __future__ import annotations

import logging
from pathlib import Path

from trts_sim.accrual import accrual_step
from trts_sim.config import Mt10Behavior, PatternTarget, RunConfig, TransformMode
from trts_sim.engine import engine_step
from trts_sim.event_sink import InMemoryObserver, ObserverLike, as_callback
from trts_sim.events import (
    FORCED_EMISSION_MICROTICK,
    MICROTICKS_PER_TICK,
    MicrotickRecord,
    Phase,
    phase_for,
)
from trts_sim.models import SimulationState
from trts_sim.patterns import (
    numerator_matches,
    ratio_in_window,
    ratio_is_extreme,
    value_matches,
)
from trts_sim.snapshots import StateView
from trts_sim.stream_io import CsvTableWriter
from trts_sim.transform import transform_step

logger = logging.getLogger(__name__)

# Allowed κ-history sizes for a transform when stack-depth modes are on.
STACK_GATE_SIZES = frozenset({2, 4})


def _raise_rho(state: SimulationState) -> bool:
    state.rho_pending = True
    state.rho_latched = True
    return True


def _transform_requested(config: RunConfig, state: SimulationState) -> bool:
    mode = config.transform_mode
    if mode == TransformMode.PENDING_ONLY:
        requested = state.rho_pending
    elif mode == TransformMode.INHIBIT_WHEN_PENDING:
        requested = not state.rho_pending
    else:
        requested = True

    # Ratio evaluation only decides; it never writes a register.
    if ratio_in_window(config, state.upsilon, state.beta):
        state.ratio_triggered = True
        requested = True
    if config.ratio_threshold_psi and ratio_is_extreme(state.upsilon, state.beta):
        state.ratio_threshold_triggered = True
        requested = True
    return requested


def _engine_phase(config: RunConfig, state: SimulationState, microtick: int) -> bool:
    rho_event = False
    state.epsilon = state.upsilon
    engine_step(config, state, microtick)

    if config.pattern_target == PatternTarget.NEW_UPSILON and numerator_matches(
            config, state.upsilon.num
    ):
        rho_event = _raise_rho(state)

    if microtick == FORCED_EMISSION_MICROTICK:
        behavior = config.mt10_behavior
        if behavior == Mt10Behavior.FORCE_PENDING:
            rho_event = _raise_rho(state)
        elif behavior == Mt10Behavior.FORCE_ENGINE:
            engine_step(config, state, microtick)
        elif behavior == Mt10Behavior.FORCE_ACCRUAL:
            accrual_step(
                config, state, psi_fired=False, is_memory_step=False, microtick=microtick, force=True
            )

    if state.koppa_sample_index < 0:
        state.koppa_sample = state.koppa
    return rho_event


def _memory_phase(config: RunConfig, state: SimulationState, microtick: int) -> tuple[bool, bool]:
    """Return (rho_event, mu_zero)."""
    rho_event = False
    mu_zero = state.beta.is_zero()

    if config.pattern_target == PatternTarget.BETA and value_matches(config, state.beta):
        rho_event = _raise_rho(state)

    allowed = (not config.stack_depth_modes) or state.koppa_history_size in STACK_GATE_SIZES
    requested = _transform_requested(config, state)

    fired = False
    if requested and allowed:
        fired = transform_step(config, state)

    accrual_step(config, state, psi_fired=fired, is_memory_step=True, microtick=microtick)
    state.rho_latched = False
    return rho_event, mu_zero


def _reset_phase(config: RunConfig, state: SimulationState, microtick: int) -> None:
    accrual_step(config, state, psi_fired=False, is_memory_step=False, microtick=microtick)
    state.psi_fired = False
    state.rho_latched = False


def run_microtick(config: RunConfig, state: SimulationState, microtick: int) -> MicrotickRecord:
    """Execute one microtick against state and describe what happened."""
    state.begin_microtick()
    phase = phase_for(microtick)
    rho_event = False
    mu_zero = False

    if phase == Phase.ENGINE:
        rho_event = _engine_phase(config, state, microtick)
    elif phase == Phase.MEMORY:
        rho_event, mu_zero = _memory_phase(config, state, microtick)
    else:
        _reset_phase(config, state, microtick)

    return MicrotickRecord(
        tick=state.tick,
        microtick=microtick,
        phase=phase,
        state=StateView.capture(state),
        rho_event=rho_event,
        psi_fired=state.psi_fired,
        mu_zero=mu_zero,
        forced_emission=microtick == FORCED_EMISSION_MICROTICK,
    )


def run_stream(config: RunConfig, observer: ObserverLike = None) -> SimulationState:
    """
    Run every tick of config, calling observer once per microtick.

    observer may be a MicrotickObserver, a plain callable, or None.
    Returns the final state (owned by the caller; nothing else refers to it).
    """
    callback = as_callback(observer)
    state = SimulationState.from_config(config)
    logger.info(
        "run start: ticks=%s engine=%s transform=%s accrual=%s",
        config.ticks,
        config.engine_mode.name,
        config.transform_mode.name,
        config.accrual_op.name,
    )

    for tick in range(1, config.ticks + 1):
        state.tick = tick
        for microtick in range(1, MICROTICKS_PER_TICK + 1):
            record = run_microtick(config, state, microtick)
            if callback is not None:
                callback(record)

    logger.info("run finished: upsilon=%s beta=%s koppa=%s", state.upsilon, state.beta, state.koppa)
    return state


def run_records(config: RunConfig) -> list[MicrotickRecord]:
    observer = InMemoryObserver()
    run_stream(config, observer)
    return observer.records


def simulate(config: RunConfig, out_dir: Path) -> tuple[Path, Path]:
    """Run config and write events.csv / values.csv into out_dir."""
    out_dir.mkdir(parents=True, exist_ok=True)
    events_path = out_dir / "events.csv"
    values_path = out_dir / "values.csv"
    with events_path.open("w", encoding="utf-8", newline="") as events_out, values_path.open(
            "w", encoding="utf-8", newline=""
    ) as values_out:
        run_stream(config, CsvTableWriter(events_out, values_out))
    return events_path, values_path
