from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from trts_sim.rational import Rational


class EngineMode(IntEnum):
    ADD = 0
    MULTI = 1
    SLIDE = 2
    DELTA_ADD = 3


class TrackMode(IntEnum):
    ADD = 0
    MULTI = 1
    SLIDE = 2


class TransformMode(IntEnum):
    """When the memory phase asks the transform to fire."""

    EVERY_MEMORY_STEP = 0
    PENDING_ONLY = 1
    MEMORY_STEP_OR_PENDING = 2
    INHIBIT_WHEN_PENDING = 3


class AccrualOp(IntEnum):
    RESET = 0
    REPLACE_WITH_EPSILON = 1
    ACCUMULATE = 2


class AccrualTrigger(IntEnum):
    ON_TRANSFORM = 0
    AFTER_TRANSFORM = 1
    EVERY_MEMORY_STEP = 2
    EVERY_MICROTICK = 3


class PatternTarget(IntEnum):
    BETA = 0
    NEW_UPSILON = 1


class Mt10Behavior(IntEnum):
    """What microtick 10 forces in addition to its normal engine step."""

    EMIT_ONLY = 0
    FORCE_PENDING = 1
    FORCE_ENGINE = 2
    FORCE_ACCRUAL = 3


class SignFlipMode(IntEnum):
    NONE = 0
    ALWAYS = 1
    ALTERNATE = 2


class RatioTriggerMode(IntEnum):
    NONE = 0
    GOLDEN = 1
    SQRT2 = 2
    PLASTIC = 3
    CUSTOM = 4


# Fields holding a mode enum, keyed by field name. Used by the loader and the CLI.
MODE_FIELDS: dict[str, type[IntEnum]] = {
    "engine_mode": EngineMode,
    "upsilon_track": TrackMode,
    "beta_track": TrackMode,
    "transform_mode": TransformMode,
    "accrual_op": AccrualOp,
    "accrual_trigger": AccrualTrigger,
    "pattern_target": PatternTarget,
    "mt10_behavior": Mt10Behavior,
    "sign_flip_mode": SignFlipMode,
    "ratio_trigger_mode": RatioTriggerMode,
}

RATIONAL_FIELDS: tuple[str, ...] = (
    "upsilon_seed",
    "beta_seed",
    "koppa_seed",
    "ratio_custom_lower",
    "ratio_custom_upper",
)


@dataclass(frozen=True)
class RunConfig:
    """
    Everything that selects behavior for one run.

    Frozen: a run never mutates its config. Build variants with
    dataclasses.replace().
    """

    ticks: int = 10

    # Engine
    engine_mode: EngineMode = EngineMode.ADD
    dual_track: bool = False
    upsilon_track: TrackMode = TrackMode.ADD
    beta_track: TrackMode = TrackMode.ADD
    asymmetric_cascade: bool = False
    stack_depth_modes: bool = False
    koppa_gated_engine: bool = False
    delta_cross_propagation: bool = False
    delta_koppa_offset: bool = False
    sign_flip: bool = False
    sign_flip_mode: SignFlipMode = SignFlipMode.NONE
    epsilon_phi_triangle: bool = False
    modular_wrap: bool = False
    koppa_wrap_threshold: int = 0
    modulus_bound: int = 0

    # Transform
    transform_mode: TransformMode = TransformMode.EVERY_MEMORY_STEP
    triple_psi: bool = False
    conditional_triple_psi: bool = False
    psi_strength: bool = False

    # Accrual
    accrual_op: AccrualOp = AccrualOp.ACCUMULATE
    accrual_trigger: AccrualTrigger = AccrualTrigger.EVERY_MEMORY_STEP
    multi_level_koppa: bool = False

    # Orchestration / evaluation
    pattern_target: PatternTarget = PatternTarget.BETA
    mt10_behavior: Mt10Behavior = Mt10Behavior.FORCE_PENDING
    twin_prime_trigger: bool = False
    fibonacci_trigger: bool = False
    perfect_power_trigger: bool = False
    ratio_trigger_mode: RatioTriggerMode = RatioTriggerMode.NONE
    ratio_custom_range: bool = False
    ratio_custom_lower: Rational = field(default_factory=Rational.zero)
    ratio_custom_upper: Rational = field(default_factory=Rational.zero)
    ratio_threshold_psi: bool = False

    # Seeds
    upsilon_seed: Rational = field(default_factory=lambda: Rational(1, 1))
    beta_seed: Rational = field(default_factory=lambda: Rational(1, 1))
    koppa_seed: Rational = field(default_factory=Rational.zero)


def bool_fields() -> tuple[str, ...]:
    """Names of every boolean toggle on RunConfig, in declaration order."""
    defaults = RunConfig()
    return tuple(
        name for name in RunConfig.__dataclass_fields__ if isinstance(getattr(defaults, name), bool)
    )
