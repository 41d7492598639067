from __future__ import annotations

import math
from dataclasses import dataclass, field

from trts_sim.config import RunConfig
from trts_sim.event_sink import MicrotickObserver
from trts_sim.events import MICROTICKS_PER_TICK, MicrotickRecord
from trts_sim.models import KOPPA_HISTORY_DEPTH
from trts_sim.rational import Rational
from trts_sim.simulate import run_stream

KNOWN_CONSTANTS: tuple[tuple[str, float], ...] = (
    ("phi", 1.6180339887498948482),
    ("rho", 1.3247179572447458),
    ("delta_s", 1.465571231876768),
    ("tribonacci", 1.8392867552141611),
    ("plastic", 1.3247179572447458),
    ("sqrt2", 1.4142135623730951),
    ("silver", 2.414213562373095),
)

CONVERGENCE_DELTA = 1e-5
CLASSIFY_DELTA = 1e-4
DIVERGENT_RANGE = 1e6
DIVERGENT_MAGNITUDE = 10**9
FIXED_POINT_RANGE = 1e-9
FIXED_POINT_STEP = 1e-12
OSCILLATION_RANGE = 100.0


@dataclass
class _Welford:
    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, x: float) -> None:
        self.count += 1
        delta = x - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (x - self.mean)

    @property
    def variance(self) -> float:
        if self.count < 2:
            return 0.0
        return self.m2 / (self.count - 1)


@dataclass(frozen=True, slots=True)
class RunSummary:
    """
    Read-only statistics of one run.

    Floats here are analysis snapshots only; nothing flows back into a run.
    """

    final_ratio: Rational
    final_ratio_text: str
    ratio_defined: bool
    final_ratio_snapshot: float
    psi_events: int
    triple_psi_events: int
    rho_events: int
    mu_zero_events: int
    total_samples: int
    total_ticks: int
    stack_histogram: tuple[int, ...]
    average_stack_depth: float
    psi_spacing_mean: float
    psi_spacing_stddev: float
    ratio_mean: float
    ratio_variance: float
    ratio_stddev: float
    ratio_range: float
    closest_constant: str
    closest_delta: float
    convergence_tick: int | None
    pattern: str
    classification: str

    @property
    def stack_summary(self) -> str:
        parts = ",".join(f"{depth}:{n}" for depth, n in enumerate(self.stack_histogram))
        return f"avg={self.average_stack_depth:.2f} [{parts}]"


class MagnitudeLimitExceeded(RuntimeError):
    """Raised by SummaryObserver when a register outgrows max_bits."""


@dataclass
class SummaryObserver(MicrotickObserver):
    """
    Accumulates RunSummary statistics from the record stream.

    max_bits (optional) aborts the run once any upsilon/beta/koppa component
    exceeds that bit length; unreduced runs can otherwise grow without limit.
    """

    max_bits: int | None = None
    psi_events: int = 0
    triple_psi_events: int = 0
    rho_events: int = 0
    mu_zero_events: int = 0
    total_samples: int = 0
    last_tick: int = 0
    stack_histogram: list[int] = field(default_factory=lambda: [0] * (KOPPA_HISTORY_DEPTH + 1))

    final_ratio: Rational = field(default_factory=Rational.zero)
    ratio_defined: bool = False
    final_ratio_snapshot: float = 0.0

    _ratio: _Welford = field(default_factory=_Welford, init=False)
    _spacing: _Welford = field(default_factory=_Welford, init=False)
    _ratio_min: float = field(default=math.inf, init=False)
    _ratio_max: float = field(default=-math.inf, init=False)
    _previous_ratio: float | None = field(default=None, init=False)
    _max_step: float = field(default=0.0, init=False)
    _sign_changes: int = field(default=0, init=False)
    _last_psi_index: int | None = field(default=None, init=False)
    _best_delta: float = field(default=math.inf, init=False)
    _best_constant: str | None = field(default=None, init=False)
    _convergence_tick: int | None = field(default=None, init=False)
    _max_num: int = field(default=0, init=False)
    _max_den: int = field(default=0, init=False)

    def observe(self, record: MicrotickRecord) -> None:
        s = record.state
        if self.max_bits is not None:
            self._check_magnitude(record)
        self.last_tick = max(self.last_tick, record.tick)

        if record.psi_fired:
            self.psi_events += 1
            index = (record.tick - 1) * MICROTICKS_PER_TICK + record.microtick
            if self._last_psi_index is not None:
                self._spacing.add(float(index - self._last_psi_index))
            self._last_psi_index = index
        if s.psi_triple:
            self.triple_psi_events += 1
        if record.rho_event:
            self.rho_events += 1
        if record.mu_zero:
            self.mu_zero_events += 1

        depth = min(s.koppa_history_size, KOPPA_HISTORY_DEPTH)
        self.stack_histogram[depth] += 1
        self.total_samples += 1

        self._max_num = max(self._max_num, abs(s.upsilon.num), abs(s.beta.num))
        self._max_den = max(self._max_den, abs(s.upsilon.den), abs(s.beta.den))

        if not s.beta.is_zero():
            self._observe_ratio(record.tick, s.upsilon / s.beta)

    def _check_magnitude(self, record: MicrotickRecord) -> None:
        s = record.state
        for name, value in (("upsilon", s.upsilon), ("beta", s.beta), ("koppa", s.koppa)):
            bits = max(abs(value.num).bit_length(), abs(value.den).bit_length())
            if bits > self.max_bits:
                raise MagnitudeLimitExceeded(
                    f"{name} reached {bits} bits at tick={record.tick} mt={record.microtick}"
                )

    def _observe_ratio(self, tick: int, ratio: Rational) -> None:
        snapshot = ratio.to_float()
        self.ratio_defined = True
        self.final_ratio = ratio
        self.final_ratio_snapshot = snapshot

        self._ratio.add(snapshot)
        self._ratio_min = min(self._ratio_min, snapshot)
        self._ratio_max = max(self._ratio_max, snapshot)

        if self._previous_ratio is not None:
            self._max_step = max(self._max_step, abs(snapshot - self._previous_ratio))
            if (snapshot > 0.0 > self._previous_ratio) or (snapshot < 0.0 < self._previous_ratio):
                self._sign_changes += 1
        self._previous_ratio = snapshot

        for name, value in KNOWN_CONSTANTS:
            delta = abs(snapshot - value)
            if delta < self._best_delta:
                self._best_delta = delta
                self._best_constant = name
            if delta < CONVERGENCE_DELTA and self._convergence_tick is None:
                self._convergence_tick = tick

    def _classify(self, ratio_range: float) -> tuple[str, str]:
        if not self.ratio_defined:
            return "null", "Null"
        if (
                ratio_range > DIVERGENT_RANGE
                or self._max_num > DIVERGENT_MAGNITUDE
                or self._max_den > DIVERGENT_MAGNITUDE
        ):
            return "divergent", "Chaotic"
        if ratio_range < FIXED_POINT_RANGE and self._max_step < FIXED_POINT_STEP:
            return "fixed point", "FixedPoint"
        if ratio_range < OSCILLATION_RANGE and self._sign_changes > self._ratio.count // 3:
            return "oscillating", "Oscillating"
        if self._best_constant is not None and self._best_delta < CLASSIFY_DELTA:
            return "stable", f"Convergent({self._best_constant})"
        return "stable", "Stable"

    def summary(self) -> RunSummary:
        ratio_range = (self._ratio_max - self._ratio_min) if self._ratio.count else 0.0
        ratio_variance = self._ratio.variance
        pattern, classification = self._classify(ratio_range)
        average_depth = (
            sum(depth * n for depth, n in enumerate(self.stack_histogram)) / self.total_samples
            if self.total_samples
            else 0.0
        )
        return RunSummary(
            final_ratio=self.final_ratio,
            final_ratio_text=str(self.final_ratio) if self.ratio_defined else "",
            ratio_defined=self.ratio_defined,
            final_ratio_snapshot=self.final_ratio_snapshot,
            psi_events=self.psi_events,
            triple_psi_events=self.triple_psi_events,
            rho_events=self.rho_events,
            mu_zero_events=self.mu_zero_events,
            total_samples=self.total_samples,
            total_ticks=self.last_tick,
            stack_histogram=tuple(self.stack_histogram),
            average_stack_depth=average_depth,
            psi_spacing_mean=self._spacing.mean,
            psi_spacing_stddev=math.sqrt(self._spacing.variance),
            ratio_mean=self._ratio.mean,
            ratio_variance=ratio_variance,
            ratio_stddev=math.sqrt(ratio_variance),
            ratio_range=ratio_range,
            closest_constant=self._best_constant or "None",
            closest_delta=self._best_delta,
            convergence_tick=self._convergence_tick,
            pattern=pattern,
            classification=classification,
        )


def summarize_run(config: RunConfig, max_bits: int | None = None) -> RunSummary:
    """Run config once and return its statistics (see SummaryObserver for max_bits)."""
    observer = SummaryObserver(max_bits=max_bits)
    run_stream(config, observer)
    return observer.summary()


def summary_to_dict(summary: RunSummary) -> dict[str, object]:
    return {
        "final_ratio": summary.final_ratio_text,
        "ratio_defined": summary.ratio_defined,
        "final_ratio_snapshot": summary.final_ratio_snapshot,
        "psi_events": summary.psi_events,
        "triple_psi_events": summary.triple_psi_events,
        "rho_events": summary.rho_events,
        "mu_zero_events": summary.mu_zero_events,
        "total_samples": summary.total_samples,
        "total_ticks": summary.total_ticks,
        "stack_summary": summary.stack_summary,
        "psi_spacing_mean": summary.psi_spacing_mean,
        "psi_spacing_stddev": summary.psi_spacing_stddev,
        "ratio_mean": summary.ratio_mean,
        "ratio_variance": summary.ratio_variance,
        "ratio_stddev": summary.ratio_stddev,
        "ratio_range": summary.ratio_range,
        "closest_constant": summary.closest_constant,
        "closest_delta": summary.closest_delta if math.isfinite(summary.closest_delta) else None,
        "convergence_tick": summary.convergence_tick,
        "pattern": summary.pattern,
        "classification": summary.classification,
    }


def render_summary(summary: RunSummary) -> str:
    ratio = summary.final_ratio_text or "undefined"
    lines = [
        f"Final ratio: {ratio} (~{summary.final_ratio_snapshot:.12g})",
        f"Pattern: {summary.pattern} ({summary.classification})",
        f"Closest constant: {summary.closest_constant} (delta={summary.closest_delta:.3g})",
        f"Convergence tick: {summary.convergence_tick if summary.convergence_tick is not None else '-'}",
        f"Events: psi={summary.psi_events} triple={summary.triple_psi_events} "
        f"rho={summary.rho_events} mu_zero={summary.mu_zero_events}",
        f"Psi spacing: mean={summary.psi_spacing_mean:.3f} stddev={summary.psi_spacing_stddev:.3f}",
        f"Ratio: mean={summary.ratio_mean:.6g} stddev={summary.ratio_stddev:.6g} range={summary.ratio_range:.6g}",
        f"Stack: {summary.stack_summary}",
        f"Samples: {summary.total_samples} over {summary.total_ticks} ticks",
    ]
    return "\n".join(lines) + "\n"
