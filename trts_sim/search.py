from __future__ import annotations

import json
import logging
import math
import random
from dataclasses import dataclass, replace
from pathlib import Path

from trts_sim.config import (
    AccrualOp,
    AccrualTrigger,
    EngineMode,
    Mt10Behavior,
    PatternTarget,
    RunConfig,
    TransformMode,
)
from trts_sim.rational import Rational
from trts_sim.reporting import KNOWN_CONSTANTS, MagnitudeLimitExceeded, RunSummary, summarize_run
from trts_sim.stream_io import config_to_dict

logger = logging.getLogger(__name__)

BASELINE = RunConfig(
    ticks=30,
    koppa_seed=Rational(1, 1),
    accrual_trigger=AccrualTrigger.EVERY_MEMORY_STEP,
    pattern_target=PatternTarget.BETA,
    mt10_behavior=Mt10Behavior.FORCE_PENDING,
)


@dataclass(frozen=True)
class SearchOptions:
    generations: int = 10
    population: int = 8
    elite: int = 2
    target: str = "rho"
    min_ticks: int = 25
    max_ticks: int = 34
    # Candidates whose registers outgrow this are scored -inf.
    max_bits: int | None = 2048


@dataclass(frozen=True)
class Candidate:
    config: RunConfig
    score: float
    summary: RunSummary | None


@dataclass(frozen=True)
class SearchResult:
    best: Candidate
    best_scores: tuple[float, ...]


def target_value(name: str) -> float:
    for constant, value in KNOWN_CONSTANTS:
        if constant == name:
            return value
    raise ValueError(f"unknown target constant {name!r}")


def _seed(rng: random.Random) -> Rational:
    return Rational(rng.randint(1, 8), rng.randint(1, 8))


def randomize(rng: random.Random, options: SearchOptions, base: RunConfig = BASELINE) -> RunConfig:
    return replace(
        base,
        engine_mode=rng.choice(list(EngineMode)),
        transform_mode=rng.choice(list(TransformMode)),
        accrual_op=rng.choice(list(AccrualOp)),
        triple_psi=rng.random() < 0.5,
        multi_level_koppa=rng.random() < 0.5,
        ticks=rng.randint(options.min_ticks, options.max_ticks),
        upsilon_seed=_seed(rng),
        beta_seed=_seed(rng),
        koppa_seed=Rational(1, 1),
    )


def nudge_seed(rng: random.Random, value: Rational) -> Rational:
    """Move one component of a seed by one, keeping the denominator >= 1."""
    num = value.num
    den = value.den if value.den != 0 else 1
    choice = rng.randrange(4)
    if choice == 0:
        num += 1
    elif choice == 1:
        num -= 1
    elif choice == 2:
        if den > 1:
            den -= 1
    else:
        den += 1
    return Rational(num, den)


def mutate(rng: random.Random, config: RunConfig) -> RunConfig:
    for _ in range(rng.randint(1, 3)):
        choice = rng.randrange(6)
        if choice == 0:
            config = replace(config, engine_mode=rng.choice(list(EngineMode)))
        elif choice == 1:
            config = replace(config, transform_mode=rng.choice(list(TransformMode)))
        elif choice == 2:
            config = replace(config, accrual_op=rng.choice(list(AccrualOp)))
        elif choice == 3:
            config = replace(config, triple_psi=not config.triple_psi)
        elif choice == 4:
            config = replace(config, upsilon_seed=nudge_seed(rng, config.upsilon_seed))
        else:
            config = replace(config, beta_seed=nudge_seed(rng, config.beta_seed))
    return config


def score_summary(summary: RunSummary, target: float) -> float:
    score = 0.0
    if summary.ratio_defined:
        score -= abs(summary.final_ratio_snapshot - target)
    score += 0.1 * summary.psi_events
    score += 0.05 * summary.rho_events
    score -= 0.01 * summary.psi_spacing_stddev
    score -= 0.01 * summary.ratio_variance
    # NaN would make the population ordering arbitrary.
    return score if not math.isnan(score) else -math.inf


def evaluate(config: RunConfig, target: float, max_bits: int | None = None) -> Candidate:
    try:
        summary = summarize_run(config, max_bits=max_bits)
    except MagnitudeLimitExceeded as e:
        logger.debug("candidate abandoned: %s", e)
        return Candidate(config=config, score=-math.inf, summary=None)
    return Candidate(config=config, score=score_summary(summary, target), summary=summary)


def evolve(options: SearchOptions, rng: random.Random) -> SearchResult:
    """
    Hill-climb over configurations.

    Each generation scores every candidate, keeps the elite and refills the
    population with mutated copies of random elite members. All randomness
    comes from rng.
    """
    if options.population <= 0:
        raise ValueError("population must be positive")
    target = target_value(options.target)
    elite = max(1, min(options.elite, options.population))

    configs = [randomize(rng, options) for _ in range(options.population)]
    cache: dict[RunConfig, Candidate] = {}
    best_scores: list[float] = []
    ranked: list[Candidate] = []

    for generation in range(options.generations + 1):
        ranked = []
        for config in configs:
            if config not in cache:
                cache[config] = evaluate(config, target, options.max_bits)
            ranked.append(cache[config])
        ranked.sort(key=lambda c: c.score, reverse=True)
        best_scores.append(ranked[0].score)
        logger.info("generation %s: %s", generation, describe(ranked[0]))
        if generation == options.generations:
            break

        parents = [c.config for c in ranked[:elite]]
        configs = parents + [
            mutate(rng, rng.choice(parents)) for _ in range(options.population - elite)
        ]

    return SearchResult(best=ranked[0], best_scores=tuple(best_scores))


def describe(candidate: Candidate) -> str:
    s = candidate.summary
    if s is None:
        return f"score={candidate.score:.6f} (abandoned: magnitude limit)"
    return (
        f"score={candidate.score:.6f} ratio={s.final_ratio_text or '-'} "
        f"(~{s.final_ratio_snapshot:.10g}) psi={s.psi_events} rho={s.rho_events}"
    )


def dump_candidate(path: Path, candidate: Candidate) -> None:
    payload: dict[str, object] = {
        "score": candidate.score if math.isfinite(candidate.score) else None,
        "config": config_to_dict(candidate.config),
    }
    s = candidate.summary
    if s is not None:
        payload.update(
            final_ratio=s.final_ratio_text,
            final_ratio_snapshot=s.final_ratio_snapshot,
            psi_events=s.psi_events,
            rho_events=s.rho_events,
            mu_zero_events=s.mu_zero_events,
        )
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
