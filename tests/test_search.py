from __future__ import annotations

import json
import math
import random
from pathlib import Path

import pytest

from tests._support.run_helpers import q
from trts_sim.config import RunConfig
from trts_sim.reporting import summarize_run
from trts_sim.search import (
    SearchOptions,
    describe,
    dump_candidate,
    evaluate,
    evolve,
    mutate,
    nudge_seed,
    randomize,
    score_summary,
    target_value,
)

TINY = SearchOptions(generations=2, population=3, elite=1, min_ticks=1, max_ticks=1)


def test_target_lookup():
    assert target_value("phi") == pytest.approx(1.6180339887)
    with pytest.raises(ValueError, match="unknown target"):
        target_value("tau")


def test_nudge_keeps_seeds_well_formed():
    rng = random.Random(3)
    for seed in (q("0/0"), q("1/1"), q("5/2")):
        for _ in range(20):
            value = nudge_seed(rng, seed)
            assert (value.num == 0) == (value.den == 0)
            assert value.den >= 0


def test_randomize_respects_tick_bounds():
    rng = random.Random(1)
    options = SearchOptions(min_ticks=2, max_ticks=4)
    for _ in range(10):
        config = randomize(rng, options)
        assert 2 <= config.ticks <= 4
        assert config.koppa_seed == q("1/1")


def test_mutate_returns_a_config():
    config = mutate(random.Random(0), randomize(random.Random(0), TINY))
    assert isinstance(config, RunConfig)
    assert config.ticks == 1


def test_score_of_a_collapsed_run():
    summary = summarize_run(RunConfig(ticks=1))
    # No defined ratio; only the single forced ρ contributes.
    assert score_summary(summary, target_value("rho")) == pytest.approx(0.05)


def test_oversized_candidate_scores_minus_infinity():
    candidate = evaluate(RunConfig(ticks=1, koppa_seed=q("1/1")), target_value("phi"), max_bits=8)
    assert candidate.score == -math.inf
    assert candidate.summary is None
    assert "abandoned" in describe(candidate)


def test_evolve_is_deterministic_and_monotone():
    first = evolve(TINY, random.Random(0))
    second = evolve(TINY, random.Random(0))

    assert first.best_scores == second.best_scores
    assert first.best.config == second.best.config
    assert len(first.best_scores) == TINY.generations + 1
    assert all(a <= b for a, b in zip(first.best_scores, first.best_scores[1:]))
    assert first.best.score == first.best_scores[-1]


def test_evolve_rejects_empty_population():
    with pytest.raises(ValueError):
        evolve(SearchOptions(population=0), random.Random(0))


def test_dump_candidate(tmp_path: Path):
    p = tmp_path / "best.json"
    dump_candidate(p, evaluate(RunConfig(ticks=1), target_value("rho")))
    payload = json.loads(p.read_text(encoding="utf-8"))
    assert payload["config"]["ticks"] == 1
    assert payload["psi_events"] == 0
    assert payload["score"] == pytest.approx(0.05)
