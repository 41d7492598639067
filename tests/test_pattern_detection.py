from __future__ import annotations

import pytest

from tests._support.run_helpers import q
from trts_sim.config import RatioTriggerMode, RunConfig
from trts_sim.patterns import (
    count_primes,
    is_fibonacci,
    is_perfect_power,
    is_prime,
    is_twin_prime,
    numerator_matches,
    ratio_in_window,
    ratio_is_extreme,
    value_matches,
)


@pytest.mark.parametrize("n,expected", [(2, True), (3, True), (97, True), (1, False), (0, False), (-7, True), (-9, False), (91, False)])
def test_is_prime(n: int, expected: bool):
    assert is_prime(n) is expected


def test_twin_prime():
    assert is_twin_prime(5)
    assert is_twin_prime(11)
    assert not is_twin_prime(23)
    assert not is_twin_prime(9)


@pytest.mark.parametrize("n", [0, 1, 2, 3, 5, 8, 13, 21, 144])
def test_fibonacci_members(n: int):
    assert is_fibonacci(n)


@pytest.mark.parametrize("n", [4, 6, 7, 22, -1])
def test_fibonacci_non_members(n: int):
    assert not is_fibonacci(n)


def test_perfect_power():
    assert all(is_perfect_power(n) for n in (8, 9, 16, 27))
    assert not any(is_perfect_power(n) for n in (1, 2, 6, 12))


def test_numerator_flags_widen_the_match():
    base = RunConfig()
    assert numerator_matches(base, 7)
    assert not numerator_matches(base, 8)
    assert numerator_matches(RunConfig(perfect_power_trigger=True), 8)
    assert numerator_matches(RunConfig(fibonacci_trigger=True), 8)


def test_value_matches_either_side():
    config = RunConfig()
    assert value_matches(config, q("4/7"))
    assert not value_matches(config, q("4/9"))
    assert value_matches(RunConfig(perfect_power_trigger=True), q("4/9"))
    assert not value_matches(config, q("0/0"))


def test_count_primes_uses_absolute_numerators():
    assert count_primes(q("3/4"), q("-5/2"), q("4/3")) == 2


def test_golden_window_is_strict():
    config = RunConfig(ratio_trigger_mode=RatioTriggerMode.GOLDEN)
    one = q("1/1")
    assert ratio_in_window(config, q("8/5"), one)
    assert not ratio_in_window(config, q("3/2"), one)
    assert not ratio_in_window(config, q("17/10"), one)
    assert not ratio_in_window(config, q("0/0"), one)


def test_no_window_when_mode_is_none():
    assert not ratio_in_window(RunConfig(), q("8/5"), q("1/1"))


def test_custom_window_needs_the_range_flag():
    bounds = dict(
        ratio_trigger_mode=RatioTriggerMode.CUSTOM,
        ratio_custom_lower=q("1/1"),
        ratio_custom_upper=q("2/1"),
    )
    assert not ratio_in_window(RunConfig(**bounds), q("3/1"), q("2/1"))
    assert ratio_in_window(RunConfig(ratio_custom_range=True, **bounds), q("3/1"), q("2/1"))


def test_extreme_ratio_bounds_are_exclusive():
    assert ratio_is_extreme(q("1/1"), q("3/1"))
    assert ratio_is_extreme(q("5/1"), q("2/1"))
    assert not ratio_is_extreme(q("2/1"), q("1/1"))
    assert not ratio_is_extreme(q("1/1"), q("2/1"))
    assert not ratio_is_extreme(q("0/0"), q("2/1"))


def test_negative_values_match_on_magnitude():
    config = RunConfig()
    assert value_matches(config, q("-3/1"))
    assert value_matches(config, q("4/-7"))
    assert is_twin_prime(-3)
    assert numerator_matches(RunConfig(perfect_power_trigger=True), -8)
    assert numerator_matches(RunConfig(fibonacci_trigger=True), -21)


def test_window_uses_raw_signs():
    """(-8/5) / (-1/1) is -8/-5, which compares below 3/2 (-16 against -15)."""
    config = RunConfig(ratio_trigger_mode=RatioTriggerMode.GOLDEN)
    assert not ratio_in_window(config, q("-8/5"), q("-1/1"))
