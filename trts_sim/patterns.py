from __future__ import annotations

from sympy import integer_nthroot, isprime, perfect_power

from trts_sim.config import RatioTriggerMode, RunConfig
from trts_sim.rational import Rational

# Open intervals (lower, upper) on upsilon/beta for the fixed ratio windows.
RATIO_WINDOWS: dict[RatioTriggerMode, tuple[Rational, Rational]] = {
    RatioTriggerMode.GOLDEN: (Rational(3, 2), Rational(17, 10)),
    RatioTriggerMode.SQRT2: (Rational(13, 10), Rational(3, 2)),
    RatioTriggerMode.PLASTIC: (Rational(6, 5), Rational(7, 5)),
}


def is_prime(n: int) -> bool:
    """Primality of |n|; 0, 1 and -1 are not prime."""
    magnitude = abs(n)
    return magnitude >= 2 and bool(isprime(magnitude))


def is_twin_prime(n: int) -> bool:
    # Signed neighbours: -3 pairs with -5 and -1.
    return is_prime(n) and (is_prime(n - 2) or is_prime(n + 2))


def _is_square(n: int) -> bool:
    if n < 0:
        return False
    _, exact = integer_nthroot(n, 2)
    return bool(exact)


def is_fibonacci(n: int) -> bool:
    """n >= 0 is Fibonacci iff 5n^2 + 4 or 5n^2 - 4 is a perfect square."""
    if n < 0:
        return False
    sq = 5 * n * n
    return _is_square(sq + 4) or _is_square(sq - 4)


def is_perfect_power(n: int) -> bool:
    """True for m**k with m > 1, k > 1."""
    if n <= 1:
        return False
    return perfect_power(n) is not False


def numerator_matches(config: RunConfig, num: int) -> bool:
    if is_prime(num):
        return True
    if config.twin_prime_trigger and is_twin_prime(num):
        return True
    if config.fibonacci_trigger and is_fibonacci(abs(num)):
        return True
    if config.perfect_power_trigger and is_perfect_power(abs(num)):
        return True
    return False


def denominator_matches(config: RunConfig, den: int) -> bool:
    if is_prime(den):
        return True
    if config.fibonacci_trigger and is_fibonacci(den):
        return True
    if config.perfect_power_trigger and is_perfect_power(den):
        return True
    return False


def value_matches(config: RunConfig, value: Rational) -> bool:
    return numerator_matches(config, value.num) or denominator_matches(config, value.den)


def count_primes(*values: Rational) -> int:
    """How many of the |numerators| are prime."""
    return sum(1 for v in values if is_prime(v.num))


def _window(config: RunConfig) -> tuple[Rational, Rational] | None:
    mode = config.ratio_trigger_mode
    if mode == RatioTriggerMode.CUSTOM:
        if not config.ratio_custom_range:
            return None
        return config.ratio_custom_lower, config.ratio_custom_upper
    return RATIO_WINDOWS.get(mode)


def ratio_in_window(config: RunConfig, upsilon: Rational, beta: Rational) -> bool:
    """Whether upsilon/beta lies strictly inside the configured ratio window."""
    window = _window(config)
    if window is None or upsilon.is_zero() or beta.is_zero():
        return False
    ratio = upsilon / beta
    lower, upper = window
    return ratio.compare(lower) > 0 and ratio.compare(upper) < 0


def ratio_is_extreme(upsilon: Rational, beta: Rational) -> bool:
    """|upsilon/beta| < 1/2 or > 2, decided on exact integers."""
    if upsilon.is_zero() or beta.is_zero():
        return False
    ratio = abs(upsilon / beta)
    num, den = ratio.num, ratio.den
    return 2 * num < den or num > 2 * den
