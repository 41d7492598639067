import pytest

from trts_sim.rational import Rational


def test_addition_never_reduces():
    """4/6 + 1/1 must be exactly 10/6, never 5/3."""
    result = Rational(4, 6) + Rational(1, 1)
    assert (result.num, result.den) == (10, 6)
    assert result != Rational(5, 3)


def test_zero_numerator_forces_zero_denominator():
    assert Rational(0, 5) == Rational(0, 0)
    assert Rational(0, 5).den == 0
    assert Rational.zero().is_zero()


def test_nonzero_over_zero_is_rejected():
    with pytest.raises(ValueError):
        Rational(3, 0)


def test_subtracting_equal_values_yields_undefined():
    assert Rational(1, 2) - Rational(1, 2) == Rational.zero()


def test_undefined_absorbs_addition_and_multiplication():
    x = Rational(7, 3)
    assert x + Rational.zero() == Rational.zero()
    assert x * Rational.zero() == Rational.zero()


def test_multiply_keeps_raw_products():
    assert Rational(2, 3) * Rational(3, 4) == Rational(6, 12)


def test_divide_by_undefined_is_undefined_and_leaves_operands_alone():
    a = Rational(5, 7)
    zero = Rational.zero()
    result = a / zero
    assert result.is_zero()
    assert a == Rational(5, 7)
    assert zero == Rational(0, 0)


def test_divide_uses_cross_products():
    assert Rational(2, 3) / Rational(4, 5) == Rational(10, 12)


def test_negate_abs_sign():
    assert -Rational(3, 4) == Rational(-3, 4)
    assert abs(Rational(-3, -4)) == Rational(3, 4)
    assert Rational(-3, -4).sign() == 1
    assert Rational(3, -4).sign() == -1
    assert Rational.zero().sign() == 0


@pytest.mark.parametrize(
    "a,b,expected",
    [
        (Rational(1, 2), Rational(2, 4), 0),
        (Rational(1, 3), Rational(1, 2), -1),
        (Rational(3, 2), Rational(17, 10), -1),
        (Rational(8, 5), Rational(3, 2), 1),
        (Rational(1, -2), Rational(1, 3), 1),
        (Rational(-1, -2), Rational(1, 3), -1),
        # Raw denominators keep their sign: -16 against -15.
        (Rational(-8, -5), Rational(3, 2), -1),
    ],
)
def test_compare_by_cross_multiplication(a, b, expected):
    assert a.compare(b) == expected


@pytest.mark.parametrize(
    "value,floor,ceil,nearest",
    [
        (Rational(7, 2), Rational(3, 1), Rational(4, 1), Rational(4, 1)),
        (Rational(-7, 2), Rational(-4, 1), Rational(-3, 1), Rational(-3, 1)),
        (Rational(7, -2), Rational(-4, 1), Rational(-3, 1), Rational(-3, 1)),
        (Rational(7, 3), Rational(2, 1), Rational(3, 1), Rational(2, 1)),
        (Rational(6, 3), Rational(2, 1), Rational(2, 1), Rational(2, 1)),
    ],
)
def test_integer_rounding(value, floor, ceil, nearest):
    assert value.floor() == floor
    assert value.ceil() == ceil
    assert value.nearest() == nearest


def test_floor_of_a_proper_fraction_is_undefined():
    """floor(1/3) = 0, and a zero result is the undefined value."""
    assert Rational(1, 3).floor() == Rational.zero()


def test_mod():
    assert Rational(7, 1).mod(Rational(2, 1)) == Rational(1, 1)
    assert Rational(61, 1).mod(Rational(2, 61)) == Rational(1, 61)
    assert Rational(7, 1).mod(Rational.zero()) == Rational(7, 1)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("6/4", Rational(6, 4)),
        (" -3 / 9 ", Rational(-3, 9)),
        ("0/7", Rational(0, 0)),
        ("0/0", Rational(0, 0)),
    ],
)
def test_parse_is_literal(text, expected):
    parsed = Rational.parse(text)
    assert parsed == expected
    assert (parsed.num, parsed.den) == (expected.num, expected.den)


@pytest.mark.parametrize("text", ["abc", "3", "3/0", "1.5/2", "", "1/2/3"])
def test_parse_rejects_malformed(text):
    with pytest.raises(ValueError):
        Rational.parse(text)


def test_str_and_float():
    assert str(Rational(10, 6)) == "10/6"
    assert Rational(3, 2).to_float() == 1.5
    assert Rational.zero().to_float() == 0.0
