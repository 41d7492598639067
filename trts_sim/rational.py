from __future__ import annotations

import re
from dataclasses import dataclass

_RATIONAL_RE = re.compile(r"^\s*([+-]?\d+)\s*/\s*([+-]?\d+)\s*$")


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


@dataclass(frozen=True, slots=True)
class Rational:
    """
    Exact fraction over unbounded Python ints.

    Rules:
    - Never reduced. 4/6 stays 4/6; equality is on the raw (num, den) pair.
    - A zero numerator forces a zero denominator. 0/0 is the "undefined"
      value and propagates through +, -, * like any other value.
    - A nonzero numerator over a zero denominator cannot be constructed.

    Instances are immutable, so assigning one into another register or
    history slot can never alias later updates.
    """

    num: int
    den: int

    def __post_init__(self) -> None:
        if self.num == 0:
            object.__setattr__(self, "den", 0)
        elif self.den == 0:
            raise ValueError(f"nonzero numerator over zero denominator: {self.num}/0")

    @classmethod
    def zero(cls) -> Rational:
        return cls(0, 0)

    @classmethod
    def of(cls, value: int) -> Rational:
        return cls(value, 1)

    @classmethod
    def parse(cls, text: str) -> Rational:
        """Parse "N/D" literally (no reduction; "0/5" becomes 0/0)."""
        m = _RATIONAL_RE.match(text) if isinstance(text, str) else None
        if m is None:
            raise ValueError(f"expected 'numerator/denominator', got {text!r}")
        num, den = int(m.group(1)), int(m.group(2))
        if num != 0 and den == 0:
            raise ValueError(f"zero denominator with nonzero numerator: {text!r}")
        return cls(num, den)

    # ----------------------------
    # Arithmetic (unreduced products)
    # ----------------------------

    def __add__(self, other: Rational) -> Rational:
        return Rational(self.num * other.den + other.num * self.den, self.den * other.den)

    def __sub__(self, other: Rational) -> Rational:
        return Rational(self.num * other.den - other.num * self.den, self.den * other.den)

    def __mul__(self, other: Rational) -> Rational:
        return Rational(self.num * other.num, self.den * other.den)

    def __truediv__(self, other: Rational) -> Rational:
        # Division by an undefined value yields undefined; it never raises.
        if other.num == 0:
            return Rational.zero()
        return Rational(self.num * other.den, self.den * other.num)

    def __neg__(self) -> Rational:
        return Rational(-self.num, self.den)

    def __abs__(self) -> Rational:
        return Rational(abs(self.num), abs(self.den))

    # ----------------------------
    # Inspection
    # ----------------------------

    def is_zero(self) -> bool:
        return self.num == 0

    def sign(self) -> int:
        return _sign(self.num) * _sign(self.den)

    def compare(self, other: Rational) -> int:
        """
        Three-way compare of a/b against c/d as a*d against c*b.

        Literal cross-multiplication: raw negative denominators are not
        normalized first, so -8/-5 compares below 3/2.
        """
        return _sign(self.num * other.den - other.num * self.den)

    def floor(self) -> Rational:
        if self.num == 0:
            return self
        return Rational(self.num // self.den, 1)

    def ceil(self) -> Rational:
        if self.num == 0:
            return self
        return Rational(-((-self.num) // self.den), 1)

    def nearest(self) -> Rational:
        """Round half up: floor((2n + d) / 2d)."""
        if self.num == 0:
            return self
        return Rational((2 * self.num + self.den) // (2 * self.den), 1)

    def mod(self, other: Rational) -> Rational:
        """a - b * floor(a / b); a is returned unchanged when b is undefined."""
        if other.num == 0:
            return self
        return self - other * (self / other).floor()

    def to_float(self) -> float:
        if self.num == 0:
            return 0.0
        try:
            return self.num / self.den
        except OverflowError:
            return float("inf") if self.sign() > 0 else float("-inf")

    def __str__(self) -> str:
        return f"{self.num}/{self.den}"
