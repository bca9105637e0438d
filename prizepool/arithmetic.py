"""Checked unsigned 256-bit integer arithmetic.

Ledger amounts are plain Python integers, bounded explicitly so results match
fixed-width uint256 math bit for bit. Floats are never involved.
"""

from __future__ import annotations

from .exceptions import ArithmeticOverflow

UINT256_MAX = 2**256 - 1


def require_uint256(value: int, name: str = "value") -> int:
    """Return ``value`` if it is an int within ``[0, UINT256_MAX]``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflow(f"{name} {value} is outside the uint256 range")
    return value


def checked_add(a: int, b: int) -> int:
    result = require_uint256(a, "a") + require_uint256(b, "b")
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} + {b} overflows uint256")
    return result


def checked_sub(a: int, b: int) -> int:
    require_uint256(a, "a")
    require_uint256(b, "b")
    if b > a:
        raise ArithmeticOverflow(f"{a} - {b} underflows uint256")
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = require_uint256(a, "a") * require_uint256(b, "b")
    if result > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} * {b} overflows uint256")
    return result


def mul_div(a: int, b: int, denominator: int) -> int:
    """Return ``a * b // denominator``, truncating toward zero.

    The intermediate product is checked like a plain uint256 multiplication.
    """
    if require_uint256(denominator, "denominator") == 0:
        raise ZeroDivisionError("denominator must be non-zero")
    return checked_mul(a, b) // denominator


__all__ = [
    "UINT256_MAX",
    "require_uint256",
    "checked_add",
    "checked_sub",
    "checked_mul",
    "mul_div",
]
