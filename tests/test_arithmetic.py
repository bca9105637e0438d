import unittest

from prizepool.arithmetic import (
    UINT256_MAX,
    checked_add,
    checked_mul,
    checked_sub,
    mul_div,
    require_uint256,
)
from prizepool.exceptions import ArithmeticOverflow, InvariantViolation


class TestUint256Arithmetic(unittest.TestCase):
    def test_require_uint256_bounds(self):
        self.assertEqual(require_uint256(0), 0)
        self.assertEqual(require_uint256(UINT256_MAX), UINT256_MAX)
        with self.assertRaises(ArithmeticOverflow):
            require_uint256(-1)
        with self.assertRaises(ArithmeticOverflow):
            require_uint256(UINT256_MAX + 1)

    def test_require_uint256_rejects_non_ints(self):
        for bad in (True, 1.0, "1", None):
            with self.subTest(value=bad):
                with self.assertRaises(TypeError):
                    require_uint256(bad)

    def test_add_overflow(self):
        self.assertEqual(checked_add(UINT256_MAX - 1, 1), UINT256_MAX)
        with self.assertRaises(ArithmeticOverflow):
            checked_add(UINT256_MAX, 1)

    def test_sub_underflow(self):
        self.assertEqual(checked_sub(5, 5), 0)
        with self.assertRaises(ArithmeticOverflow):
            checked_sub(4, 5)

    def test_mul_overflow(self):
        self.assertEqual(checked_mul(2**128, 2**127), 2**255)
        with self.assertRaises(ArithmeticOverflow):
            checked_mul(2**128, 2**128)

    def test_mul_div_truncates(self):
        self.assertEqual(mul_div(10, 10**18, 3), 3333333333333333333)
        self.assertEqual(mul_div(600, 5 * 10**16, 10**18), 30)
        self.assertEqual(mul_div(19, 5 * 10**16, 10**18), 0)
        with self.assertRaises(ZeroDivisionError):
            mul_div(1, 1, 0)

    def test_overflow_is_an_invariant_violation(self):
        self.assertTrue(issubclass(ArithmeticOverflow, InvariantViolation))


if __name__ == "__main__":
    unittest.main()
