"""Custom column types shared by the ledger models."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.types import TypeDecorator

from ..arithmetic import require_uint256

UINT256_DIGITS = 78

# Surrogate keys: BigInteger, but plain Integer on SQLite so autoincrement works.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


class Uint256(TypeDecorator):
    """Unsigned 256-bit integer stored as a decimal string.

    Native integer columns top out at 64 bits, which is not enough for native
    unit amounts or random words. Values are range-checked on the way in.
    """

    impl = String(UINT256_DIGITS)
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect) -> Optional[str]:
        if value is None:
            return None
        return str(require_uint256(value))

    def process_result_value(self, value: Optional[str], dialect) -> Optional[int]:
        if value is None:
            return None
        return int(value)
