from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from ..exceptions import ReentrantCall


class ReentrancyGuard:
    """Busy flag blocking nested entry into guarded operations.

    Guarded operations hold the flag for their whole duration, including the
    external transfer, so a recipient calling back into any guarded operation
    is refused with :class:`ReentrantCall`.
    """

    def __init__(self) -> None:
        self._active: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self._active is not None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self._active is not None:
            raise ReentrantCall(operation, self._active)
        self._active = operation
        try:
            yield
        finally:
            self._active = None


__all__ = ["ReentrancyGuard"]
