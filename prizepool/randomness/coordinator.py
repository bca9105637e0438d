"""Randomness service interfaces and an in-process coordinator.

Requests are two-phase: ``request_random_words`` hands back a request id right
away, and the random words arrive later through the consumer's
``fulfill_random_words`` callback. Nothing bounds the delay between the two.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from ..config import RandomnessRequestParams
from ..exceptions import UnknownRandomnessRequest

logger = logging.getLogger(__name__)


class RandomnessConsumer(Protocol):
    def fulfill_random_words(self, request_id: int, random_words: Sequence[int]) -> None: ...


class RandomnessCoordinator(Protocol):
    def request_random_words(
        self, params: RandomnessRequestParams, consumer: RandomnessConsumer
    ) -> int: ...

    def cancel_request(self, request_id: int) -> None: ...


@dataclass
class PendingRequest:
    request_id: int
    params: RandomnessRequestParams
    consumer: RandomnessConsumer = field(repr=False)


class LocalRandomnessCoordinator:
    """Coordinator that queues requests until :meth:`fulfill` is called.

    Request ids are sequential starting at 1. Each request can be fulfilled at
    most once; unknown or repeated ids are rejected here, before reaching the
    consumer.
    """

    def __init__(self) -> None:
        self._next_request_id = 1
        self._pending: dict[int, PendingRequest] = {}

    @property
    def pending_request_ids(self) -> list[int]:
        return sorted(self._pending)

    def request_random_words(
        self, params: RandomnessRequestParams, consumer: RandomnessConsumer
    ) -> int:
        request_id = self._next_request_id
        self._next_request_id += 1
        self._pending[request_id] = PendingRequest(request_id, params, consumer)
        logger.debug(
            f"Queued randomness request {request_id} for {params.num_words} word(s)"
        )
        return request_id

    def cancel_request(self, request_id: int) -> None:
        """Drop a pending request without delivering words."""
        if self._pending.pop(request_id, None) is None:
            raise UnknownRandomnessRequest(request_id)
        logger.debug(f"Cancelled randomness request {request_id}")

    def fulfill(
        self, request_id: int, random_words: Optional[Sequence[int]] = None
    ) -> list[int]:
        """Deliver random words for ``request_id`` to its consumer.

        Parameters
        ----------
        request_id : int
            Identifier returned by :meth:`request_random_words`.
        random_words : Optional[Sequence[int]], default: None
            Words to deliver. When omitted, ``num_words`` fresh 256-bit words
            are drawn from :mod:`secrets`.

        Returns
        -------
        list[int]
            The delivered words.

        Raises
        ------
        UnknownRandomnessRequest
            If the request was never issued or is already fulfilled.
        """
        pending = self._pending.get(request_id)
        if pending is None:
            raise UnknownRandomnessRequest(request_id)

        if random_words is None:
            words = [secrets.randbits(256) for _ in range(pending.params.num_words)]
        else:
            words = [int(word) for word in random_words]
        if not words:
            raise ValueError("At least one random word is required")

        pending.consumer.fulfill_random_words(request_id, words)
        # Kept pending until the consumer accepts the words.
        del self._pending[request_id]
        logger.debug(f"Fulfilled randomness request {request_id}")
        return words


__all__ = [
    "RandomnessConsumer",
    "RandomnessCoordinator",
    "PendingRequest",
    "LocalRandomnessCoordinator",
]
