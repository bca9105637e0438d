import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol
from urllib.parse import urljoin

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceReading:
    """One answer from a price feed.

    Attributes
    ----------
    price : int
        Reference-currency price of one native unit at the feed's precision.
        May be zero or negative when the feed misbehaves; callers validate it.
    updated_at : int
        Epoch seconds of the feed's last update.
    """

    price: int
    updated_at: int


class PriceFeed(Protocol):
    def latest(self) -> PriceReading: ...


class StaticPriceFeed:
    """In-process feed holding a single reading; useful for tests and dev setups."""

    def __init__(self, price: int, updated_at: int):
        self._reading = PriceReading(price=price, updated_at=updated_at)

    def update(self, price: int, updated_at: int) -> None:
        self._reading = PriceReading(price=price, updated_at=updated_at)

    def latest(self) -> PriceReading:
        return self._reading


class HttpPriceFeed:
    """Read the latest price from a JSON HTTP endpoint.

    The endpoint answers ``GET <base_url>/<path>`` with an object carrying an
    integer ``price`` and an integer ``updated_at`` (epoch seconds). Numbers may
    be encoded as strings to survive JSON's float precision.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        path: str = "/latest",
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        url = base_url or os.getenv("PRICE_FEED_URL")
        if not url:
            raise ValueError("Environment variable 'PRICE_FEED_URL' is not set")

        self.base_url = url.rstrip("/")
        self.path = path
        self.timeout = timeout
        self.session = session or requests.Session()

    # -------- headers --------
    @property
    def headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json"}

    # -------- core request --------
    def _request(self, method: str, path: str, *, params: Optional[dict] = None) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=self.headers,
            params=params,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    def latest(self) -> PriceReading:
        payload = self._request("GET", self.path)
        if not isinstance(payload, dict):
            raise RuntimeError(f"Unexpected price feed response: {payload!r}")
        try:
            price = int(payload["price"])
            updated_at = int(payload["updated_at"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RuntimeError(f"Malformed price feed response: {exc}") from exc
        logger.debug(f"Price feed reading price={price} updated_at={updated_at}")
        return PriceReading(price=price, updated_at=updated_at)


__all__ = ["PriceReading", "PriceFeed", "StaticPriceFeed", "HttpPriceFeed"]
