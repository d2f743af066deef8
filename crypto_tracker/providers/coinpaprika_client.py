from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from crypto_tracker.providers.http_client import HTTPClient, HTTPClientConfig, HTTPClientError

logger = logging.getLogger(__name__)


class CoinPaprikaError(RuntimeError):
    """Raised when the CoinPaprika API returns an error or an unusable payload."""


@dataclass(frozen=True)
class CoinPaprikaClientConfig:
    """Configuration parameters for the API client."""

    base_url: str
    timeout: float
    max_retries: int = 3
    backoff_seconds: float = 0.5


class CoinPaprikaClient:
    """HTTP client for the CoinPaprika REST API built on the shared HTTP wrapper."""

    def __init__(self, config: CoinPaprikaClientConfig, client: Optional[HTTPClient] = None) -> None:
        self._config = config
        self._client = client or HTTPClient(
            HTTPClientConfig(
                base_url=config.base_url,
                timeout=config.timeout,
                max_retries=config.max_retries,
                backoff_seconds=config.backoff_seconds,
            )
        )

    def list_coins(self) -> list[dict[str, Any]]:
        payload = self._get("/v1/coins")
        if not isinstance(payload, list):
            raise CoinPaprikaError("Unexpected /v1/coins payload: expected a list")
        return payload

    def get_ticker(self, coin_id: str, cancel: threading.Event | None = None) -> dict[str, Any]:
        payload = self._get(f"/v1/tickers/{coin_id}", cancel=cancel)
        if not isinstance(payload, dict):
            raise CoinPaprikaError(f"Unexpected ticker payload for {coin_id}")
        if "error" in payload:
            raise CoinPaprikaError(f"CoinPaprika error payload: {payload['error']}")
        return payload

    def _get(self, path: str, *, cancel: threading.Event | None = None) -> Any:
        try:
            return self._client.get(path, cancel=cancel)
        except HTTPClientError as exc:
            raise CoinPaprikaError(str(exc)) from exc
