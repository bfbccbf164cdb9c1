from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, ReadTimeout, RequestException

from zupo.errors import MissingApiKeyError, ProviderError

log = logging.getLogger(__name__)


@dataclass
class HTTPClient:
    """JSON-over-HTTP client for Google Maps Platform endpoints.

    Timeouts and connection errors are retried with exponential backoff;
    everything else (HTTP status >= 300, oversized or non-JSON bodies) fails
    immediately with ProviderError.
    """

    api_key: str
    user_agent: str = "zupo/0.1.0"
    timeout_s: float = 10.0
    tries: int = 3
    backoff_s: float = 0.8
    max_response_bytes: int = 1_048_576

    def __post_init__(self) -> None:
        if not self.api_key:
            raise MissingApiKeyError()
        self.s = requests.Session()
        self.s.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json",
                "X-Goog-Api-Key": self.api_key,
            }
        )

    def post_json(
        self,
        url: str,
        body: Dict[str, Any],
        field_mask: str,
        timeout_s: Optional[float] = None,
    ) -> Any:
        return self._request("POST", url, field_mask, timeout_s, json=body)

    def get_json(
        self,
        url: str,
        field_mask: str,
        params: Optional[Dict[str, str]] = None,
        timeout_s: Optional[float] = None,
    ) -> Any:
        return self._request("GET", url, field_mask, timeout_s, params=params or None)

    def _request(
        self,
        method: str,
        url: str,
        field_mask: str,
        timeout_s: Optional[float],
        **kwargs: Any,
    ) -> Any:
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        headers = {"X-Goog-FieldMask": field_mask}
        send = self.s.post if method == "POST" else self.s.get
        last_err: Optional[Exception] = None
        for attempt in range(self.tries):
            try:
                r = send(url, headers=headers, timeout=timeout, **kwargs)
            except (ReadTimeout, ConnectionError) as e:
                last_err = e
                log.debug("%s %s attempt %d failed: %s", method, url, attempt + 1, e)
                time.sleep(self.backoff_s * (2**attempt))
                continue
            except RequestException as e:
                raise ProviderError(0, f"HTTP error: {e}") from e
            return self._handle_response(r)
        raise ProviderError(0, f"HTTP error: {last_err}" if last_err else f"HTTP {method} failed")

    def _handle_response(self, r: requests.Response) -> Any:
        status = r.status_code
        raw = r.content or b""
        if len(raw) > self.max_response_bytes:
            raise ProviderError(status, f"response too large: {len(raw)} bytes")

        if status < 200 or status >= 300:
            raise ProviderError(status, raw.decode("utf-8", errors="replace"))

        if not raw:
            return None

        try:
            return r.json()
        except ValueError as e:
            raise ProviderError(status, f"failed to parse JSON response: {e}") from e
