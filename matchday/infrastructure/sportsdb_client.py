from __future__ import annotations

import logging
import os
import random
import time
from typing import Any, Mapping, Optional, Protocol, cast

import requests

from matchday.config.settings import settings
from matchday.errors import (
    APIError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    ServiceUnavailableError,
)


class _HasHeaders(Protocol):
    headers: Mapping[str, str]


logger = logging.getLogger(__name__)
_TRUE_SET = {"1", "true", "yes", "on"}


def _env_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _TRUE_SET


_GLOBAL_LOG_RESPONSES = _env_flag(os.getenv("SPORTSDB_LOG_RESPONSES"))


class SportsDBClient:
    """Minimal TheSportsDB v1 JSON client with timeout, retries and error classification.

    Features:
    - API key embedded in the URL path (``{base_url}/{api_key}/{endpoint}``).
    - Up to ``max_attempts`` attempts with exponential backoff (capped) and jitter.
    - HTTP 429 raises :class:`RateLimitError` immediately; other 4xx raise :class:`APIError`.
    - 5xx, connection errors and timeouts are retried and, once attempts are
      exhausted, raised as the matching classified error.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
        backoff_cap: Optional[float] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        log_responses: bool | None = None,
    ) -> None:
        root = (base_url or settings.base_url).rstrip("/")
        self.base_url = f"{root}/{api_key or settings.api_key}"
        self.timeout = float(timeout if timeout is not None else settings.timeout)
        self.max_attempts = max(1, int(max_attempts or settings.max_attempts))
        self.backoff_base = float(
            backoff_base if backoff_base is not None else settings.backoff_base
        )
        self.backoff_cap = float(backoff_cap if backoff_cap is not None else settings.backoff_cap)
        self._log_responses = (
            _GLOBAL_LOG_RESPONSES if log_responses is None else bool(log_responses)
        )

        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if headers:
            self._session.headers.update(dict(headers))

    def _full_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Perform a GET request and return decoded JSON.

        Raises a subclass of :class:`APIError` on terminal or exhausted failures.
        """

        url = self._full_url(path)
        norm_params = self._normalize_params(params)
        last_error: Optional[APIError] = None

        for attempt in range(self.max_attempts):
            response: Optional[requests.Response] = None
            try:
                response = self._session.request(
                    method="GET", url=url, params=norm_params, timeout=self.timeout
                )
            except requests.Timeout as exc:
                last_error = RequestTimeoutError(f"Request to {path} timed out: {exc}")
            except requests.ConnectionError as exc:
                last_error = NetworkError(f"Network error while contacting TheSportsDB: {exc}")
            else:
                self._log_http_response(url, norm_params, response)
                status = int(response.status_code)

                if 200 <= status < 300:
                    return self._decode(path, response)

                if status == 429:
                    raise RateLimitError(
                        f"TheSportsDB rate limit hit for {path}: {response.text[:200]}",
                        status_code=status,
                    )

                if 500 <= status < 600:
                    last_error = ServiceUnavailableError(
                        f"TheSportsDB request failed: {status} {response.text[:200]}",
                        status_code=status,
                    )
                else:
                    # Non-retriable client error
                    raise APIError(
                        f"TheSportsDB request failed: {status} {response.text[:200]}",
                        status_code=status,
                    )

            if attempt + 1 >= self.max_attempts:
                break
            retry_after = self._compute_sleep_seconds(attempt, response)
            logger.warning(
                "SportsDBClient GET %s failed (%s). Retrying in %.2fs (attempt %d/%d)",
                url,
                type(last_error).__name__,
                retry_after,
                attempt + 1,
                self.max_attempts,
            )
            time.sleep(retry_after)

        assert last_error is not None
        raise type(last_error)(
            f"Request failed after {self.max_attempts} attempts: {last_error}",
            status_code=last_error.status_code,
        )

    def _decode(self, path: str, response: requests.Response) -> Any:
        if not response.text or not response.text.strip():
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise APIError(f"Invalid JSON from TheSportsDB for {path}: {exc}") from exc
        if isinstance(payload, Mapping) and payload.get("error"):
            raise APIError(str(payload.get("error")))
        return payload

    def _compute_sleep_seconds(
        self, attempt: int, response: Optional[_HasHeaders] = None
    ) -> float:
        """Compute sleep duration before the next attempt.

        - Respect a valid Retry-After header, bounded by ``backoff_cap``.
        - Otherwise exponential backoff: backoff_base * (2**attempt) + jitter, capped.
        """
        if response is not None:
            headers = cast(Mapping[str, str], response.headers)
            ra = headers.get("Retry-After")
            if ra:
                try:
                    return min(self.backoff_cap, max(0.0, float(int(ra))))
                except (TypeError, ValueError):
                    pass

        base: float = float(self.backoff_base) * float(2**attempt)
        jitter: float = float(random.uniform(0.0, 0.1))
        return float(min(self.backoff_cap, base + jitter))

    def _normalize_params(self, params: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
        if params is None:
            return None
        out: dict[str, Any] = {}
        for k, v in params.items():
            if v is None:
                continue
            out[str(k)] = v if isinstance(v, str) else str(v)
        return out

    def _log_http_response(
        self,
        url: str,
        params: Optional[Mapping[str, Any]],
        resp: requests.Response,
    ) -> None:
        if not self._log_responses:
            return
        try:
            body = resp.text[:2000]
        except Exception as exc:
            body = f"<unable to read body: {exc}>"
        logger.debug(
            "API response",
            extra={
                "url": url,
                "status": resp.status_code,
                "params": dict(params or {}),
                "body": body,
            },
        )
