"""
app/connectors/base.py

Shared HTTP mechanics for JSON backend clients.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from app.config import BackendAPISettings
from app.logging_utils import log_event

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class BackendRequestError(RuntimeError):
    """
    Raised when a backend call fails after retries or returns an unusable response.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BaseAPIClient:
    """
    JSON-over-HTTP client with bearer auth, timeouts and exponential backoff.
    """

    service_name = "backend"

    def __init__(
        self,
        *,
        settings: BackendAPISettings,
        session: requests.Session | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._base_url = settings.base_url.rstrip("/")
        self._api_token = settings.api_token
        self._timeout_seconds = settings.timeout_seconds
        self._max_retries = settings.max_retries
        self._backoff_initial_seconds = settings.backoff_initial_seconds
        self._backoff_multiplier = settings.backoff_multiplier

    def _request_json(
        self,
        *,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Execute an HTTP request and return parsed JSON with retry support.
        """

        response = self._request(method=method, path=path, json_body=json_body, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise BackendRequestError(
                f"{self.service_name}: response was not valid JSON.",
                status_code=response.status_code,
            ) from exc

    def _request(
        self,
        *,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"

        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    json=json_body,
                    params=params,
                    headers=headers,
                    timeout=self._timeout_seconds,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except requests.HTTPError as exc:
                last_error = exc
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Backend request failed service=%s status=%s url=%s error=%s",
                        self.service_name,
                        status_code,
                        url,
                        exc,
                    )
                    raise BackendRequestError(
                        f"{self.service_name}: request rejected with status {status_code}.",
                        status_code=status_code,
                    ) from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            log_event(
                logger,
                logging.WARNING,
                "backend_request_retry",
                service=self.service_name,
                attempt=attempt + 1,
                max_retries=self._max_retries,
                wait_seconds=round(backoff_seconds, 2),
                url=url,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Backend request exhausted retries service=%s url=%s error=%s",
            self.service_name,
            url,
            last_error,
        )
        raise BackendRequestError(f"{self.service_name}: request failed after retries.") from last_error
