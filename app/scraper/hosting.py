"""Minimal Apify REST client used when the scraper runs as a hosted actor.

Only the endpoints the pipeline needs are covered: key-value records (job
input, checkpoint, exported files), dataset items (one per record) and the
run status message. Network errors, 429 and 5xx responses are retried with
the shared retry policy; everything else raises ``PlatformError``.
"""
from __future__ import annotations

import json
import time
import urllib.parse
from typing import Any, Callable, Dict, Iterable, Optional

import requests

from . import config
from .errors import ErrorCode, PlatformError
from .logging_utils import _scraper_event
from .retry_policy import compute_backoff_seconds, decide_retry


class ApifyClient:
    def __init__(
        self,
        *,
        token: str = "",
        store_id: str = "",
        dataset_id: str = "",
        run_id: str = "",
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.token = token
        self.store_id = store_id
        self.dataset_id = dataset_id
        self.run_id = run_id
        self.base_url = (base_url or config.APIFY_API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.max_retries = max(1, max_retries if max_retries is not None else config.APIFY_MAX_RETRIES)
        self.timeout = timeout or config.APIFY_REQUEST_TIMEOUT_SECONDS
        self._sleep = sleep
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_env(cls) -> "ApifyClient":
        return cls(
            token=config.apify_token(),
            store_id=config.apify_store_id(),
            dataset_id=config.apify_dataset_id(),
            run_id=config.apify_run_id(),
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        allow_404: bool = False,
        **kwargs: Any,
    ) -> Optional[requests.Response]:
        url = f"{self.base_url}{path}"
        kwargs.setdefault("timeout", self.timeout)

        for attempt in range(1, self.max_retries + 1):
            status: Optional[int] = None
            try:
                response = self.session.request(method, url, **kwargs)
                status = response.status_code
                if status == 404 and allow_404:
                    return None
                if status >= 400:
                    raise PlatformError(
                        f"{method} {path} returned HTTP {status}",
                        http_status=status,
                        error_code=ErrorCode.PLATFORM_HTTP,
                    )
                return response
            except PlatformError as exc:
                error = exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                error = PlatformError(
                    f"{method} {path} failed: {exc}",
                    error_code=ErrorCode.PLATFORM_NETWORK,
                )

            should_retry = decide_retry(
                attempt,
                self.max_retries,
                error_code=error.error_code,
                http_status=error.http_status,
                operation=f"apify {method} {path}",
            )
            if not should_retry:
                raise error
            self._sleep(compute_backoff_seconds(attempt))

        raise PlatformError(f"{method} {path}: retries exhausted")

    def _record_path(self, key: str) -> str:
        return f"/v2/key-value-stores/{self.store_id}/records/{urllib.parse.quote(key, safe='')}"

    # ------------------------------------------------------------------
    # Key-value store
    # ------------------------------------------------------------------

    def get_record(self, key: str) -> Optional[bytes]:
        """Return the raw record body, or ``None`` when the key is absent."""

        if not self.store_id:
            return None
        response = self._request("GET", self._record_path(key), allow_404=True)
        if response is None:
            return None
        return response.content

    def get_json_record(self, key: str) -> Any:
        body = self.get_record(key)
        if not body:
            return None
        return json.loads(body.decode("utf-8"))

    def put_record(self, key: str, body: bytes | str, content_type: str) -> None:
        if not self.store_id:
            raise PlatformError("No default key-value store configured")
        data = body.encode("utf-8") if isinstance(body, str) else body
        self._request(
            "PUT",
            self._record_path(key),
            data=data,
            headers={"Content-Type": content_type},
        )
        _scraper_event("platform", phase="put_record", key=key, bytes=len(data))

    def record_url(self, key: str) -> str:
        """Public retrieval URL for *key*; empty without a store id."""

        if not self.store_id:
            return ""
        return f"{self.base_url}{self._record_path(key)}?disableRedirect=true"

    # ------------------------------------------------------------------
    # Dataset + run status
    # ------------------------------------------------------------------

    def push_items(self, items: Iterable[Dict[str, Any]]) -> None:
        if not self.dataset_id:
            raise PlatformError("No default dataset configured")
        self._request("POST", f"/v2/datasets/{self.dataset_id}/items", json=list(items))

    def set_status_message(self, message: str, *, terminal: bool = False) -> None:
        if not self.run_id:
            return
        self._request(
            "PUT",
            f"/v2/actor-runs/{self.run_id}",
            json={"statusMessage": message, "isStatusMessageTerminal": terminal},
        )


def get_client() -> Optional[ApifyClient]:
    """Return a platform client when hosted, otherwise ``None``."""

    if not config.is_hosted():
        return None
    return ApifyClient.from_env()


__all__ = ["ApifyClient", "get_client"]
