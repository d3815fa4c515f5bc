"""HTTP client for the performance API.

All responses go through ``normalize_records`` so callers always get a flat
list of dicts. Any transport or HTTP failure raises ``ApiError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from storedash.config import Settings, get_settings
from storedash.exceptions import ApiError
from storedash.normalize import normalize_records, normalize_stores

logger = logging.getLogger(__name__)

Params = List[Tuple[str, str]]

# guard against an upstream that keeps handing out the same "next" link
MAX_PAGES = 200


class PerformanceApiClient:
    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "x-api-key": self.settings.api_key or "",
                "Content-Type": "application/json",
            }
        )

    def _url(self, endpoint: str) -> str:
        return f"{self.settings.api_base}{endpoint}"

    def _get(self, endpoint: str, params: Optional[Params] = None, url: Optional[str] = None) -> Any:
        target = url or self._url(endpoint)
        try:
            resp = self.session.get(target, params=params, timeout=self.settings.request_timeout)
        except requests.RequestException as exc:
            raise ApiError(endpoint, str(exc)) from exc
        if resp.status_code != 200:
            raise ApiError(endpoint, resp.text[:300], status=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError(endpoint, "invalid JSON body", status=resp.status_code) from exc

    @staticmethod
    def _range_params(start: str, end: str, stores: Optional[Iterable[str]]) -> Params:
        params: Params = [("start_date", start), ("end_date", end)]
        for store in stores or []:
            params.append(("store", str(store)))
        return params

    def fetch_store_directory(self) -> List[Dict[str, Any]]:
        endpoint = "/store-info"
        payload = self._get(endpoint)
        rows = normalize_stores(payload)
        page = 1
        while isinstance(payload, dict) and page < MAX_PAGES:
            next_url = payload.get("next")
            total_pages = payload.get("total_pages")
            if isinstance(next_url, str) and next_url:
                payload = self._get(endpoint, url=next_url)
            elif isinstance(total_pages, int) and page < total_pages:
                payload = self._get(endpoint, params=[("page", str(page + 1))])
            else:
                break
            page += 1
            rows.extend(normalize_stores(payload))
        logger.info("store directory: %d stores (%d page(s))", len(rows), page)
        return rows

    def fetch_performance(self, start: str, end: str, stores: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        rows = normalize_records(self._get("/performance", self._range_params(start, end, stores)))
        logger.debug("performance %s..%s stores=%s: %d rows", start, end, list(stores or []), len(rows))
        return rows

    def fetch_snapshots(self, start: str, end: str, stores: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        rows = normalize_records(self._get("/snapshots", self._range_params(start, end, stores)))
        logger.debug("snapshots %s..%s stores=%s: %d rows", start, end, list(stores or []), len(rows))
        return rows
