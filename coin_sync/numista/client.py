from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter, Retry

from ..logging_setup import get_logger, with_extras
from ..matching.text import is_blank
from ..runtime_config import RUNTIME_CONFIG

logger = get_logger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


class NumistaError(RuntimeError):
    """A Numista call that returned an error, a non-2xx status, or a body that is not JSON."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.path = path


def make_session(
    api_key: str,
    *,
    max_retries: int,
    request_delay_ms: int,
    user_agent: str,
) -> requests.Session:
    # max_retries counts attempts, urllib3 counts retries after the first one
    retries = Retry(
        total=max(0, int(max_retries) - 1),
        backoff_factor=max(0, int(request_delay_ms)) / 1000.0,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=("GET",),
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    s = requests.Session()
    s.mount("https://", HTTPAdapter(max_retries=retries))
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.headers.update({
        "Accept": "application/json",
        "Numista-API-Key": api_key,
        "User-Agent": user_agent,
    })
    return s


class NumistaClient:
    def __init__(
        self,
        api_key: str,
        *,
        lang: str = "en",
        max_retries: int = 4,
        request_delay_ms: int = 250,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.lang = lang
        self.base_url = (base_url or RUNTIME_CONFIG.numista.base_url).rstrip("/")
        self.timeout = timeout or RUNTIME_CONFIG.numista.timeout_seconds
        self.session = session or make_session(
            api_key,
            max_retries=max_retries,
            request_delay_ms=request_delay_ms,
            user_agent=user_agent or RUNTIME_CONFIG.numista.user_agent,
        )

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = {k: str(v) for k, v in (params or {}).items() if not is_blank(v)}
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, params=query, timeout=self.timeout)
        except requests.RequestException as e:
            raise NumistaError(f"Numista request failed for {path}: {e}", path=path) from e

        with_extras(logger, path=path, status=resp.status_code).debug("Numista response")
        raw = resp.text
        body: Any = {}
        if raw:
            try:
                body = json.loads(raw)
            except ValueError as e:
                raise NumistaError(
                    f"Numista API returned invalid JSON for {path}", status_code=resp.status_code, path=path
                ) from e

        error_message = body.get("error_message") if isinstance(body, dict) else None
        if not resp.ok or error_message:
            details = error_message or resp.reason or "Unknown API error"
            raise NumistaError(
                f"Numista API request failed ({resp.status_code}): {details}",
                status_code=resp.status_code,
                path=path,
            )
        return body if isinstance(body, dict) else {}

    def get_type(self, type_id: int) -> Dict[str, Any]:
        return self._get(f"/types/{int(type_id)}", {"lang": self.lang})

    def search_types(
        self,
        *,
        q: Optional[str] = None,
        date: Optional[int] = None,
        year: Optional[int] = None,
        issuer: Optional[str] = None,
        count: int = 10,
        page: int = 1,
    ) -> List[Dict[str, Any]]:
        body = self._get(
            "/types",
            {
                "lang": self.lang,
                "q": q,
                "date": date,
                "year": year,
                "issuer": issuer,
                "count": count,
                "page": page,
            },
        )
        types = body.get("types")
        return [t for t in types if isinstance(t, dict)] if isinstance(types, list) else []
