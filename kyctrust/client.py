"""HTTP client for the KYCtrust resource API.

The client plays the role of the browser's fetch layer: it calls the
resource endpoints, brackets each call with the store's loading flag,
records failures in the store's error field and keeps list results in the
store cache so repeated reads within the cache age skip the network.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import requests

from config.supabase_schema import singular_name
from kyctrust.state.app_state import DEFAULT_CACHE_MAX_AGE_MS, AppStateActions

logger = logging.getLogger(__name__)

RESOURCE_PATHS: Dict[str, str] = {
    "services": "/api/services",
    "orders": "/api/orders",
    "payment_methods": "/api/payment-methods",
    "site_settings": "/api/site-settings",
    "page_templates": "/api/page-templates",
    "themes": "/api/themes",
    "landing_customization": "/api/landing-customization",
}


def cache_key(resource: str, filters: Dict[str, Any] | None = None) -> str:
    """Return the store cache key for a (possibly filtered) list read."""
    if not filters:
        return resource
    return f"{resource}?{urlencode(sorted(filters.items()))}"


class KYCtrustClient:
    """Thin wrapper over the resource endpoints.

    Every operation returns a ``(data, error)`` tuple; ``error`` is a short
    message string and ``data`` is ``None`` (or ``[]`` for lists) on failure.
    """

    def __init__(
        self,
        *,
        base_url: str,
        session: Optional[requests.Session] = None,
        actions: Optional[AppStateActions] = None,
        api_key: Optional[str] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the client.

        Args:
            base_url: Site root, e.g. ``https://kyctrust.example``.
            session: Optional requests session, created when omitted.
            actions: Optional application state actions receiving loading,
                error and cache updates.
            api_key: Optional bearer token sent as ``Authorization``.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.actions = actions
        self.api_key = api_key
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _path(self, resource: str) -> str:
        try:
            return RESOURCE_PATHS[resource]
        except KeyError:
            raise ValueError(f"Unknown resource: {resource!r}") from None

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Tuple[Optional[Any], Optional[str]]:
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        if self.actions is not None:
            self.actions.set_loading(True)
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json() if response.content else None
            error = None
        except requests.HTTPError as exc:
            data, error = None, self._http_error_message(exc)
            logger.error("API request %s %s failed: %s", method, url, error)
        except requests.RequestException as exc:
            data, error = None, str(exc)
            logger.error("API request %s %s failed: %s", method, url, exc)
        finally:
            if self.actions is not None:
                self.actions.set_loading(False)

        if self.actions is not None and error is not None:
            self.actions.set_error(error)
        return data, error

    @staticmethod
    def _http_error_message(exc: requests.HTTPError) -> str:
        response = exc.response
        if response is None:
            return str(exc)
        try:
            payload = response.json()
        except ValueError:
            return response.text or str(exc)
        if isinstance(payload, dict):
            return str(payload.get("error") or payload.get("message") or payload)
        return str(payload)

    def _invalidate(self, resource: str) -> None:
        if self.actions is None:
            return
        keys = self.actions.store.get_field("cache_timestamps")
        self.actions.clear_cache_keys(
            key for key in keys if key == resource or key.startswith(f"{resource}?")
        )

    # ------------------------------------------------------------------
    # Resource operations
    # ------------------------------------------------------------------
    def list(
        self,
        resource: str,
        *,
        use_cache: bool = True,
        max_age: int = DEFAULT_CACHE_MAX_AGE_MS,
        **filters: Any,
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Return the rows of ``resource`` filtered by equality on ``filters``.

        Failed reads return an empty list alongside the error message.
        """
        path = self._path(resource)
        key = cache_key(resource, filters)
        if use_cache and self.actions is not None:
            cached = self.actions.get_cache(key, max_age)
            if cached is not None:
                return copy.deepcopy(cached), None

        data, error = self._request("GET", path, params=filters or None)
        if error:
            return [], error
        rows = (data or {}).get(resource) or []
        if self.actions is not None:
            self.actions.set_cache(key, copy.deepcopy(rows))
        return rows, None

    def create(
        self, resource: str, payload: Dict[str, Any]
    ) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        data, error = self._request("POST", self._path(resource), json_body=payload)
        if error:
            return None, error
        self._invalidate(resource)
        return (data or {}).get(singular_name(resource)), None

    def update(
        self, resource: str, row_id: Any, patch: Dict[str, Any]
    ) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        data, error = self._request(
            "PUT", self._path(resource), params={"id": row_id}, json_body=patch
        )
        if error:
            return None, error
        self._invalidate(resource)
        return (data or {}).get(singular_name(resource)), None

    def delete(self, resource: str, row_id: Any) -> Tuple[bool, Optional[str]]:
        _, error = self._request("DELETE", self._path(resource), params={"id": row_id})
        if error:
            return False, error
        self._invalidate(resource)
        return True, None


__all__ = ["KYCtrustClient", "RESOURCE_PATHS", "cache_key"]
