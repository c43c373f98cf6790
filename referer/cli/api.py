"""Small HTTP client for the Referer API."""

import json
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .config import Config


class ApiError(Exception):
    """Raised when the API can't be reached or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RefererApi:
    """Thin wrapper over the endpoints the CLI needs."""

    def __init__(self, config: Config, timeout_seconds: float = 10.0):
        self.base_url = config.api_base_url.rstrip("/")
        self.user_id = config.user_id
        self.timeout_seconds = timeout_seconds

    def feed(self, youtube_id: str) -> dict[str, Any]:
        return self._request("GET", f"/feed/{quote(youtube_id, safe='')}")

    def export(self, video_id: str, export_format: str) -> dict[str, Any]:
        query = urlencode({"format": export_format})
        return self._request(
            "GET",
            f"/videos/{quote(video_id, safe='')}/export?{query}",
            authenticated=True,
        )

    def _request(self, method: str, path: str, authenticated: bool = False) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        if authenticated:
            if not self.user_id:
                raise ApiError("No user id configured. Run: referer config --user-id <id>")
            headers["X-Referer-User"] = self.user_id

        request = Request(f"{self.base_url}{path}", headers=headers, method=method)
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                body = response.read().decode("utf-8")
        except HTTPError as e:
            raise ApiError(_error_detail(e), status_code=e.code) from e
        except URLError as e:
            raise ApiError(f"Could not reach {self.base_url}: {e.reason}") from e
        except OSError as e:
            # Socket timeouts during read surface as TimeoutError, not URLError.
            raise ApiError(f"Request to {self.base_url} failed: {e}") from e

        try:
            payload = json.loads(body) if body else {}
        except ValueError as e:
            raise ApiError("API returned a response that is not JSON") from e
        if not isinstance(payload, dict):
            raise ApiError("Unexpected response from API")
        return payload


def _error_detail(error: HTTPError) -> str:
    try:
        payload = json.loads(error.read().decode("utf-8"))
    except (OSError, ValueError):
        return f"HTTP {error.code}"
    if isinstance(payload, dict) and isinstance(payload.get("detail"), str):
        return payload["detail"]
    return f"HTTP {error.code}"
