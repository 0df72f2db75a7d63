"""StudentClient - talks to the student records REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger("student_records.client")

DEFAULT_BASE_URL = "http://127.0.0.1:3000/api/v1"


class StudentClientError(Exception):
    """Request failed or the API answered with an error envelope."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []


class StudentClient:
    """HTTP client for the student endpoints.

    Each method unwraps the response envelope and returns its ``data``.
    Connection failures are retried by the transport; error responses are
    raised as StudentClientError.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        retries: int = 2,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API root, e.g. "http://localhost:3000/api/v1"
            timeout: Per-request timeout in seconds
            retries: Connection retries per request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=httpx.HTTPTransport(retries=self.retries),
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> StudentClient:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and unwrap the envelope.

        Raises:
            StudentClientError: On transport failure or error response
        """
        logger.debug("%s %s", method, path)
        try:
            response = self.client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise StudentClientError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            if response.is_success:
                return body if body is not None else response.text
            raise StudentClientError(
                f"{method} {path} failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        if not response.is_success or not body.get("success", False):
            raise StudentClientError(
                body.get("message") or f"{method} {path} failed: {response.status_code}",
                status_code=response.status_code,
                errors=body.get("errors"),
            )
        return body.get("data")

    # --- Student endpoints ---

    def list_all(self, **filters: Any) -> list[dict[str, Any]]:
        """List students; keyword filters become query parameters."""
        result: list[dict[str, Any]] = self._request("GET", "/student/list", params=filters)
        return result

    def get(self, student_id: int) -> dict[str, Any]:
        result: dict[str, Any] = self._request("GET", f"/student/{student_id}")
        return result

    def get_by_code(self, student_code: str) -> dict[str, Any]:
        result: dict[str, Any] = self._request("GET", f"/student/code/{student_code}")
        return result

    def search(self, term: str) -> list[dict[str, Any]]:
        result: list[dict[str, Any]] = self._request("GET", "/student/search", params={"q": term})
        return result

    def paginated(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        sort_by: str = "firstName",
        sort_order: str = "asc",
    ) -> dict[str, Any]:
        """Get one page; returns {"data": [...], "pagination": {...}}."""
        params: dict[str, Any] = {
            "page": page,
            "limit": limit,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        }
        if search:
            params["search"] = search
        result: dict[str, Any] = self._request("GET", "/student/paginated", params=params)
        return result

    def count(self, **filters: Any) -> int:
        result = self._request("GET", "/student/count", params=filters)
        return int(result["count"])

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = self._request("POST", "/student/create", json=data)
        return result

    def bulk_create(self, rows: list[dict[str, Any]]) -> int:
        result = self._request("POST", "/student/bulk", json={"data": rows})
        return int(result["count"])

    def update(self, student_id: int, data: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = self._request("PUT", f"/student/{student_id}", json=data)
        return result

    def delete(self, student_id: int) -> dict[str, Any]:
        result: dict[str, Any] = self._request("DELETE", f"/student/{student_id}")
        return result

    def health(self) -> bool:
        """True when the service answers its liveness check."""
        try:
            return self._request("GET", "/health") == "Ok"
        except StudentClientError:
            return False
