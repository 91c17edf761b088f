"""HTTP leaf shared by every resource class."""

import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx
import structlog
from prometheus_client import Counter, Histogram

from cloudops_client.core.config import Settings

logger = structlog.get_logger()

SUCCESS_STATUS_CODES = (200, 302)

REQUEST_COUNT = Counter(
    "cloudops_client_requests_total",
    "Total API requests issued by the client",
    ["method", "status"],
)

REQUEST_DURATION = Histogram(
    "cloudops_client_request_duration_seconds",
    "API request duration",
    ["method"],
)


@dataclass(frozen=True)
class ApiResponse:
    """Status and parsed body of one API call."""

    status_code: int
    status_line: str
    body: Any = None

    @property
    def ok(self) -> bool:
        return self.status_code in SUCCESS_STATUS_CODES


def _status_line(response: httpx.Response) -> str:
    return f"{response.http_version} {response.status_code} {response.reason_phrase}".strip()


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class ResourceClient:
    """Issues JSON requests against the orchestration API.

    Session and authentication setup belong to whoever builds the underlying
    ``httpx.Client``; pass one in through ``client`` to reuse it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        verify: bool = True,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        default_headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if headers:
            default_headers.update(headers)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            verify=verify,
            headers=default_headers,
            follow_redirects=False,
        )
        if not str(self._client.base_url):
            self._client.base_url = self.base_url

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.Client] = None) -> "ResourceClient":
        return cls(
            settings.base_url,
            timeout=settings.request_timeout_seconds,
            verify=settings.verify_ssl,
            headers={"User-Agent": settings.user_agent},
            client=client,
        )

    def call(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[ApiResponse]:
        """Send one request.

        Args:
            method: HTTP method
            path: Path relative to the base URL, starting with a slash
            body: JSON-serializable request body
            params: Query parameters; list values repeat the key

        Returns:
            ApiResponse, or None when no response came back (transport failure)
        """
        method = method.upper()
        start = time.perf_counter()
        try:
            response = self._client.request(method, path, json=body, params=params)
        except httpx.TransportError as e:
            REQUEST_COUNT.labels(method=method, status="error").inc()
            logger.warning("Request failed without response", method=method, path=path, error=str(e))
            return None
        finally:
            REQUEST_DURATION.labels(method=method).observe(time.perf_counter() - start)

        REQUEST_COUNT.labels(method=method, status=str(response.status_code)).inc()
        logger.debug("Request completed", method=method, path=path, status=response.status_code)
        return ApiResponse(
            status_code=response.status_code,
            status_line=_status_line(response),
            body=_parse_body(response),
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ResourceClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
