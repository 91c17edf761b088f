"""Shared plumbing for resource classes."""

from collections.abc import Sized
from typing import Any, Dict, List, Optional, Type

from cloudops_client.core.exceptions import MissingParameterError, RequestFailedError
from cloudops_client.core.models import ModelT, parse_records
from cloudops_client.transport.client import ApiResponse, ResourceClient

ASSEMBLY_URI = "/assemblies/"


def require(value: Any, message: str) -> None:
    """Reject None, empty strings and empty collections before any request is made."""
    if value is None:
        raise MissingParameterError(message)
    if isinstance(value, str) and not value.strip():
        raise MissingParameterError(message)
    if isinstance(value, Sized) and not isinstance(value, str) and len(value) == 0:
        raise MissingParameterError(message)


class Resource:
    """A family of endpoints reached through one ResourceClient."""

    def __init__(self, client: ResourceClient):
        self.client = client

    def _send(
        self,
        method: str,
        path: str,
        failure: str,
        *,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        """Send a request; raise only when no response came back."""
        response = self.client.call(method, path, body=body, params=params)
        if response is None:
            raise RequestFailedError(f"{failure} due to null response")
        return response

    def _request(
        self,
        method: str,
        path: str,
        failure: str,
        *,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        """Send a request and require a 200 or 302 answer.

        Args:
            failure: Message prefix naming the attempted operation, e.g.
                "Failed to get environment with name prod"
        """
        response = self._send(method, path, failure, body=body, params=params)
        if not response.ok:
            raise RequestFailedError(
                f"{failure} due to {response.status_line}",
                status_code=response.status_code,
                status_line=response.status_line,
            )
        return response

    def _list(
        self,
        model: Type[ModelT],
        path: str,
        failure: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[ModelT]:
        """GET a listing; anything but a JSON array in the body is a failure."""
        response = self._request("GET", path, failure, params=params)
        if not isinstance(response.body, list):
            raise RequestFailedError(
                f"{failure} due to unexpected response body of type {type(response.body).__name__}",
                status_code=response.status_code,
                status_line=response.status_line,
            )
        return parse_records(model, response.body)
