"""HTTP transport for the orchestration API."""

from .client import ApiResponse, ResourceClient

__all__ = ["ApiResponse", "ResourceClient"]
