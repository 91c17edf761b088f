"""CloudOps Client - Python client for the cloud orchestration REST API."""

__version__ = "0.1.0"

from cloudops_client.core.config import Settings, load_settings
from cloudops_client.core.exceptions import CloudOpsClientError
from cloudops_client.deploy.driver import DeploymentDriver
from cloudops_client.transport.client import ResourceClient

__all__ = [
    "Settings",
    "load_settings",
    "CloudOpsClientError",
    "DeploymentDriver",
    "ResourceClient",
    "__version__",
]
