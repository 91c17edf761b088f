"""Commit, deploy and operational action protocol."""

from .driver import DeploymentDriver, build_action_definition
from .lookup import find_by_name, find_id_by_name

__all__ = [
    "DeploymentDriver",
    "build_action_definition",
    "find_by_name",
    "find_id_by_name",
]
