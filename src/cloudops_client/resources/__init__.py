"""Endpoint families of the orchestration API."""

from .operation import Operation
from .procedures import Procedures
from .transition import Transition

__all__ = ["Operation", "Procedures", "Transition"]
