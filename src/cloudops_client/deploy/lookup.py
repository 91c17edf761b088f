"""Name to id resolution over listed configuration items."""

from typing import Iterable, TypeVar

import structlog

from cloudops_client.core.exceptions import NameNotFoundError
from cloudops_client.core.models import ConfigurationItem

logger = structlog.get_logger()

ItemT = TypeVar("ItemT", bound=ConfigurationItem)


def find_by_name(items: Iterable[ItemT], name: str, kind: str) -> ItemT:
    """Return the first item named ``name``, in listing order.

    Names are not guaranteed unique by the server; when several items share
    the name a warning is logged and the first one still wins.

    Raises:
        NameNotFoundError: If no item carries the name
    """
    matches = [item for item in items if item.ciName == name]
    if not matches:
        raise NameNotFoundError(f"Failed to get {kind} with the given name {name}")
    if len(matches) > 1:
        logger.warning(
            "Duplicate names found, using first match",
            kind=kind,
            name=name,
            ids=[item.ciId for item in matches],
        )
    return matches[0]


def find_id_by_name(items: Iterable[ItemT], name: str, kind: str) -> int:
    item = find_by_name(items, name, kind)
    if item.ciId is None:
        raise NameNotFoundError(f"Failed to get {kind} id for the given name {name}")
    return item.ciId
