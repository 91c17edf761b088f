"""Request body builders for CMS resources."""

from typing import Any, Dict, Mapping, Optional


def build_resource_body(
    root: str,
    properties: Optional[Mapping[str, Any]] = None,
    attributes: Optional[Mapping[str, Any]] = None,
    owner_props: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Wrap a resource under its root key.

    Produces ``{root: {<properties>, "ciAttributes": {...}, "ciAttrProps": {"owner": {...}}}}``.
    Properties whose value is None are left out of the body.
    """
    resource: Dict[str, Any] = {}
    for key, value in (properties or {}).items():
        if value is not None:
            resource[key] = value
    if attributes:
        resource["ciAttributes"] = dict(attributes)
    if owner_props:
        resource["ciAttrProps"] = {"owner": dict(owner_props)}
    return {root: resource}
