"""Routing-policy (prefix filter) list operations against the provisioning API.

Payload shape shared by create, update and get::

    {"id": <int>, "description": "<name>", "addressFamily": "IPv4",
     "entries": [{"action": "permit", "prefix": "10.0.0.0/8", "ge": 8, "le": 24}]}
"""

from __future__ import annotations

import logging
from typing import Any

from vxcsync.client.errors import RemoteParseError
from vxcsync.client.session import ApiSession
from vxcsync.model.prefix_list import PrefixListEntry, RoutingPolicyList
from vxcsync.utils.normalize import fill_entry_bounds
from vxcsync.vendor.endpoints import PREFIX_LIST, PREFIX_LIST_CREATE, PREFIX_LISTS

logger = logging.getLogger(__name__)


def list_prefix_lists(session: ApiSession, router_uid: str) -> list[RoutingPolicyList]:
    """Return list summaries (no entries) for router *router_uid*."""
    data = session.get(PREFIX_LISTS.format(uid=router_uid)) or []
    if not isinstance(data, list):
        raise RemoteParseError(f"Expected a JSON array of prefix lists, got {data!r}")
    return [prefix_list_from_wire(item) for item in data]


def get_prefix_list(session: ApiSession, router_uid: str, list_id: int) -> RoutingPolicyList:
    """Return list *list_id* with its entries."""
    data = session.get(PREFIX_LIST.format(uid=router_uid, list_id=list_id))
    return prefix_list_from_wire(data)


def create_prefix_list(
    session: ApiSession, router_uid: str, prefix_list: RoutingPolicyList
) -> RoutingPolicyList:
    """Create *prefix_list* on the router and return it with its new id."""
    data = session.post(
        PREFIX_LIST_CREATE.format(uid=router_uid),
        json_body=prefix_list_to_wire(prefix_list),
    )
    created = prefix_list_from_wire(data)
    logger.info(
        "Created prefix list %r (id=%s) on %s",
        created.description,
        created.list_id,
        router_uid,
    )
    return created


def update_prefix_list(
    session: ApiSession, router_uid: str, prefix_list: RoutingPolicyList
) -> RoutingPolicyList:
    """Replace the content of an existing list."""
    if prefix_list.list_id is None:
        raise ValueError("update_prefix_list requires a list with an id")
    data = session.put(
        PREFIX_LIST.format(uid=router_uid, list_id=prefix_list.list_id),
        json_body=prefix_list_to_wire(prefix_list),
    )
    logger.info("Updated prefix list %s on %s", prefix_list.list_id, router_uid)
    # Some API versions answer with an empty body.
    if isinstance(data, dict) and "entries" in data:
        return prefix_list_from_wire(data)
    return prefix_list


def delete_prefix_list(session: ApiSession, router_uid: str, list_id: int) -> None:
    """Delete list *list_id* from the router."""
    session.delete(PREFIX_LIST.format(uid=router_uid, list_id=list_id))
    logger.info("Deleted prefix list %s on %s", list_id, router_uid)


# ---------------------------------------------------------------------------
# Wire translation
# ---------------------------------------------------------------------------


def prefix_list_to_wire(prefix_list: RoutingPolicyList) -> dict[str, Any]:
    """Serialize a list for create/update (the id travels in the URL)."""
    return {
        "description": prefix_list.description,
        "addressFamily": prefix_list.address_family,
        "entries": [
            {
                k: v
                for k, v in (
                    ("action", e.action),
                    ("prefix", e.prefix),
                    ("ge", e.ge),
                    ("le", e.le),
                )
                if v is not None
            }
            for e in prefix_list.entries
        ],
    }


def prefix_list_from_wire(data: Any) -> RoutingPolicyList:
    """Parse a list document; missing or zero ``ge``/``le`` are filled in."""
    if not isinstance(data, dict):
        raise RemoteParseError(f"Expected a prefix list object, got {data!r}")
    family = str(data.get("addressFamily", "IPv4"))
    try:
        entries = [
            fill_entry_bounds(
                PrefixListEntry(
                    action=str(e["action"]),
                    prefix=str(e["prefix"]),
                    ge=int(e.get("ge") or 0),
                    le=int(e.get("le") or 0),
                ),
                family,
            )
            for e in data.get("entries") or []
        ]
        list_id = int(data["id"]) if data.get("id") is not None else None
    except (KeyError, TypeError, ValueError) as exc:
        raise RemoteParseError(f"Malformed prefix list document: {exc}") from exc
    return RoutingPolicyList(
        description=str(data.get("description", "")),
        address_family=family,
        entries=entries,
        list_id=list_id,
    )
