"""Circuit and attachment-point operations against the provisioning API.

Each function translates a typed request into the JSON payload the API
expects and delegates to :class:`~vxcsync.client.session.ApiSession` for
dispatch.

Payload shapes:

    ORDER: POST /v3/networkdesign/buy
        [{"productUid": <a>, "associatedVxcs": [{"productName", "rateLimit",
          "term", "shutdown", "costCentre", "resourceTags",
          "aEnd": {...}, "bEnd": {"productUid": <b>, ...}}]}]
        → {"data": [{"technicalServiceUid": <uid>}]}

    UPDATE: PUT /v3/product/vxc/<uid>
        {"name", "rateLimit", "term", "shutdown", "costCentre", "resourceTags",
         "aEndProductUid", "aEndVlan", "aEndInnerVlan", "aVnicIndex",
         "aEndPartnerConfig", "bEnd..."}   (absent keys are left unchanged)

    CANCEL: POST /v3/product/<uid>/action/CANCEL_NOW
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from vxcsync.client.errors import (
    ProvisioningTimeoutError,
    RemoteNotFoundError,
    RemoteParseError,
)
from vxcsync.client.session import ApiSession
from vxcsync.model.circuit import (
    CircuitOrder,
    CircuitUpdate,
    EndpointOrder,
    EndpointUpdate,
    RemoteCircuit,
    RemoteEnd,
)
from vxcsync.vendor.endpoints import (
    CIRCUIT_CANCEL,
    CIRCUIT_ORDER,
    CIRCUIT_UPDATE,
    PARTNER_PORTS,
    PRODUCT,
)
from vxcsync.vendor.mappings import GONE_STATES, PROVISIONED_STATES

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Attachment points
# ---------------------------------------------------------------------------


def get_product_type(session: ApiSession, uid: str) -> str:
    """Return the ``productType`` of product *uid* (e.g. ``"MCR2"``)."""
    data = _expect_dict(session.get(PRODUCT.format(uid=uid)), PRODUCT)
    return str(data.get("productType", ""))


def lookup_partner_port(
    session: ApiSession,
    partner: str,
    key: str,
    rate_limit: int,
    port_choice: str | None = None,
) -> str:
    """Find the provider-facing port for a cloud partner key.

    Args:
        session: Active authenticated session.
        partner: Partner tag (``"azure"``, ``"google"``, ``"oracle"``).
        key: Service key, pairing key or virtual-circuit id.
        rate_limit: Circuit bandwidth; the API only offers ports that can carry it.
        port_choice: ``"primary"`` / ``"secondary"`` selector (Azure only).

    Returns:
        The ``productUid`` of the selected port.

    Raises:
        RemoteNotFoundError: If no port matches.
    """
    path = PARTNER_PORTS.format(partner=partner, key=key)
    data = session.get(path, params={"speed": str(rate_limit)})
    ports: list[Any] = data.get("megaports", []) if isinstance(data, dict) else data or []
    for port in ports:
        if not isinstance(port, dict):
            continue
        if port_choice is not None and str(port.get("type", "")).lower() != port_choice:
            continue
        uid = port.get("productUid")
        if uid:
            logger.debug("Partner %s key %s -> port %s", partner, key, uid)
            return str(uid)
    choice = f" ({port_choice})" if port_choice else ""
    raise RemoteNotFoundError(path, f"no {partner} partner port{choice} for key {key!r}")


# ---------------------------------------------------------------------------
# Circuits
# ---------------------------------------------------------------------------


def create_circuit(session: ApiSession, order: CircuitOrder) -> str:
    """Order a circuit and return its uid."""
    payload = [
        {
            "productUid": order.a_end.product_uid,
            "associatedVxcs": [
                {
                    "productName": order.name,
                    "rateLimit": order.rate_limit,
                    "term": order.term,
                    "shutdown": order.shutdown,
                    "costCentre": order.cost_centre,
                    "resourceTags": _tags_to_wire(order.tags),
                    "aEnd": _end_order_to_wire(order.a_end, include_uid=False),
                    "bEnd": _end_order_to_wire(order.b_end, include_uid=True),
                }
            ],
        }
    ]
    logger.debug("Ordering circuit %r", order.name)
    data = session.post(CIRCUIT_ORDER, json_body=payload)
    if not isinstance(data, list) or not data or "technicalServiceUid" not in data[0]:
        raise RemoteParseError(f"Unexpected order response: {data!r}")
    uid = str(data[0]["technicalServiceUid"])
    logger.info("Ordered circuit %r as %s", order.name, uid)
    return uid


def get_circuit(session: ApiSession, uid: str) -> RemoteCircuit:
    """Read circuit *uid*."""
    data = _expect_dict(session.get(PRODUCT.format(uid=uid)), PRODUCT)
    return circuit_from_wire(data)


def update_circuit(session: ApiSession, uid: str, update: CircuitUpdate) -> None:
    """Send one combined partial update for circuit *uid*."""
    payload = update_to_wire(update)
    if not payload:
        logger.debug("Nothing to update on circuit %s", uid)
        return
    logger.debug("Updating circuit %s with %r", uid, payload)
    session.put(CIRCUIT_UPDATE.format(uid=uid), json_body=payload)
    logger.info("Updated circuit %s (%s)", uid, ", ".join(sorted(payload)))


def delete_circuit(session: ApiSession, uid: str) -> None:
    """Cancel circuit *uid* immediately."""
    session.post(CIRCUIT_CANCEL.format(uid=uid))
    logger.info("Cancelled circuit %s", uid)


def wait_for_provision(
    session: ApiSession,
    uid: str,
    timeout_s: float,
    poll_s: float,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Poll circuit *uid* until it reaches a provisioned state.

    Raises:
        ProvisioningTimeoutError: If the circuit is still pending after
            *timeout_s* seconds, or it was cancelled while waiting.
    """
    deadline = clock() + timeout_s
    while True:
        status = get_circuit(session, uid).provisioning_status
        if status in PROVISIONED_STATES:
            logger.debug("Circuit %s provisioned (%s)", uid, status)
            return
        if status in GONE_STATES or clock() >= deadline:
            raise ProvisioningTimeoutError(uid, status, timeout_s)
        sleep(poll_s)


# ---------------------------------------------------------------------------
# Wire translation
# ---------------------------------------------------------------------------


def circuit_from_wire(data: dict[str, Any]) -> RemoteCircuit:
    """Build a :class:`RemoteCircuit` from a product JSON document."""
    try:
        return RemoteCircuit(
            uid=str(data["productUid"]),
            name=str(data.get("productName", "")),
            rate_limit=int(data.get("rateLimit", 0)),
            term=int(data.get("contractTermMonths", 1)),
            shutdown=bool(data.get("shutdown", False)),
            cost_centre=str(data.get("costCentre") or ""),
            tags=_tags_from_wire(data.get("resourceTags")),
            provisioning_status=str(data.get("provisioningStatus", "")),
            a_end=_end_from_wire(data["aEnd"]),
            b_end=_end_from_wire(data["bEnd"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RemoteParseError(f"Malformed circuit document: {exc}") from exc


def update_to_wire(update: CircuitUpdate) -> dict[str, Any]:
    """Translate a :class:`CircuitUpdate` into the PUT body, omitting ``None``."""
    payload: dict[str, Any] = {}
    top = {
        "name": update.name,
        "rateLimit": update.rate_limit,
        "term": update.term,
        "shutdown": update.shutdown,
        "costCentre": update.cost_centre,
    }
    payload.update({k: v for k, v in top.items() if v is not None})
    if update.tags is not None:
        payload["resourceTags"] = _tags_to_wire(update.tags)
    for prefix, vnic_key, end in (
        ("aEnd", "aVnicIndex", update.a_end),
        ("bEnd", "bVnicIndex", update.b_end),
    ):
        payload.update(_end_update_to_wire(prefix, vnic_key, end))
    return payload


def _end_update_to_wire(prefix: str, vnic_key: str, end: EndpointUpdate) -> dict[str, Any]:
    fields = {
        f"{prefix}ProductUid": end.product_uid,
        f"{prefix}Vlan": end.vlan,
        f"{prefix}InnerVlan": end.inner_vlan,
        vnic_key: end.vnic_index,
        f"{prefix}PartnerConfig": end.partner_config,
    }
    return {k: v for k, v in fields.items() if v is not None}


def _end_order_to_wire(end: EndpointOrder, *, include_uid: bool) -> dict[str, Any]:
    wire: dict[str, Any] = {}
    if include_uid:
        wire["productUid"] = end.product_uid
    if end.vlan is not None:
        wire["vlan"] = end.vlan
    if end.inner_vlan is not None or end.vnic_index is not None:
        wire["vxcOrderMVEConfig"] = {
            k: v
            for k, v in (("innerVLAN", end.inner_vlan), ("vNicIndex", end.vnic_index))
            if v is not None
        }
    if end.partner_config is not None:
        wire["partnerConfig"] = end.partner_config
    return wire


def _end_from_wire(data: dict[str, Any]) -> RemoteEnd:
    vnic = data.get("vNicIndex")
    return RemoteEnd(
        product_uid=str(data["productUid"]),
        vlan=int(data.get("vlan") or 0),
        inner_vlan=int(data.get("innerVlan") or 0),
        vnic_index=int(vnic) if vnic is not None else None,
        partner_config=data.get("partnerConfig"),
    )


def _tags_to_wire(tags: dict[str, str]) -> list[dict[str, str]]:
    return [{"key": k, "value": tags[k]} for k in sorted(tags)]


def _tags_from_wire(raw: Any) -> dict[str, str]:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    return {str(t["key"]): str(t["value"]) for t in raw}


def _expect_dict(data: Any, where: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise RemoteParseError(f"Expected a JSON object from {where!r}, got {data!r}")
    return data
