"""Typed model for virtual circuits, their endpoints and the wire requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from vxcsync.model.partner import PartnerConfig

# Endpoint VLAN sentinels.
VLAN_UNTAGGED: int = -1
VLAN_AUTO: int = 0

VLAN_MIN: int = 2
VLAN_MAX: int = 4093


@dataclass
class Endpoint:
    """One side of a circuit as tracked by the caller.

    Attributes:
        requested_uid: Attachment point the user asked for.  Changed only by
            an explicit edit (or fed forward from the server for cloud ends).
        current_uid: Attachment point the server actually uses.  Always
            overwritten on read; ``None`` before the first read.
        vlan: Outer VLAN; ``-1`` untagged, ``0`` auto-assign, ``None`` unset.
        inner_vlan: Inner (Q-in-Q) VLAN; ``-1`` untagged, ``None`` unset.
        vnic_index: Virtual-appliance interface index.
    """

    requested_uid: str
    current_uid: str | None = None
    vlan: int | None = None
    inner_vlan: int | None = None
    vnic_index: int | None = None


@dataclass
class Circuit:
    """Declarative circuit state exchanged with the calling orchestrator.

    Attributes:
        name: Circuit name.
        rate_limit: Bandwidth in Mbps.
        a_end: Side A endpoint.
        b_end: Side B endpoint.
        term: Contract term in months.
        shutdown: Administratively shut the circuit down.
        cost_centre: Free-form billing label.
        tags: Free-form key/value tags.
        a_end_partner: Partner configuration of side A, if any.
        b_end_partner: Partner configuration of side B, if any.
        uid: Server-assigned identifier; ``None`` until created.
        provisioning_status: Last provisioning status read from the server.
    """

    name: str
    rate_limit: int
    a_end: Endpoint
    b_end: Endpoint
    term: int = 1
    shutdown: bool = False
    cost_centre: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    a_end_partner: PartnerConfig | None = None
    b_end_partner: PartnerConfig | None = None
    uid: str | None = None
    provisioning_status: str | None = None


# ---------------------------------------------------------------------------
# Authoritative remote objects
# ---------------------------------------------------------------------------


@dataclass
class RemoteEnd:
    """One side of a circuit as reported by the provisioning API.

    Attributes:
        product_uid: Attachment point the server uses.
        vlan: VLAN reported by the server (``0`` when none).
        inner_vlan: Inner VLAN reported by the server (``0`` when none).
        vnic_index: Virtual-appliance interface index, if any.
        partner_config: Partner wire payload, if the server reports one.
    """

    product_uid: str
    vlan: int = 0
    inner_vlan: int = 0
    vnic_index: int | None = None
    partner_config: dict[str, Any] | None = None


@dataclass
class RemoteCircuit:
    """A circuit as reported by the provisioning API."""

    uid: str
    name: str
    rate_limit: int
    a_end: RemoteEnd
    b_end: RemoteEnd
    term: int = 1
    shutdown: bool = False
    cost_centre: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    provisioning_status: str = ""


# ---------------------------------------------------------------------------
# Wire requests
# ---------------------------------------------------------------------------


@dataclass
class EndpointOrder:
    """Encoded endpoint sent in a circuit order.

    Attributes:
        product_uid: Attachment point to connect to (already resolved for
            cloud partners).
        vlan: Outer VLAN, or ``None`` to omit.
        inner_vlan: Inner VLAN, or ``None`` to omit.
        vnic_index: Appliance interface index, or ``None`` to omit.
        partner_config: Encoded partner payload, or ``None``.
    """

    product_uid: str
    vlan: int | None = None
    inner_vlan: int | None = None
    vnic_index: int | None = None
    partner_config: dict[str, Any] | None = None


@dataclass
class CircuitOrder:
    """Complete request for creating a circuit."""

    name: str
    rate_limit: int
    term: int
    a_end: EndpointOrder
    b_end: EndpointOrder
    shutdown: bool = False
    cost_centre: str = ""
    tags: dict[str, str] = field(default_factory=dict)


@dataclass
class EndpointUpdate:
    """Per-side fields of a combined circuit update; ``None`` means "do not change"."""

    product_uid: str | None = None
    vlan: int | None = None
    inner_vlan: int | None = None
    vnic_index: int | None = None
    partner_config: dict[str, Any] | None = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (
                self.product_uid,
                self.vlan,
                self.inner_vlan,
                self.vnic_index,
                self.partner_config,
            )
        )


@dataclass
class CircuitUpdate:
    """Single combined update request; ``None`` fields are left unchanged."""

    name: str | None = None
    rate_limit: int | None = None
    term: int | None = None
    shutdown: bool | None = None
    cost_centre: str | None = None
    tags: dict[str, str] | None = None
    a_end: EndpointUpdate = field(default_factory=EndpointUpdate)
    b_end: EndpointUpdate = field(default_factory=EndpointUpdate)

    def is_empty(self) -> bool:
        top = (
            self.name,
            self.rate_limit,
            self.term,
            self.shutdown,
            self.cost_centre,
            self.tags,
        )
        return all(v is None for v in top) and self.a_end.is_empty() and self.b_end.is_empty()
