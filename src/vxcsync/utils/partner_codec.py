"""Bidirectional mapping between partner configurations and their wire payloads.

Encoding is pure once its two remote inputs are known: the resolved
provider-facing attachment (cloud variants) and the owning router's prefix
list ids (router variants).  :func:`encode_for_endpoint` performs those
lookups and then calls :func:`encode_partner`.

Decoding is implemented for the transit and router variants only.  Cloud
payloads carry negotiated provider state that cannot be mapped back to the
declared input, so decoding them returns the tracked value unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from vxcsync.client.errors import InputValidationError
from vxcsync.client.protocol import RemoteServiceClient
from vxcsync.model.partner import (
    AEndPartnerConfig,
    AwsPartnerConfig,
    AzurePartnerConfig,
    BfdConfig,
    BgpConnection,
    GooglePartnerConfig,
    IbmPartnerConfig,
    IpRoute,
    OraclePartnerConfig,
    PartnerConfig,
    PartnerInterface,
    TransitPartnerConfig,
    VrouterPartnerConfig,
)
from vxcsync.vendor.mappings import CLOUD_PARTNERS, CONNECT_TYPE_TO_PARTNER, CONNECT_TYPES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Attribute -> wire key tables
# ---------------------------------------------------------------------------

_AWS_KEYS: tuple[tuple[str, str], ...] = (
    ("type", "type"),
    ("owner_account", "ownerAccount"),
    ("asn", "asn"),
    ("amazon_asn", "amazonAsn"),
    ("auth_key", "authKey"),
    ("prefixes", "prefixes"),
    ("customer_ip_address", "customerIpAddress"),
    ("amazon_ip_address", "amazonIpAddress"),
    ("name", "name"),
)
_AZURE_PEER_KEYS: tuple[tuple[str, str], ...] = (
    ("type", "type"),
    ("peer_asn", "peerASN"),
    ("primary_subnet", "primarySubnet"),
    ("secondary_subnet", "secondarySubnet"),
    ("prefixes", "prefixes"),
    ("shared_key", "sharedKey"),
    ("vlan", "vlan"),
)
_IBM_KEYS: tuple[tuple[str, str], ...] = (
    ("account_id", "accountID"),
    ("customer_asn", "customerASN"),
    ("name", "name"),
    ("customer_ip_address", "customerIPAddress"),
    ("provider_ip_address", "providerIPAddress"),
)
_ROUTE_KEYS: tuple[tuple[str, str], ...] = (
    ("prefix", "prefix"),
    ("description", "description"),
    ("next_hop", "nextHop"),
)
_BFD_KEYS: tuple[tuple[str, str], ...] = (
    ("tx_interval", "txInterval"),
    ("rx_interval", "rxInterval"),
    ("multiplier", "multiplier"),
)
_BGP_KEYS: tuple[tuple[str, str], ...] = (
    ("peer_asn", "peerAsn"),
    ("local_asn", "localAsn"),
    ("local_ip_address", "localIpAddress"),
    ("peer_ip_address", "peerIpAddress"),
    ("password", "password"),
    ("shutdown", "shutdown"),
    ("description", "description"),
    ("med_in", "medIn"),
    ("med_out", "medOut"),
    ("bfd_enabled", "bfdEnabled"),
    ("export_policy", "exportPolicy"),
    ("permit_export_to", "permitExportTo"),
    ("deny_export_to", "denyExportTo"),
    ("as_path_prepend_count", "asPathPrependCount"),
    ("peer_type", "peerType"),
)
# BGP filters referencing prefix lists: description on our side, id on the wire.
_BGP_POLICY_KEYS: tuple[tuple[str, str], ...] = (
    ("import_whitelist", "importWhitelist"),
    ("import_blacklist", "importBlacklist"),
    ("export_whitelist", "exportWhitelist"),
    ("export_blacklist", "exportBlacklist"),
)


def _to_wire(obj: Any, keys: tuple[tuple[str, str], ...]) -> dict[str, Any]:
    """Copy attributes to wire keys, omitting ``None`` and empty lists."""
    wire: dict[str, Any] = {}
    for attr, key in keys:
        value = getattr(obj, attr)
        if value is None or value == []:
            continue
        wire[key] = list(value) if isinstance(value, list) else value
    return wire


def _from_wire(cls: type, data: dict[str, Any], keys: tuple[tuple[str, str], ...]) -> Any:
    kwargs = {attr: data[key] for attr, key in keys if data.get(key) is not None}
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


@dataclass
class EncodedPartner:
    """Result of :func:`encode_for_endpoint`.

    Attributes:
        payload: Wire payload for the endpoint's ``partnerConfig``.
        attachment_uid: Attachment the endpoint must actually connect to.
            Differs from the requested one for looked-up cloud ports.
    """

    payload: dict[str, Any]
    attachment_uid: str


def encode_partner(
    config: PartnerConfig,
    policy_ids: dict[str, int] | None = None,
) -> dict[str, Any]:
    """Encode *config* into its wire payload.

    Args:
        config: Partner configuration variant.
        policy_ids: Prefix-list description -> numeric id of the owning
            router.  Required when a BGP session references a list.

    Raises:
        InputValidationError: If a BGP session references a list description
            that the router does not have.
    """
    if isinstance(config, AwsPartnerConfig):
        return {"connectType": CONNECT_TYPES["aws"], **_to_wire(config, _AWS_KEYS)}
    if isinstance(config, AzurePartnerConfig):
        wire: dict[str, Any] = {
            "connectType": CONNECT_TYPES["azure"],
            "serviceKey": config.service_key,
        }
        if config.peers:
            wire["peers"] = [_to_wire(p, _AZURE_PEER_KEYS) for p in config.peers]
        return wire
    if isinstance(config, GooglePartnerConfig):
        return {"connectType": CONNECT_TYPES["google"], "pairingKey": config.pairing_key}
    if isinstance(config, OraclePartnerConfig):
        return {
            "connectType": CONNECT_TYPES["oracle"],
            "virtualCircuitId": config.virtual_circuit_id,
        }
    if isinstance(config, IbmPartnerConfig):
        return {"connectType": CONNECT_TYPES["ibm"], **_to_wire(config, _IBM_KEYS)}
    if isinstance(config, TransitPartnerConfig):
        return {"connectType": CONNECT_TYPES["transit"]}
    if isinstance(config, (VrouterPartnerConfig, AEndPartnerConfig)):
        interfaces = [_interface_to_wire(i, policy_ids or {}) for i in config.interfaces]
        if isinstance(config, AEndPartnerConfig):
            return {"interfaces": interfaces}
        return {"connectType": CONNECT_TYPES["vrouter"], "interfaces": interfaces}
    raise TypeError(f"Unsupported partner configuration: {config!r}")


def _interface_to_wire(iface: PartnerInterface, policy_ids: dict[str, int]) -> dict[str, Any]:
    wire: dict[str, Any] = {}
    if iface.ip_addresses:
        wire["ipAddresses"] = list(iface.ip_addresses)
    if iface.ip_routes:
        wire["ipRoutes"] = [_to_wire(r, _ROUTE_KEYS) for r in iface.ip_routes]
    if iface.nat_ip_addresses:
        wire["natIpAddresses"] = list(iface.nat_ip_addresses)
    if iface.bfd is not None:
        wire["bfd"] = _to_wire(iface.bfd, _BFD_KEYS)
    if iface.bgp_connections:
        wire["bgpConnections"] = [
            _bgp_to_wire(b, policy_ids) for b in iface.bgp_connections
        ]
    if iface.ip_mtu is not None:
        wire["ipMtu"] = iface.ip_mtu
    if iface.vlan is not None:
        wire["vlan"] = iface.vlan
    return wire


def _bgp_to_wire(conn: BgpConnection, policy_ids: dict[str, int]) -> dict[str, Any]:
    wire = _to_wire(conn, _BGP_KEYS)
    for attr, key in _BGP_POLICY_KEYS:
        name = getattr(conn, attr)
        if name is None:
            continue
        if name not in policy_ids:
            raise InputValidationError(
                f"BGP session to {conn.peer_ip_address}: {attr} references unknown "
                f"prefix list {name!r}"
            )
        wire[key] = policy_ids[name]
    return wire


def resolve_attachment(
    client: RemoteServiceClient,
    config: PartnerConfig | None,
    requested_uid: str,
    rate_limit: int,
) -> str:
    """Return the attachment uid an endpoint must connect to.

    Azure, Google and Oracle ends are connected to the provider port found
    by key; every other end connects to its requested attachment.
    """
    if isinstance(config, AzurePartnerConfig):
        return client.lookup_partner_port(
            "azure", config.service_key, rate_limit, config.port_choice
        )
    if isinstance(config, GooglePartnerConfig):
        return client.lookup_partner_port("google", config.pairing_key, rate_limit)
    if isinstance(config, OraclePartnerConfig):
        return client.lookup_partner_port("oracle", config.virtual_circuit_id, rate_limit)
    return requested_uid


def fetch_policy_ids(client: RemoteServiceClient, router_uid: str) -> dict[str, int]:
    """Return the prefix-list description -> id map of router *router_uid*."""
    return {
        p.description: p.list_id
        for p in client.list_prefix_lists(router_uid)
        if p.list_id is not None
    }


def encode_for_endpoint(
    client: RemoteServiceClient,
    config: PartnerConfig,
    requested_uid: str,
    rate_limit: int,
    policy_router_uid: str | None = None,
) -> EncodedPartner:
    """Resolve the remote inputs of *config* and encode it.

    Args:
        client: Remote service client.
        config: Partner configuration of the endpoint.
        requested_uid: The endpoint's requested attachment.
        rate_limit: Circuit bandwidth, used by partner port lookups.
        policy_router_uid: Router whose prefix lists BGP filters refer to.
            Defaults to *requested_uid*.
    """
    attachment = resolve_attachment(client, config, requested_uid, rate_limit)
    policy_ids: dict[str, int] = {}
    if isinstance(config, (VrouterPartnerConfig, AEndPartnerConfig)):
        policy_ids = fetch_policy_ids(client, policy_router_uid or requested_uid)
    return EncodedPartner(payload=encode_partner(config, policy_ids), attachment_uid=attachment)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def partner_tag_of(wire: dict[str, Any]) -> str | None:
    """Return the partner tag a wire payload belongs to, or ``None``."""
    connect_type = wire.get("connectType")
    if connect_type is None:
        return "a-end" if "interfaces" in wire else None
    return CONNECT_TYPE_TO_PARTNER.get(str(connect_type).upper())


def decode_partner(
    wire: dict[str, Any] | None,
    tracked: PartnerConfig | None = None,
    policy_names: dict[int, str] | None = None,
) -> PartnerConfig | None:
    """Decode a wire payload into a partner configuration.

    Args:
        wire: Partner payload reported by the server, or ``None``.
        tracked: Partner configuration currently tracked by the caller.
        policy_names: Prefix-list id -> description of the owning router.

    Returns:
        The decoded configuration; *tracked* unchanged for cloud payloads,
        unrecognized payloads and a missing payload.
    """
    if wire is None:
        return tracked
    tag = partner_tag_of(wire)
    if tag is None or tag in CLOUD_PARTNERS:
        return tracked
    if tag == "transit":
        return TransitPartnerConfig()
    interfaces = [
        _interface_from_wire(i, policy_names or {}) for i in wire.get("interfaces") or []
    ]
    if tag == "a-end":
        return AEndPartnerConfig(interfaces=interfaces)
    return VrouterPartnerConfig(interfaces=interfaces)


def _interface_from_wire(data: dict[str, Any], policy_names: dict[int, str]) -> PartnerInterface:
    bfd = data.get("bfd")
    return PartnerInterface(
        ip_addresses=list(data.get("ipAddresses") or []),
        ip_routes=[_from_wire(IpRoute, r, _ROUTE_KEYS) for r in data.get("ipRoutes") or []],
        nat_ip_addresses=list(data.get("natIpAddresses") or []),
        bfd=_from_wire(BfdConfig, bfd, _BFD_KEYS) if bfd is not None else None,
        bgp_connections=[
            _bgp_from_wire(b, policy_names) for b in data.get("bgpConnections") or []
        ],
        ip_mtu=data.get("ipMtu"),
        vlan=data.get("vlan"),
    )


def _bgp_from_wire(data: dict[str, Any], policy_names: dict[int, str]) -> BgpConnection:
    conn: BgpConnection = _from_wire(BgpConnection, data, _BGP_KEYS)
    for attr, key in _BGP_POLICY_KEYS:
        list_id = data.get(key)
        if list_id is None:
            continue
        name = policy_names.get(int(list_id))
        if name is None:
            logger.warning(
                "BGP session to %s: %s references unknown prefix list id %s",
                conn.peer_ip_address,
                key,
                list_id,
            )
            continue
        setattr(conn, attr, name)
    return conn

