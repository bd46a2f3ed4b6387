"""Typed model for endpoint partner configurations.

A partner configuration describes how one circuit endpoint connects to a
named partner (a cloud provider, a transit service) or to another virtual
router.  Each variant is its own dataclass; :data:`PartnerConfig` is the
closed union of all of them, so "exactly one variant" holds by construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Union

from vxcsync.client.errors import InputValidationError
from vxcsync.vendor.mappings import AZURE_PORT_CHOICES, CLOUD_PARTNERS

# ---------------------------------------------------------------------------
# Cloud variants
# ---------------------------------------------------------------------------


@dataclass
class AwsPartnerConfig:
    """AWS Direct Connect hosted VIF/connection.

    Attributes:
        owner_account: AWS account that owns the virtual interface.
        type: ``"private"``, ``"public"`` or ``"transit"`` VIF.
        asn: Customer-side BGP ASN.
        amazon_asn: Amazon-side BGP ASN.
        auth_key: BGP MD5 key.
        prefixes: Comma-separated prefixes announced on a public VIF.
        customer_ip_address: Customer BGP peer address (CIDR).
        amazon_ip_address: Amazon BGP peer address (CIDR).
        name: Name shown in the AWS console.
    """

    partner: ClassVar[str] = "aws"

    owner_account: str
    type: str = "private"
    asn: int | None = None
    amazon_asn: int | None = None
    auth_key: str | None = None
    prefixes: str | None = None
    customer_ip_address: str | None = None
    amazon_ip_address: str | None = None
    name: str | None = None


@dataclass
class AzurePeering:
    """One ExpressRoute peering (private or Microsoft)."""

    type: str
    peer_asn: int | None = None
    primary_subnet: str | None = None
    secondary_subnet: str | None = None
    prefixes: str | None = None
    shared_key: str | None = None
    vlan: int | None = None


@dataclass
class AzurePartnerConfig:
    """Azure ExpressRoute connection.

    Attributes:
        service_key: ExpressRoute service key.
        port_choice: Which of the two provider ports to use,
            ``"primary"`` or ``"secondary"``.
        peers: Optional peerings to configure on the circuit.
    """

    partner: ClassVar[str] = "azure"

    service_key: str
    port_choice: str = "primary"
    peers: list[AzurePeering] = field(default_factory=list)


@dataclass
class GooglePartnerConfig:
    """Google Partner Interconnect attachment identified by its pairing key."""

    partner: ClassVar[str] = "google"

    pairing_key: str


@dataclass
class OraclePartnerConfig:
    """Oracle FastConnect virtual circuit."""

    partner: ClassVar[str] = "oracle"

    virtual_circuit_id: str


@dataclass
class IbmPartnerConfig:
    """IBM Cloud Direct Link connection."""

    partner: ClassVar[str] = "ibm"

    account_id: str
    customer_asn: int | None = None
    name: str | None = None
    customer_ip_address: str | None = None
    provider_ip_address: str | None = None


# ---------------------------------------------------------------------------
# Non-cloud variants
# ---------------------------------------------------------------------------


@dataclass
class TransitPartnerConfig:
    """Internet transit; carries no fields of its own."""

    partner: ClassVar[str] = "transit"


@dataclass
class IpRoute:
    """Static route on a router interface."""

    prefix: str
    next_hop: str
    description: str | None = None


@dataclass
class BfdConfig:
    """BFD timers shared by the BGP sessions on an interface."""

    tx_interval: int = 300
    rx_interval: int = 300
    multiplier: int = 3


@dataclass
class BgpConnection:
    """A BGP session on a router interface.

    The four ``*_whitelist`` / ``*_blacklist`` fields name routing-policy
    lists by description; the codec resolves them to numeric list ids.
    """

    peer_asn: int
    local_ip_address: str
    peer_ip_address: str
    local_asn: int | None = None
    password: str | None = None
    shutdown: bool | None = None
    description: str | None = None
    med_in: int | None = None
    med_out: int | None = None
    bfd_enabled: bool | None = None
    export_policy: str | None = None
    permit_export_to: list[str] = field(default_factory=list)
    deny_export_to: list[str] = field(default_factory=list)
    import_whitelist: str | None = None
    import_blacklist: str | None = None
    export_whitelist: str | None = None
    export_blacklist: str | None = None
    as_path_prepend_count: int | None = None
    peer_type: str | None = None


@dataclass
class PartnerInterface:
    """Layer-3 configuration of one router interface."""

    ip_addresses: list[str] = field(default_factory=list)
    ip_routes: list[IpRoute] = field(default_factory=list)
    nat_ip_addresses: list[str] = field(default_factory=list)
    bfd: BfdConfig | None = None
    bgp_connections: list[BgpConnection] = field(default_factory=list)
    ip_mtu: int | None = None
    vlan: int | None = None


@dataclass
class VrouterPartnerConfig:
    """Router peering: the endpoint's virtual router peers with the far side."""

    partner: ClassVar[str] = "vrouter"

    interfaces: list[PartnerInterface] = field(default_factory=list)


@dataclass
class AEndPartnerConfig:
    """Router to router: interfaces configured on the A-end virtual router."""

    partner: ClassVar[str] = "a-end"

    interfaces: list[PartnerInterface] = field(default_factory=list)


PartnerConfig = Union[
    AwsPartnerConfig,
    AzurePartnerConfig,
    GooglePartnerConfig,
    OraclePartnerConfig,
    IbmPartnerConfig,
    TransitPartnerConfig,
    VrouterPartnerConfig,
    AEndPartnerConfig,
]

PARTNER_CLASSES: dict[str, type] = {
    cls.partner: cls
    for cls in (
        AwsPartnerConfig,
        AzurePartnerConfig,
        GooglePartnerConfig,
        OraclePartnerConfig,
        IbmPartnerConfig,
        TransitPartnerConfig,
        VrouterPartnerConfig,
        AEndPartnerConfig,
    )
}


def is_cloud(config: PartnerConfig | None) -> bool:
    """Return ``True`` if *config* is a provider-managed cloud variant."""
    return config is not None and config.partner in CLOUD_PARTNERS


# ---------------------------------------------------------------------------
# Construction from declarative mappings
# ---------------------------------------------------------------------------


def _block_key(partner: str) -> str:
    return partner.replace("-", "_") + "_config"


def _build(cls: type, data: dict[str, Any], where: str) -> Any:
    """Instantiate dataclass *cls* from *data*, rejecting unknown keys."""
    if not isinstance(data, dict):
        raise InputValidationError(f"{where}: expected a mapping, got {data!r}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InputValidationError(f"{where}: unknown field(s) {unknown}")
    try:
        return cls(**data)
    except TypeError as exc:
        raise InputValidationError(f"{where}: {exc}") from exc


def _interfaces_from_list(items: list[Any], where: str) -> list[PartnerInterface]:
    result: list[PartnerInterface] = []
    for i, raw in enumerate(items or []):
        loc = f"{where}.interfaces[{i}]"
        if not isinstance(raw, dict):
            raise InputValidationError(f"{loc}: expected a mapping, got {raw!r}")
        data = dict(raw)
        data["ip_routes"] = [
            _build(IpRoute, r, f"{loc}.ip_routes") for r in data.get("ip_routes") or []
        ]
        data["bgp_connections"] = [
            _build(BgpConnection, b, f"{loc}.bgp_connections")
            for b in data.get("bgp_connections") or []
        ]
        if data.get("bfd") is not None:
            data["bfd"] = _build(BfdConfig, data["bfd"], f"{loc}.bfd")
        result.append(_build(PartnerInterface, data, loc))
    return result


def partner_config_from_mapping(data: dict[str, Any] | None) -> PartnerConfig | None:
    """Build a typed partner configuration from a declarative mapping.

    The mapping has the shape ``{"partner": "<tag>", "<tag>_config": {...}}``
    (``a-end`` uses the ``a_end_config`` key; ``transit`` has no block).

    Args:
        data: Declarative mapping, or ``None`` for "no partner configuration".

    Returns:
        The matching variant instance, or ``None``.

    Raises:
        InputValidationError: If the tag is unknown, no variant block or more
            than one is populated, or the populated block does not match the tag.
    """
    if data is None:
        return None
    partner = data.get("partner")
    if partner not in PARTNER_CLASSES:
        raise InputValidationError(
            f"Unknown partner {partner!r}; expected one of {sorted(PARTNER_CLASSES)}"
        )
    populated = sorted(
        k for k, v in data.items() if k.endswith("_config") and v is not None
    )
    if partner == "transit":
        if populated:
            raise InputValidationError(
                f"Partner 'transit' takes no configuration block, got {populated}"
            )
        return TransitPartnerConfig()
    if not populated:
        raise InputValidationError(f"Partner {partner!r} requires a configuration block")
    if len(populated) > 1:
        raise InputValidationError(
            f"Exactly one partner configuration block may be set, got {populated}"
        )
    key = _block_key(partner)
    if populated[0] != key:
        raise InputValidationError(
            f"Partner {partner!r} expects block {key!r}, got {populated[0]!r}"
        )

    block = data[key]
    cls = PARTNER_CLASSES[partner]
    if partner in ("vrouter", "a-end"):
        if not isinstance(block, dict):
            raise InputValidationError(f"{key}: expected a mapping, got {block!r}")
        return cls(interfaces=_interfaces_from_list(block.get("interfaces"), key))
    if partner == "azure":
        if not isinstance(block, dict):
            raise InputValidationError(f"{key}: expected a mapping, got {block!r}")
        block = dict(block)
        block["peers"] = [
            _build(AzurePeering, p, f"{key}.peers") for p in block.get("peers") or []
        ]
        cfg = _build(AzurePartnerConfig, block, key)
        if cfg.port_choice not in AZURE_PORT_CHOICES:
            raise InputValidationError(
                f"{key}.port_choice must be one of {sorted(AZURE_PORT_CHOICES)}, "
                f"got {cfg.port_choice!r}"
            )
        return cfg
    return _build(cls, block, key)
