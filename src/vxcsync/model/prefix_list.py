"""Typed model for routing-policy (prefix filter) lists."""

from __future__ import annotations

from dataclasses import dataclass, field

# Maximum prefix length per address family.
FAMILY_MAX_LENGTH: dict[str, int] = {"IPv4": 32, "IPv6": 128}

MIN_ENTRIES: int = 1
MAX_ENTRIES: int = 200


@dataclass
class PrefixListEntry:
    """A single permit/deny rule.

    Attributes:
        action: ``"permit"`` or ``"deny"``.
        prefix: Network in CIDR notation, e.g. ``"10.0.0.0/8"``.
        ge: Minimum matched prefix length; ``None`` defaults to the prefix length.
        le: Maximum matched prefix length; ``None`` defaults to the family maximum.
    """

    action: str
    prefix: str
    ge: int | None = None
    le: int | None = None


@dataclass
class RoutingPolicyList:
    """A named, ordered prefix list owned by one virtual router.

    Attributes:
        description: Human-readable name; also how partner configurations
            reference the list.
        address_family: ``"IPv4"`` or ``"IPv6"``.
        entries: Ordered rules.
        list_id: Server-assigned numeric identifier; ``None`` until created.
    """

    description: str
    address_family: str = "IPv4"
    entries: list[PrefixListEntry] = field(default_factory=list)
    list_id: int | None = None


@dataclass
class PrefixListChangeSet:
    """A set of planned list changes produced by :func:`plan_prefix_list_changes`.

    Attributes:
        create: Desired lists without an identifier.
        update: Desired lists whose identifier matches a previous list with
            different content.
        delete: Previous lists whose identifier is absent from *desired*.
    """

    create: list[RoutingPolicyList] = field(default_factory=list)
    update: list[RoutingPolicyList] = field(default_factory=list)
    delete: list[RoutingPolicyList] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.create or self.update or self.delete)
