"""Normalization helpers for circuit and prefix-list models.

Normalization produces a stable, canonical form suitable for reliable diff
comparisons: filled-in prefix length bounds, validated list content and
declarative VLAN values derived from the API's zero-means-none convention.
"""

from __future__ import annotations

import ipaddress
from dataclasses import replace

from vxcsync.client.errors import InputValidationError
from vxcsync.model.circuit import VLAN_UNTAGGED
from vxcsync.model.prefix_list import (
    FAMILY_MAX_LENGTH,
    MAX_ENTRIES,
    MIN_ENTRIES,
    PrefixListEntry,
    RoutingPolicyList,
)

_ACTIONS: frozenset[str] = frozenset({"permit", "deny"})


def _network(prefix: str) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
    try:
        return ipaddress.ip_network(prefix, strict=False)
    except ValueError as exc:
        raise InputValidationError(f"Invalid prefix {prefix!r}: {exc}") from exc


def fill_entry_bounds(entry: PrefixListEntry, address_family: str) -> PrefixListEntry:
    """Return a copy of *entry* with unset ``ge``/``le`` filled in.

    ``None`` or ``0`` ``ge`` becomes the prefix length; ``None`` or ``0``
    ``le`` becomes the family maximum (32 or 128).  The API reports unset
    bounds as ``0``.
    """
    max_len = FAMILY_MAX_LENGTH.get(address_family, 32)
    ge = entry.ge if entry.ge else _network(entry.prefix).prefixlen
    le = entry.le if entry.le else max_len
    return replace(entry, ge=ge, le=le)


def normalize_prefix_list(prefix_list: RoutingPolicyList) -> RoutingPolicyList:
    """Validate *prefix_list* and return a copy with bounds filled in.

    Rules:

    - The address family is ``IPv4`` or ``IPv6``.
    - Between 1 and 200 entries.
    - Each action is ``permit`` or ``deny``; each prefix parses and belongs
      to the list's family.
    - ``ge`` and ``le`` lie within ``0..max``, ``ge`` is not below the
      prefix length, and ``ge <= le``.  A ``0`` bound counts as unset.

    Raises:
        InputValidationError: On the first rule violated.
    """
    family = prefix_list.address_family
    if family not in FAMILY_MAX_LENGTH:
        raise InputValidationError(
            f"Prefix list {prefix_list.description!r}: address family must be one of "
            f"{sorted(FAMILY_MAX_LENGTH)}, got {family!r}"
        )
    count = len(prefix_list.entries)
    if not MIN_ENTRIES <= count <= MAX_ENTRIES:
        raise InputValidationError(
            f"Prefix list {prefix_list.description!r}: needs {MIN_ENTRIES}-{MAX_ENTRIES} "
            f"entries, got {count}"
        )
    max_len = FAMILY_MAX_LENGTH[family]
    entries: list[PrefixListEntry] = []
    for idx, entry in enumerate(prefix_list.entries):
        where = f"Prefix list {prefix_list.description!r} entry {idx}"
        if entry.action not in _ACTIONS:
            raise InputValidationError(f"{where}: action must be permit or deny")
        net = _network(entry.prefix)
        if net.max_prefixlen != max_len:
            raise InputValidationError(f"{where}: {entry.prefix} is not an {family} prefix")
        for name, value in (("ge", entry.ge), ("le", entry.le)):
            if value is not None and not 0 <= value <= max_len:
                raise InputValidationError(f"{where}: {name}={value} outside 0-{max_len}")
        ge = entry.ge if entry.ge else net.prefixlen
        le = entry.le if entry.le else max_len
        if ge > le:
            raise InputValidationError(f"{where}: ge={ge} is greater than le={le}")
        if ge < net.prefixlen:
            raise InputValidationError(
                f"{where}: ge={ge} is shorter than the prefix length {net.prefixlen}"
            )
        entries.append(replace(entry, ge=ge, le=le))
    return replace(prefix_list, entries=entries)


def vlan_from_remote(value: int) -> int | None:
    """Map an API VLAN (``0`` when none) to its declarative form."""
    return value if value else None


def inner_vlan_from_remote(value: int, tracked: int | None) -> int | None:
    """Map an API inner VLAN to its declarative form.

    The API reports both "untagged" and "unset" as ``0``; an explicit
    untagged value already tracked by the caller is kept.
    """
    if value:
        return value
    return VLAN_UNTAGGED if tracked == VLAN_UNTAGGED else None
