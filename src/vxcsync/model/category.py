"""Attachment-point categories and the per-category endpoint field rules."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class AttachmentCategory(enum.Enum):
    """Kind of attachment point a circuit endpoint connects to."""

    PORT = "port"
    VROUTER = "vrouter"
    VAPPLIANCE = "vappliance"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EndpointFieldRule:
    """Which optional endpoint fields a category accepts.

    Attributes:
        allowed: Optional fields that may be set.
        required: Fields that must be set (always a subset of *allowed*).
    """

    allowed: frozenset[str]
    required: frozenset[str] = frozenset()


ENDPOINT_FIELD_RULES: dict[AttachmentCategory, EndpointFieldRule] = {
    AttachmentCategory.PORT: EndpointFieldRule(
        allowed=frozenset({"vlan", "inner_vlan"}),
    ),
    AttachmentCategory.VROUTER: EndpointFieldRule(allowed=frozenset()),
    AttachmentCategory.VAPPLIANCE: EndpointFieldRule(
        allowed=frozenset({"inner_vlan", "vnic_index"}),
        required=frozenset({"vnic_index"}),
    ),
    # The remote system makes the final call when the category is unknown.
    AttachmentCategory.UNKNOWN: EndpointFieldRule(
        allowed=frozenset({"vlan", "inner_vlan", "vnic_index"}),
    ),
}
