"""Attachment-point classification and category-based endpoint validation."""

from __future__ import annotations

import logging

from vxcsync.client.errors import InputValidationError, VxcError
from vxcsync.client.protocol import RemoteServiceClient
from vxcsync.model.category import ENDPOINT_FIELD_RULES, AttachmentCategory
from vxcsync.model.circuit import VLAN_AUTO, VLAN_MAX, VLAN_MIN, VLAN_UNTAGGED, Endpoint
from vxcsync.vendor.mappings import PRODUCT_TYPE_MAP

logger = logging.getLogger(__name__)


def classify_attachment(client: RemoteServiceClient, uid: str) -> AttachmentCategory:
    """Resolve attachment point *uid* to its category with one remote lookup.

    A failed lookup yields :attr:`AttachmentCategory.UNKNOWN` so that an
    outage of the lookup does not block otherwise valid input; the remote
    system then has the final say.
    """
    try:
        product_type = client.get_product_type(uid)
    except VxcError as exc:
        logger.warning("Could not classify attachment %s: %s", uid, exc)
        return AttachmentCategory.UNKNOWN
    category = PRODUCT_TYPE_MAP.get(product_type.upper(), AttachmentCategory.UNKNOWN)
    logger.debug("Attachment %s is %s (%s)", uid, category.value, product_type)
    return category


def validate_endpoint(
    side: str,
    endpoint: Endpoint,
    category: AttachmentCategory,
    *,
    cloud_partner: bool = False,
    check_required: bool = True,
) -> None:
    """Check *endpoint* against the field rules of its *category*.

    Args:
        side: ``"a_end"`` or ``"b_end"``, used in messages.
        endpoint: Declared endpoint.
        category: Category of the endpoint's requested attachment.
        cloud_partner: The endpoint carries a cloud partner configuration;
            such endpoints need no explicit VLAN on a plain port.
        check_required: Enforce required fields and the explicit port VLAN.
            Update planning turns this off, since ``None`` there means the
            field is left as it is.

    Raises:
        InputValidationError: If a field is not allowed for the category,
            a required field is missing, or a VLAN value is out of range.
    """
    rule = ENDPOINT_FIELD_RULES[category]
    values = {
        "vlan": endpoint.vlan,
        "inner_vlan": endpoint.inner_vlan,
        "vnic_index": endpoint.vnic_index,
    }
    for name, value in values.items():
        if value is not None and name not in rule.allowed:
            if name == "vlan":
                raise InputValidationError(
                    f"{side}: virtual router and virtual appliance attachments "
                    "don't support VLAN specification"
                )
            raise InputValidationError(
                f"{side}: {name} is not supported on a {category.value} attachment"
            )
    for name in sorted(rule.required if check_required else ()):
        if values[name] is None:
            raise InputValidationError(
                f"{side}: {name} is required on a {category.value} attachment"
            )
    if (
        check_required
        and category is AttachmentCategory.PORT
        and not cloud_partner
        and endpoint.vlan is None
    ):
        raise InputValidationError(
            f"{side}: a port attachment needs an explicit VLAN, {VLAN_UNTAGGED} for "
            f"untagged or {VLAN_AUTO} to auto-assign"
        )

    if endpoint.vlan is not None and endpoint.vlan not in (VLAN_UNTAGGED, VLAN_AUTO):
        if not VLAN_MIN <= endpoint.vlan <= VLAN_MAX:
            raise InputValidationError(
                f"{side}: vlan must be {VLAN_UNTAGGED}, {VLAN_AUTO} or "
                f"{VLAN_MIN}-{VLAN_MAX}, got {endpoint.vlan}"
            )
    if endpoint.inner_vlan is not None and endpoint.inner_vlan != VLAN_UNTAGGED:
        if not VLAN_MIN <= endpoint.inner_vlan <= VLAN_MAX:
            raise InputValidationError(
                f"{side}: inner_vlan must be {VLAN_UNTAGGED} or "
                f"{VLAN_MIN}-{VLAN_MAX}, got {endpoint.inner_vlan}"
            )
