"""Endpoint and circuit change planner.

Compares the *previous* tracked circuit against the *desired* declaration
and decides, per endpoint, whether each difference is a safe in-place
update, forces replacement of the whole circuit, or must be ignored because
the provider owns the value.

Per-endpoint rules, in evaluation order:

1. An explicit VLAN on a virtual-router or virtual-appliance attachment is
   rejected with :class:`~vxcsync.client.errors.InputValidationError`.
2. A cloud partner makes the endpoint provider managed.  A requested/current
   attachment mismatch is reported as a notice only, and the server's
   attachment is fed forward as the new requested value.
3. A changed requested attachment is an in-place re-point.
4. A changed VLAN, inner VLAN or appliance interface is an in-place update.
5. Changed partner content is re-encoded and resubmitted.  On a
   cloud-attached endpoint a changed variant tag forces replacement, while
   changed content under the same tag is only reported: the provider owns
   that payload once the circuit exists.

``None`` in a desired field means "do not change", so required fields are
only enforced when a circuit is created; a desired VLAN of ``0``
(auto-assign) never counts as a change.
"""

from __future__ import annotations

import enum
import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Literal

from vxcsync.model.category import AttachmentCategory
from vxcsync.model.circuit import VLAN_AUTO, Circuit, Endpoint
from vxcsync.model.partner import PartnerConfig, is_cloud
from vxcsync.utils.classify import validate_endpoint
from vxcsync.vendor.mappings import NO_VLAN_UPDATE_PARTNERS

logger = logging.getLogger(__name__)

ChangeKind = Literal["attachment", "tagging", "partner", "field"]

_CIRCUIT_FIELDS: tuple[str, ...] = (
    "name",
    "rate_limit",
    "term",
    "shutdown",
    "cost_centre",
    "tags",
)


class EndpointState(enum.Enum):
    """Transition an endpoint goes through in one reconciliation cycle."""

    UNCHANGED = "unchanged"
    ATTACHMENT_CHANGED = "attachment_changed"
    TAGGING_CHANGED = "tagging_changed"
    PARTNER_CHANGED = "partner_changed"
    PARTNER_IS_PROVIDER_MANAGED = "partner_is_provider_managed"


@dataclass
class Change:
    """A single planned change.

    Attributes:
        kind: Category of change.
        key: Unique string key (e.g. ``"a_end:vlan"``, ``"circuit:name"``).
        details: ``{"from": ..., "to": ...}`` plus freeform metadata.
    """

    kind: ChangeKind
    key: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class EndpointPlan:
    """Reconciliation outcome for one endpoint.

    Attributes:
        side: ``"a_end"`` or ``"b_end"``.
        state: First transition reached (attachment, then tagging, then
            partner); provider-managed endpoints always report
            :attr:`EndpointState.PARTNER_IS_PROVIDER_MANAGED`.
        changes: In-place changes to include in the combined update.
        requires_replacement: The circuit must be destroyed and recreated.
        replacement_reasons: Why replacement is required.
        notices: Informational messages for the caller.
        resolved_requested_uid: Attachment to track as "requested" from now on.
    """

    side: str
    state: EndpointState = EndpointState.UNCHANGED
    changes: list[Change] = field(default_factory=list)
    requires_replacement: bool = False
    replacement_reasons: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    resolved_requested_uid: str | None = None

    def change(self, kind: ChangeKind) -> Change | None:
        """Return the first change of *kind*, if any."""
        return next((c for c in self.changes if c.kind == kind), None)

    def _replace(self, reason: str) -> None:
        self.requires_replacement = True
        self.replacement_reasons.append(reason)

    def _advance(self, state: EndpointState) -> None:
        if self.state is EndpointState.UNCHANGED:
            self.state = state


@dataclass
class CircuitPlan:
    """Combined plan for a whole circuit.

    Attributes:
        a_end: Plan for side A.
        b_end: Plan for side B.
        changes: Circuit-level field changes (name, bandwidth, term, ...).
        summary: Count per change kind across the whole plan.
    """

    a_end: EndpointPlan
    b_end: EndpointPlan
    changes: list[Change] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def requires_replacement(self) -> bool:
        return self.a_end.requires_replacement or self.b_end.requires_replacement

    @property
    def notices(self) -> list[str]:
        return self.a_end.notices + self.b_end.notices

    def all_changes(self) -> list[Change]:
        return self.changes + self.a_end.changes + self.b_end.changes

    def is_empty(self) -> bool:
        return not self.all_changes()


def _partner_tag(config: PartnerConfig | None) -> str | None:
    return None if config is None else config.partner


def plan_endpoint_changes(
    side: str,
    previous: Endpoint,
    desired: Endpoint,
    category: AttachmentCategory,
    previous_partner: PartnerConfig | None = None,
    desired_partner: PartnerConfig | None = None,
    *,
    _warn_stacklevel: int = 2,
) -> EndpointPlan:
    """Compute the in-place changes and replacement need for one endpoint.

    Args:
        side: ``"a_end"`` or ``"b_end"``.
        previous: Endpoint as tracked after the last cycle.
        desired: Endpoint as declared now.
        category: Category of the desired requested attachment.
        previous_partner: Partner configuration tracked after the last cycle.
        desired_partner: Partner configuration declared now; ``None`` leaves
            the remote configuration as is.

    Returns:
        An :class:`EndpointPlan`.

    Raises:
        InputValidationError: If *desired* breaks the field rules of *category*.
    """
    cloud_attached = is_cloud(previous_partner) or is_cloud(desired_partner)
    validate_endpoint(
        side, desired, category, cloud_partner=cloud_attached, check_required=False
    )

    plan = EndpointPlan(side=side, resolved_requested_uid=desired.requested_uid)
    effective_partner = desired_partner if desired_partner is not None else previous_partner

    # -------------------------------------------------------------- attachment
    if cloud_attached:
        plan.state = EndpointState.PARTNER_IS_PROVIDER_MANAGED
        current = previous.current_uid
        if current is not None and desired.requested_uid != current:
            notice = (
                f"{side}: cloud provider port mapping detected; requested "
                f"{desired.requested_uid}, provider assigned {current}"
            )
            plan.notices.append(notice)
            logger.info(notice)
            warnings.warn(notice, stacklevel=_warn_stacklevel)
            plan.resolved_requested_uid = current
    elif desired.requested_uid != previous.requested_uid:
        plan._advance(EndpointState.ATTACHMENT_CHANGED)
        plan.changes.append(
            Change(
                kind="attachment",
                key=f"{side}:requested_uid",
                details={"from": previous.requested_uid, "to": desired.requested_uid},
            )
        )

    # ----------------------------------------------------------------- tagging
    tagging: dict[str, Any] = {}
    if (
        desired.vlan is not None
        and desired.vlan != VLAN_AUTO
        and desired.vlan != previous.vlan
    ):
        tagging["vlan"] = {"from": previous.vlan, "to": desired.vlan}
    if desired.inner_vlan is not None and desired.inner_vlan != previous.inner_vlan:
        tagging["inner_vlan"] = {"from": previous.inner_vlan, "to": desired.inner_vlan}
    if desired.vnic_index is not None and desired.vnic_index != previous.vnic_index:
        tagging["vnic_index"] = {"from": previous.vnic_index, "to": desired.vnic_index}
    if tagging:
        plan._advance(EndpointState.TAGGING_CHANGED)
        plan.changes.append(Change(kind="tagging", key=f"{side}:tagging", details=tagging))
        tag = _partner_tag(effective_partner)
        if "vlan" in tagging and tag in NO_VLAN_UPDATE_PARTNERS:
            plan._replace(f"{side}: {tag} endpoints do not support VLAN updates")

    # ----------------------------------------------------------------- partner
    if desired_partner is not None and desired_partner != previous_partner:
        details = {
            "from": _partner_tag(previous_partner),
            "to": desired_partner.partner,
        }
        if cloud_attached and details["from"] != details["to"]:
            plan._replace(
                f"{side}: partner configuration of a cloud attachment changed "
                f"({details['from']} -> {details['to']})"
            )
        elif cloud_attached:
            notice = (
                f"{side}: {details['to']} configuration differs from the one the "
                "circuit was created with; the provider owns it, nothing is sent"
            )
            plan.notices.append(notice)
            logger.info(notice)
        else:
            plan._advance(EndpointState.PARTNER_CHANGED)
            plan.changes.append(
                Change(kind="partner", key=f"{side}:partner", details=details)
            )

    return plan


def plan_circuit_changes(
    previous: Circuit,
    desired: Circuit,
    a_category: AttachmentCategory,
    b_category: AttachmentCategory,
) -> CircuitPlan:
    """Compute the plan that moves *previous* to *desired*.

    Args:
        previous: Circuit as tracked after the last cycle.
        desired: Circuit as declared now.
        a_category: Category of the desired A-end attachment.
        b_category: Category of the desired B-end attachment.

    Returns:
        A :class:`CircuitPlan`; nothing is submitted when it requires replacement.
    """
    a_plan = plan_endpoint_changes(
        "a_end",
        previous.a_end,
        desired.a_end,
        a_category,
        previous.a_end_partner,
        desired.a_end_partner,
        _warn_stacklevel=3,
    )
    b_plan = plan_endpoint_changes(
        "b_end",
        previous.b_end,
        desired.b_end,
        b_category,
        previous.b_end_partner,
        desired.b_end_partner,
        _warn_stacklevel=3,
    )
    changes: list[Change] = []
    for name in _CIRCUIT_FIELDS:
        old, new = getattr(previous, name), getattr(desired, name)
        if old != new:
            changes.append(
                Change(kind="field", key=f"circuit:{name}", details={"from": old, "to": new})
            )

    plan = CircuitPlan(a_end=a_plan, b_end=b_plan, changes=changes)
    for change in plan.all_changes():
        plan.summary[change.kind] = plan.summary.get(change.kind, 0) + 1
    return plan
