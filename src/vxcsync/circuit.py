"""Circuit orchestration: create, read, update and delete a virtual circuit.

Sequences classification, partner encoding, remote calls and
reconciliation for both endpoints, and merges the server's authoritative
state back into the caller's declarative :class:`~vxcsync.model.circuit.Circuit`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from vxcsync.client.errors import InputValidationError, RemoteNotFoundError
from vxcsync.client.protocol import RemoteServiceClient
from vxcsync.model.category import AttachmentCategory
from vxcsync.model.circuit import (
    VLAN_UNTAGGED,
    Circuit,
    CircuitOrder,
    CircuitUpdate,
    Endpoint,
    EndpointOrder,
    EndpointUpdate,
    RemoteCircuit,
    RemoteEnd,
)
from vxcsync.model.partner import AEndPartnerConfig, PartnerConfig, is_cloud
from vxcsync.model.settings import SyncSettings
from vxcsync.utils.classify import classify_attachment, validate_endpoint
from vxcsync.utils.endpoint_diff import CircuitPlan, EndpointPlan, plan_circuit_changes
from vxcsync.utils.normalize import inner_vlan_from_remote, vlan_from_remote
from vxcsync.utils.partner_codec import (
    EncodedPartner,
    decode_partner,
    encode_for_endpoint,
    fetch_policy_ids,
    partner_tag_of,
)
from vxcsync.vendor.mappings import GONE_STATES, ROUTER_PARTNERS

logger = logging.getLogger(__name__)

_NO_VLAN_CATEGORIES: frozenset[AttachmentCategory] = frozenset(
    {AttachmentCategory.VROUTER, AttachmentCategory.VAPPLIANCE}
)


@dataclass
class UpdateResult:
    """Outcome of :meth:`CircuitOrchestrator.update`.

    Attributes:
        circuit: Circuit state after the update; ``None`` when the plan
            requires replacement and nothing was submitted.
        plan: The plan that was computed.
    """

    circuit: Circuit | None
    plan: CircuitPlan

    @property
    def requires_replacement(self) -> bool:
        return self.plan.requires_replacement


class CircuitOrchestrator:
    """Drives one circuit through its lifecycle against a remote service.

    Args:
        client: Remote service client.
        settings: Orchestration settings; defaults to :class:`SyncSettings`.
    """

    def __init__(
        self,
        client: RemoteServiceClient,
        settings: SyncSettings | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or SyncSettings()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, desired: Circuit) -> Circuit:
        """Order *desired*, wait for it to provision and return the read-back state.

        Raises:
            InputValidationError: If an endpoint breaks its category's field
                rules or a partner configuration cannot be encoded.  Raised
                before the circuit is ordered.
        """
        a_cat = classify_attachment(self._client, desired.a_end.requested_uid)
        b_cat = classify_attachment(self._client, desired.b_end.requested_uid)
        validate_endpoint(
            "a_end", desired.a_end, a_cat, cloud_partner=is_cloud(desired.a_end_partner)
        )
        validate_endpoint(
            "b_end", desired.b_end, b_cat, cloud_partner=is_cloud(desired.b_end_partner)
        )

        a_encoded = self._encode(desired.a_end_partner, desired.a_end, desired, None)
        a_attachment = a_encoded.attachment_uid if a_encoded else desired.a_end.requested_uid
        b_encoded = self._encode(desired.b_end_partner, desired.b_end, desired, a_attachment)

        order = self.to_remote(desired, a_encoded, b_encoded, (a_cat, b_cat))
        uid = self._client.create_circuit(order)
        logger.info("Created circuit %r (%s)", desired.name, uid)
        if self._settings.wait_for_provision:
            self._client.wait_for_provision(
                uid,
                self._settings.provision_timeout_s,
                self._settings.provision_poll_s,
            )
        remote = self._client.get_circuit(uid)
        return self.from_remote(remote, replace(desired, uid=uid))

    def read(self, tracked: Circuit) -> Circuit | None:
        """Refresh *tracked* from the server.

        Returns:
            The merged circuit, or ``None`` if the circuit no longer exists
            (not found, cancelled or decommissioned) and should be dropped
            from tracked state.
        """
        uid = _require_uid(tracked)
        try:
            remote = self._client.get_circuit(uid)
        except RemoteNotFoundError:
            logger.info("Circuit %s not found; removing from state", uid)
            return None
        if remote.provisioning_status in GONE_STATES:
            logger.info(
                "Circuit %s is %s; removing from state", uid, remote.provisioning_status
            )
            return None
        return self.from_remote(remote, tracked)

    def plan(self, previous: Circuit, desired: Circuit) -> CircuitPlan:
        """Classify the desired endpoints and plan the changes from *previous*."""
        a_cat = classify_attachment(self._client, desired.a_end.requested_uid)
        b_cat = classify_attachment(self._client, desired.b_end.requested_uid)
        return plan_circuit_changes(previous, desired, a_cat, b_cat)

    def update(self, previous: Circuit, desired: Circuit) -> UpdateResult:
        """Apply the in-place changes from *previous* to *desired*.

        When the plan requires replacement nothing is submitted and the
        result carries ``circuit=None``; the caller destroys and recreates.

        Raises:
            RemoteNotFoundError: If the circuit no longer exists.
        """
        uid = _require_uid(previous)
        plan = self.plan(previous, desired)
        if plan.requires_replacement:
            logger.info(
                "Circuit %s requires replacement: %s",
                uid,
                "; ".join(plan.a_end.replacement_reasons + plan.b_end.replacement_reasons),
            )
            return UpdateResult(circuit=None, plan=plan)

        update = self.build_update(previous, desired, plan)
        if update.is_empty():
            logger.debug("Circuit %s is up to date", uid)
        else:
            self._client.update_circuit(uid, update)

        tracked = replace(
            desired,
            uid=uid,
            a_end=replace(desired.a_end, requested_uid=plan.a_end.resolved_requested_uid),
            b_end=replace(desired.b_end, requested_uid=plan.b_end.resolved_requested_uid),
            a_end_partner=_keep(desired.a_end_partner, previous.a_end_partner),
            b_end_partner=_keep(desired.b_end_partner, previous.b_end_partner),
        )
        remote = self._client.get_circuit(uid)
        return UpdateResult(circuit=self.from_remote(remote, tracked), plan=plan)

    def delete(self, tracked: Circuit) -> None:
        """Cancel the circuit; an already missing circuit counts as deleted."""
        uid = _require_uid(tracked)
        try:
            self._client.delete_circuit(uid)
        except RemoteNotFoundError:
            logger.info("Circuit %s already gone", uid)

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def from_remote(self, remote: RemoteCircuit, tracked: Circuit) -> Circuit:
        """Merge the server's view of a circuit into the tracked declaration.

        Requested attachments stay as tracked; current attachments, VLANs
        and top-level fields come from the server.  Cloud partner
        configurations are kept verbatim.
        """
        a_partner = self._decode(remote.a_end, tracked.a_end_partner, remote.a_end)
        b_partner = self._decode(remote.b_end, tracked.b_end_partner, remote.a_end)
        return Circuit(
            uid=remote.uid,
            name=remote.name,
            rate_limit=remote.rate_limit,
            term=remote.term,
            shutdown=remote.shutdown,
            cost_centre=remote.cost_centre,
            tags=dict(remote.tags),
            provisioning_status=remote.provisioning_status,
            a_end=_endpoint_from_remote(remote.a_end, tracked.a_end),
            b_end=_endpoint_from_remote(remote.b_end, tracked.b_end),
            a_end_partner=a_partner,
            b_end_partner=b_partner,
        )

    @staticmethod
    def to_remote(
        desired: Circuit,
        a_encoded: EncodedPartner | None,
        b_encoded: EncodedPartner | None,
        categories: tuple[AttachmentCategory, AttachmentCategory] = (
            AttachmentCategory.UNKNOWN,
            AttachmentCategory.UNKNOWN,
        ),
    ) -> CircuitOrder:
        """Build the creation request for *desired* from pre-encoded partners."""
        return CircuitOrder(
            name=desired.name,
            rate_limit=desired.rate_limit,
            term=desired.term,
            shutdown=desired.shutdown,
            cost_centre=desired.cost_centre,
            tags=dict(desired.tags),
            a_end=_endpoint_order(desired.a_end, a_encoded, categories[0]),
            b_end=_endpoint_order(desired.b_end, b_encoded, categories[1]),
        )

    def build_update(
        self, previous: Circuit, desired: Circuit, plan: CircuitPlan
    ) -> CircuitUpdate:
        """Translate *plan* into one combined update request."""
        top: dict[str, Any] = {}
        for change in plan.changes:
            name = change.key.split(":", 1)[1]
            top[name] = change.details["to"]
        a_policy_router = previous.a_end.current_uid or previous.a_end.requested_uid
        return CircuitUpdate(
            **top,
            a_end=self._endpoint_update(
                plan.a_end, desired.a_end, desired.a_end_partner, desired, None
            ),
            b_end=self._endpoint_update(
                plan.b_end, desired.b_end, desired.b_end_partner, desired, a_policy_router
            ),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _endpoint_update(
        self,
        plan: EndpointPlan,
        endpoint: Endpoint,
        partner: PartnerConfig | None,
        desired: Circuit,
        a_attachment: str | None,
    ) -> EndpointUpdate:
        update = EndpointUpdate()
        if plan.change("attachment") is not None:
            update.product_uid = endpoint.requested_uid
        tagging = plan.change("tagging")
        if tagging is not None:
            for name in ("vlan", "inner_vlan", "vnic_index"):
                if name in tagging.details:
                    setattr(update, name, tagging.details[name]["to"])
        if plan.change("partner") is not None and partner is not None:
            encoded = self._encode(partner, endpoint, desired, a_attachment)
            update.partner_config = encoded.payload if encoded else None
        return update

    def _encode(
        self,
        partner: PartnerConfig | None,
        endpoint: Endpoint,
        desired: Circuit,
        a_attachment: str | None,
    ) -> EncodedPartner | None:
        if partner is None:
            return None
        policy_router = endpoint.requested_uid
        if isinstance(partner, AEndPartnerConfig) and a_attachment is not None:
            policy_router = a_attachment
        return encode_for_endpoint(
            self._client,
            partner,
            endpoint.requested_uid,
            desired.rate_limit,
            policy_router_uid=policy_router,
        )

    def _decode(
        self,
        end: RemoteEnd,
        tracked: PartnerConfig | None,
        a_end: RemoteEnd,
    ) -> PartnerConfig | None:
        wire = end.partner_config
        if wire is None:
            return tracked
        tag = partner_tag_of(wire)
        policy_names: dict[int, str] = {}
        if tag in ROUTER_PARTNERS:
            router_uid = a_end.product_uid if tag == "a-end" else end.product_uid
            ids = fetch_policy_ids(self._client, router_uid)
            policy_names = {v: k for k, v in ids.items()}
        return decode_partner(wire, tracked, policy_names)


def _keep(
    desired: PartnerConfig | None, previous: PartnerConfig | None
) -> PartnerConfig | None:
    if desired is None:
        return previous
    # a created cloud configuration is never resubmitted under the same tag
    if is_cloud(previous) and desired.partner == previous.partner:  # type: ignore[union-attr]
        return previous
    return desired


def _require_uid(circuit: Circuit) -> str:
    if not circuit.uid:
        raise InputValidationError(f"Circuit {circuit.name!r} has no uid")
    return circuit.uid


def _endpoint_from_remote(end: RemoteEnd, tracked: Endpoint) -> Endpoint:
    return Endpoint(
        requested_uid=tracked.requested_uid,
        current_uid=end.product_uid,
        vlan=vlan_from_remote(end.vlan),
        inner_vlan=inner_vlan_from_remote(end.inner_vlan, tracked.inner_vlan),
        vnic_index=end.vnic_index,
    )


def _endpoint_order(
    endpoint: Endpoint,
    encoded: EncodedPartner | None,
    category: AttachmentCategory,
) -> EndpointOrder:
    vlan = endpoint.vlan
    if vlan is None and category not in _NO_VLAN_CATEGORIES:
        vlan = VLAN_UNTAGGED
    return EndpointOrder(
        product_uid=encoded.attachment_uid if encoded else endpoint.requested_uid,
        vlan=vlan,
        inner_vlan=endpoint.inner_vlan,
        vnic_index=endpoint.vnic_index,
        partner_config=encoded.payload if encoded else None,
    )
