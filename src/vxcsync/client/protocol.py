"""Interface of the remote service client the reconciler depends on.

Reconciliation code only ever talks to a :class:`RemoteServiceClient`.  The
HTTP implementation lives in :mod:`vxcsync.client.api`; tests substitute an
in-memory fake.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from vxcsync.model.circuit import CircuitOrder, CircuitUpdate, RemoteCircuit
from vxcsync.model.prefix_list import RoutingPolicyList


@runtime_checkable
class RemoteServiceClient(Protocol):
    """Operations consumed from the provisioning API.

    Implementations raise :class:`~vxcsync.client.errors.RemoteNotFoundError`
    for missing resources and a
    :class:`~vxcsync.client.errors.RemoteTransientError` subclass for any
    other remote failure.  They perform no retries.
    """

    # -- attachment points ----------------------------------------------

    def get_product_type(self, uid: str) -> str:
        """Return the raw product type string of attachment point *uid*."""
        ...

    def lookup_partner_port(
        self,
        partner: str,
        key: str,
        rate_limit: int,
        port_choice: str | None = None,
    ) -> str:
        """Return the provider-facing attachment uid for a cloud partner key."""
        ...

    # -- circuits -------------------------------------------------------

    def create_circuit(self, order: CircuitOrder) -> str:
        """Order a circuit and return its server-assigned uid."""
        ...

    def wait_for_provision(self, uid: str, timeout_s: float, poll_s: float) -> None:
        """Block until circuit *uid* is provisioned or *timeout_s* elapses."""
        ...

    def get_circuit(self, uid: str) -> RemoteCircuit:
        """Read circuit *uid*."""
        ...

    def update_circuit(self, uid: str, update: CircuitUpdate) -> None:
        """Apply one combined partial update to circuit *uid*."""
        ...

    def delete_circuit(self, uid: str) -> None:
        """Cancel circuit *uid* immediately."""
        ...

    # -- routing-policy lists ------------------------------------------

    def list_prefix_lists(self, router_uid: str) -> list[RoutingPolicyList]:
        """Return summaries (id, description, family) of the router's lists."""
        ...

    def get_prefix_list(self, router_uid: str, list_id: int) -> RoutingPolicyList:
        """Return one list with its entries."""
        ...

    def create_prefix_list(
        self, router_uid: str, prefix_list: RoutingPolicyList
    ) -> RoutingPolicyList:
        """Create a list and return it with its server-assigned id."""
        ...

    def update_prefix_list(
        self, router_uid: str, prefix_list: RoutingPolicyList
    ) -> RoutingPolicyList:
        """Replace the content of an existing list."""
        ...

    def delete_prefix_list(self, router_uid: str, list_id: int) -> None:
        """Delete a list."""
        ...
