"""HTTP implementation of :class:`~vxcsync.client.protocol.RemoteServiceClient`."""

from __future__ import annotations

from vxcsync.client import circuit_ops, prefix_list_ops
from vxcsync.client.session import ApiCredentials, ApiSession
from vxcsync.model.circuit import CircuitOrder, CircuitUpdate, RemoteCircuit
from vxcsync.model.prefix_list import RoutingPolicyList


class HttpServiceClient:
    """Provisioning API client backed by an :class:`ApiSession`.

    Args:
        base_url: API base URL.
        credentials: Client id/secret pair.
        timeout_s: Per-request timeout in seconds (default 30).
        verify_tls: Whether to verify TLS certificates (default True).
    """

    def __init__(
        self,
        base_url: str,
        credentials: ApiCredentials,
        timeout_s: float = 30.0,
        verify_tls: bool = True,
    ) -> None:
        self._session = ApiSession(
            base_url=base_url,
            credentials=credentials,
            timeout_s=timeout_s,
            verify_tls=verify_tls,
        )

    @classmethod
    def from_session(cls, session: ApiSession) -> HttpServiceClient:
        """Wrap an already-configured session."""
        client = cls.__new__(cls)
        client._session = session
        return client

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> HttpServiceClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Attachment points
    # ------------------------------------------------------------------

    def get_product_type(self, uid: str) -> str:
        return circuit_ops.get_product_type(self._session, uid)

    def lookup_partner_port(
        self,
        partner: str,
        key: str,
        rate_limit: int,
        port_choice: str | None = None,
    ) -> str:
        return circuit_ops.lookup_partner_port(
            self._session, partner, key, rate_limit, port_choice
        )

    # ------------------------------------------------------------------
    # Circuits
    # ------------------------------------------------------------------

    def create_circuit(self, order: CircuitOrder) -> str:
        return circuit_ops.create_circuit(self._session, order)

    def wait_for_provision(self, uid: str, timeout_s: float, poll_s: float) -> None:
        circuit_ops.wait_for_provision(self._session, uid, timeout_s, poll_s)

    def get_circuit(self, uid: str) -> RemoteCircuit:
        return circuit_ops.get_circuit(self._session, uid)

    def update_circuit(self, uid: str, update: CircuitUpdate) -> None:
        circuit_ops.update_circuit(self._session, uid, update)

    def delete_circuit(self, uid: str) -> None:
        circuit_ops.delete_circuit(self._session, uid)

    # ------------------------------------------------------------------
    # Routing-policy lists
    # ------------------------------------------------------------------

    def list_prefix_lists(self, router_uid: str) -> list[RoutingPolicyList]:
        return prefix_list_ops.list_prefix_lists(self._session, router_uid)

    def get_prefix_list(self, router_uid: str, list_id: int) -> RoutingPolicyList:
        return prefix_list_ops.get_prefix_list(self._session, router_uid, list_id)

    def create_prefix_list(
        self, router_uid: str, prefix_list: RoutingPolicyList
    ) -> RoutingPolicyList:
        return prefix_list_ops.create_prefix_list(self._session, router_uid, prefix_list)

    def update_prefix_list(
        self, router_uid: str, prefix_list: RoutingPolicyList
    ) -> RoutingPolicyList:
        return prefix_list_ops.update_prefix_list(self._session, router_uid, prefix_list)

    def delete_prefix_list(self, router_uid: str, list_id: int) -> None:
        prefix_list_ops.delete_prefix_list(self._session, router_uid, list_id)
