"""Shared fixtures: an in-memory stand-in for the provisioning API."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any

import pytest

from vxcsync.client.errors import (
    RemoteNotFoundError,
    RemoteRequestError,
    RemoteResponseError,
)
from vxcsync.model.circuit import (
    CircuitOrder,
    CircuitUpdate,
    EndpointOrder,
    RemoteCircuit,
    RemoteEnd,
)
from vxcsync.model.prefix_list import RoutingPolicyList

# VLAN the fake assigns when an order asks for auto-assignment.
AUTO_ASSIGNED_VLAN = 900


def _remote_end(order: EndpointOrder) -> RemoteEnd:
    vlan = order.vlan
    if vlan == 0:
        vlan = AUTO_ASSIGNED_VLAN
    return RemoteEnd(
        product_uid=order.product_uid,
        vlan=vlan if vlan and vlan > 0 else 0,
        inner_vlan=order.inner_vlan if order.inner_vlan and order.inner_vlan > 0 else 0,
        vnic_index=order.vnic_index,
        partner_config=order.partner_config,
    )


class FakeServiceClient:
    """Thread-safe in-memory implementation of ``RemoteServiceClient``.

    Attributes:
        product_types: attachment uid -> product type string.
        partner_ports: (partner, key, port_choice) -> provider port uid.
        circuits: circuit uid -> stored remote circuit.
        prefix_lists: router uid -> {list id -> list}.
        fail: (operation, key) pairs that raise ``RemoteResponseError``.
        calls: (operation, args) in call order.
    """

    def __init__(self) -> None:
        self.product_types: dict[str, str] = {}
        self.unreachable_types: set[str] = set()
        self.partner_ports: dict[tuple[str, str, str | None], str] = {}
        self.circuits: dict[str, RemoteCircuit] = {}
        self.prefix_lists: dict[str, dict[int, RoutingPolicyList]] = {}
        self.fail: set[tuple[str, Any]] = set()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.orders: list[CircuitOrder] = []
        self.updates: list[tuple[str, CircuitUpdate]] = []
        self._next_list_id = 100
        self._next_circuit = 1
        self._lock = threading.Lock()

    # -- helpers --------------------------------------------------------

    def _record(self, op: str, *args: Any) -> None:
        with self._lock:
            self.calls.append((op, args))

    def _maybe_fail(self, op: str, key: Any) -> None:
        if (op, key) in self.fail:
            raise RemoteResponseError(500, f"fake://{op}/{key}", f"{op} {key} exploded")

    def ops(self, op: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == op]

    def add_prefix_list(self, router_uid: str, plist: RoutingPolicyList) -> RoutingPolicyList:
        stored = self.prefix_lists.setdefault(router_uid, {})
        if plist.list_id is None:
            plist = replace(plist, list_id=self._next_list_id)
            self._next_list_id += 1
        stored[plist.list_id] = plist  # type: ignore[index]
        return plist

    # -- attachment points ----------------------------------------------

    def get_product_type(self, uid: str) -> str:
        self._record("get_product_type", uid)
        if uid in self.unreachable_types:
            raise RemoteRequestError(f"fake://product/{uid}", ConnectionError("down"))
        if uid not in self.product_types:
            raise RemoteNotFoundError(f"fake://product/{uid}")
        return self.product_types[uid]

    def lookup_partner_port(
        self,
        partner: str,
        key: str,
        rate_limit: int,
        port_choice: str | None = None,
    ) -> str:
        self._record("lookup_partner_port", partner, key, rate_limit, port_choice)
        try:
            return self.partner_ports[(partner, key, port_choice)]
        except KeyError:
            raise RemoteNotFoundError(f"fake://secure/{partner}/{key}") from None

    # -- circuits -------------------------------------------------------

    def create_circuit(self, order: CircuitOrder) -> str:
        self._record("create_circuit", order)
        uid = f"vxc-{self._next_circuit}"
        self._next_circuit += 1
        self.orders.append(order)
        self.circuits[uid] = RemoteCircuit(
            uid=uid,
            name=order.name,
            rate_limit=order.rate_limit,
            term=order.term,
            shutdown=order.shutdown,
            cost_centre=order.cost_centre,
            tags=dict(order.tags),
            provisioning_status="LIVE",
            a_end=_remote_end(order.a_end),
            b_end=_remote_end(order.b_end),
        )
        return uid

    def wait_for_provision(self, uid: str, timeout_s: float, poll_s: float) -> None:
        self._record("wait_for_provision", uid, timeout_s, poll_s)

    def get_circuit(self, uid: str) -> RemoteCircuit:
        self._record("get_circuit", uid)
        if uid not in self.circuits:
            raise RemoteNotFoundError(f"fake://product/{uid}")
        return self.circuits[uid]

    def update_circuit(self, uid: str, update: CircuitUpdate) -> None:
        self._record("update_circuit", uid, update)
        self._maybe_fail("update_circuit", uid)
        if uid not in self.circuits:
            raise RemoteNotFoundError(f"fake://vxc/{uid}")
        self.updates.append((uid, update))
        current = self.circuits[uid]
        top = {
            k: getattr(update, k)
            for k in ("name", "rate_limit", "term", "shutdown", "cost_centre", "tags")
            if getattr(update, k) is not None
        }
        ends = {}
        for side in ("a_end", "b_end"):
            end, change = getattr(current, side), getattr(update, side)
            ends[side] = replace(
                end,
                product_uid=change.product_uid or end.product_uid,
                vlan=change.vlan if change.vlan is not None else end.vlan,
                inner_vlan=change.inner_vlan if change.inner_vlan is not None else end.inner_vlan,
                vnic_index=change.vnic_index if change.vnic_index is not None else end.vnic_index,
                partner_config=change.partner_config or end.partner_config,
            )
        self.circuits[uid] = replace(current, **top, **ends)

    def delete_circuit(self, uid: str) -> None:
        self._record("delete_circuit", uid)
        if uid not in self.circuits:
            raise RemoteNotFoundError(f"fake://product/{uid}")
        self.circuits[uid] = replace(self.circuits[uid], provisioning_status="CANCELLED")

    # -- routing-policy lists ------------------------------------------

    def list_prefix_lists(self, router_uid: str) -> list[RoutingPolicyList]:
        self._record("list_prefix_lists", router_uid)
        stored = self.prefix_lists.get(router_uid, {})
        return [replace(p, entries=[]) for _, p in sorted(stored.items())]

    def get_prefix_list(self, router_uid: str, list_id: int) -> RoutingPolicyList:
        self._record("get_prefix_list", router_uid, list_id)
        self._maybe_fail("get_prefix_list", list_id)
        try:
            return self.prefix_lists[router_uid][list_id]
        except KeyError:
            raise RemoteNotFoundError(f"fake://prefixList/{list_id}") from None

    def create_prefix_list(
        self, router_uid: str, prefix_list: RoutingPolicyList
    ) -> RoutingPolicyList:
        self._record("create_prefix_list", router_uid, prefix_list.description)
        self._maybe_fail("create_prefix_list", prefix_list.description)
        with self._lock:
            return self.add_prefix_list(router_uid, replace(prefix_list, list_id=None))

    def update_prefix_list(
        self, router_uid: str, prefix_list: RoutingPolicyList
    ) -> RoutingPolicyList:
        self._record("update_prefix_list", router_uid, prefix_list.list_id)
        self._maybe_fail("update_prefix_list", prefix_list.list_id)
        with self._lock:
            self.prefix_lists[router_uid][prefix_list.list_id] = prefix_list  # type: ignore[index]
        return prefix_list

    def delete_prefix_list(self, router_uid: str, list_id: int) -> None:
        self._record("delete_prefix_list", router_uid, list_id)
        self._maybe_fail("delete_prefix_list", list_id)
        with self._lock:
            if list_id not in self.prefix_lists.get(router_uid, {}):
                raise RemoteNotFoundError(f"fake://prefixList/{list_id}")
            del self.prefix_lists[router_uid][list_id]


@pytest.fixture
def fake_client() -> FakeServiceClient:
    return FakeServiceClient()
