"""Unit tests for circuit payload formation in vxcsync.client.circuit_ops.

These tests verify the JSON bodies sent to the provisioning API and the
parsing of its responses, without a real API.  The :mod:`responses`
library is used to intercept HTTP calls.
"""

from __future__ import annotations

import json

import pytest
import responses as responses_lib

from vxcsync.client.circuit_ops import (
    circuit_from_wire,
    create_circuit,
    delete_circuit,
    get_circuit,
    get_product_type,
    lookup_partner_port,
    update_circuit,
    update_to_wire,
    wait_for_provision,
)
from vxcsync.client.errors import (
    ProvisioningTimeoutError,
    RemoteNotFoundError,
    RemoteParseError,
)
from vxcsync.client.session import ApiCredentials, ApiSession
from vxcsync.model.circuit import (
    CircuitOrder,
    CircuitUpdate,
    EndpointOrder,
    EndpointUpdate,
)

_BASE = "https://api.example.net"


def _session() -> ApiSession:
    session = ApiSession(base_url=_BASE, credentials=ApiCredentials("id", "secret"))
    session._token = "tok"  # skip login
    session._expires_at = float("inf")
    return session


def _circuit_doc(**overrides: object) -> dict[str, object]:
    doc: dict[str, object] = {
        "productUid": "vxc-1",
        "productName": "core link",
        "rateLimit": 500,
        "contractTermMonths": 12,
        "shutdown": False,
        "costCentre": "net-ops",
        "provisioningStatus": "LIVE",
        "resourceTags": [{"key": "env", "value": "prod"}],
        "aEnd": {"productUid": "port-a", "vlan": 100, "innerVlan": 0},
        "bEnd": {
            "productUid": "port-b",
            "vlan": 0,
            "partnerConfig": {"connectType": "TRANSIT"},
        },
    }
    doc.update(overrides)
    return doc


def _body(call_index: int = 0) -> object:
    return json.loads(responses_lib.calls[call_index].request.body or "null")


# ---------------------------------------------------------------------------
# Attachment points
# ---------------------------------------------------------------------------

class TestAttachmentLookups:
    @responses_lib.activate
    def test_product_type(self) -> None:
        responses_lib.add(
            responses_lib.GET,
            f"{_BASE}/v2/product/mcr-1",
            json={"data": {"productUid": "mcr-1", "productType": "MCR2"}},
        )
        assert get_product_type(_session(), "mcr-1") == "MCR2"

    @responses_lib.activate
    def test_partner_port_selected_by_choice(self) -> None:
        responses_lib.add(
            responses_lib.GET,
            f"{_BASE}/v2/secure/azure/sk-1",
            json={
                "data": {
                    "megaports": [
                        {"productUid": "az-primary", "type": "primary"},
                        {"productUid": "az-secondary", "type": "secondary"},
                    ]
                }
            },
        )
        uid = lookup_partner_port(_session(), "azure", "sk-1", 1000, "secondary")
        assert uid == "az-secondary"
        assert "speed=1000" in responses_lib.calls[0].request.url

    @responses_lib.activate
    def test_partner_port_first_match_without_choice(self) -> None:
        responses_lib.add(
            responses_lib.GET,
            f"{_BASE}/v2/secure/google/pk-1",
            json={"data": {"megaports": [{"productUid": "gcp-1"}, {"productUid": "gcp-2"}]}},
        )
        assert lookup_partner_port(_session(), "google", "pk-1", 50) == "gcp-1"

    @responses_lib.activate
    def test_partner_port_missing_raises_not_found(self) -> None:
        responses_lib.add(
            responses_lib.GET,
            f"{_BASE}/v2/secure/oracle/oc-1",
            json={"data": {"megaports": []}},
        )
        with pytest.raises(RemoteNotFoundError):
            lookup_partner_port(_session(), "oracle", "oc-1", 50)


# ---------------------------------------------------------------------------
# create_circuit
# ---------------------------------------------------------------------------

class TestCreateCircuit:
    @responses_lib.activate
    def test_order_payload(self) -> None:
        responses_lib.add(
            responses_lib.POST,
            f"{_BASE}/v3/networkdesign/buy",
            json={"data": [{"technicalServiceUid": "vxc-9"}]},
        )
        order = CircuitOrder(
            name="to cloud",
            rate_limit=200,
            term=12,
            tags={"env": "prod"},
            a_end=EndpointOrder(product_uid="mve-1", inner_vlan=300, vnic_index=1),
            b_end=EndpointOrder(
                product_uid="aws-port",
                vlan=-1,
                partner_config={"connectType": "AWS", "ownerAccount": "123"},
            ),
        )
        assert create_circuit(_session(), order) == "vxc-9"

        body = _body()
        assert isinstance(body, list)
        assert body[0]["productUid"] == "mve-1"
        vxc = body[0]["associatedVxcs"][0]
        assert vxc["productName"] == "to cloud"
        assert vxc["rateLimit"] == 200
        assert vxc["resourceTags"] == [{"key": "env", "value": "prod"}]
        assert vxc["aEnd"] == {"vxcOrderMVEConfig": {"innerVLAN": 300, "vNicIndex": 1}}
        assert vxc["bEnd"] == {
            "productUid": "aws-port",
            "vlan": -1,
            "partnerConfig": {"connectType": "AWS", "ownerAccount": "123"},
        }

    @responses_lib.activate
    def test_unexpected_response_raises_parse_error(self) -> None:
        responses_lib.add(
            responses_lib.POST, f"{_BASE}/v3/networkdesign/buy", json={"data": []}
        )
        order = CircuitOrder(
            name="x",
            rate_limit=1,
            term=1,
            a_end=EndpointOrder("a"),
            b_end=EndpointOrder("b"),
        )
        with pytest.raises(RemoteParseError):
            create_circuit(_session(), order)


# ---------------------------------------------------------------------------
# get / update / delete
# ---------------------------------------------------------------------------

class TestReadUpdateDelete:
    def test_circuit_from_wire(self) -> None:
        remote = circuit_from_wire(_circuit_doc())
        assert remote.uid == "vxc-1"
        assert remote.term == 12
        assert remote.tags == {"env": "prod"}
        assert remote.a_end.vlan == 100
        assert remote.b_end.vlan == 0
        assert remote.b_end.partner_config == {"connectType": "TRANSIT"}

    def test_circuit_from_wire_missing_end_raises(self) -> None:
        doc = _circuit_doc()
        del doc["bEnd"]
        with pytest.raises(RemoteParseError):
            circuit_from_wire(doc)

    @responses_lib.activate
    def test_get_circuit(self) -> None:
        responses_lib.add(
            responses_lib.GET, f"{_BASE}/v2/product/vxc-1", json={"data": _circuit_doc()}
        )
        assert get_circuit(_session(), "vxc-1").provisioning_status == "LIVE"

    def test_update_to_wire_omits_unset(self) -> None:
        update = CircuitUpdate(
            rate_limit=1000,
            tags={"b": "2", "a": "1"},
            a_end=EndpointUpdate(vlan=200),
            b_end=EndpointUpdate(product_uid="port-z", vnic_index=2),
        )
        assert update_to_wire(update) == {
            "rateLimit": 1000,
            "resourceTags": [{"key": "a", "value": "1"}, {"key": "b", "value": "2"}],
            "aEndVlan": 200,
            "bEndProductUid": "port-z",
            "bVnicIndex": 2,
        }

    @responses_lib.activate
    def test_update_sends_put(self) -> None:
        responses_lib.add(responses_lib.PUT, f"{_BASE}/v3/product/vxc/vxc-1", json={})
        update_circuit(_session(), "vxc-1", CircuitUpdate(name="renamed"))
        assert _body() == {"name": "renamed"}

    def test_empty_update_sends_nothing(self) -> None:
        with responses_lib.RequestsMock() as rsps:
            update_circuit(_session(), "vxc-1", CircuitUpdate())
            assert len(rsps.calls) == 0

    @responses_lib.activate
    def test_delete_posts_cancel_now(self) -> None:
        responses_lib.add(
            responses_lib.POST, f"{_BASE}/v3/product/vxc-1/action/CANCEL_NOW", json={}
        )
        delete_circuit(_session(), "vxc-1")
        assert len(responses_lib.calls) == 1


# ---------------------------------------------------------------------------
# wait_for_provision
# ---------------------------------------------------------------------------

class TestWaitForProvision:
    @responses_lib.activate
    def test_polls_until_live(self) -> None:
        url = f"{_BASE}/v2/product/vxc-1"
        responses_lib.add(
            responses_lib.GET, url, json={"data": _circuit_doc(provisioningStatus="NEW")}
        )
        responses_lib.add(
            responses_lib.GET, url, json={"data": _circuit_doc(provisioningStatus="LIVE")}
        )
        sleeps: list[float] = []
        wait_for_provision(
            _session(), "vxc-1", 60.0, 5.0, clock=lambda: 0.0, sleep=sleeps.append
        )
        assert sleeps == [5.0]

    @responses_lib.activate
    def test_times_out(self) -> None:
        responses_lib.add(
            responses_lib.GET,
            f"{_BASE}/v2/product/vxc-1",
            json={"data": _circuit_doc(provisioningStatus="DESIGN")},
        )
        ticks = iter([0.0, 10.0, 20.0, 30.0])
        with pytest.raises(ProvisioningTimeoutError) as exc_info:
            wait_for_provision(
                _session(), "vxc-1", 15.0, 5.0, clock=lambda: next(ticks), sleep=lambda _: None
            )
        assert exc_info.value.status == "DESIGN"
