"""Unit tests for vxcsync.utils.render."""

from __future__ import annotations

import json

from vxcsync.model.category import AttachmentCategory
from vxcsync.model.circuit import Circuit, Endpoint
from vxcsync.model.partner import AwsPartnerConfig
from vxcsync.model.prefix_list import PrefixListEntry, RoutingPolicyList
from vxcsync.utils.endpoint_diff import plan_circuit_changes
from vxcsync.utils.prefix_list_diff import plan_prefix_list_changes
from vxcsync.utils.render import render_plan, render_prefix_list_changes

PORT = AttachmentCategory.PORT


def _circuit(b_vlan: int | None = None, rate_limit: int = 100) -> Circuit:
    return Circuit(
        name="vxc",
        rate_limit=rate_limit,
        a_end=Endpoint("port-a", "port-a", vlan=10),
        b_end=Endpoint("aws-port", "aws-port", vlan=b_vlan),
        b_end_partner=AwsPartnerConfig(owner_account="123456789012"),
    )


def test_render_plan_shape() -> None:
    plan = plan_circuit_changes(_circuit(), _circuit(rate_limit=500), PORT, PORT)
    rendered = render_plan(plan)

    assert rendered["summary"] == {"field": 1}
    assert rendered["total_changes"] == 1
    assert rendered["requires_replacement"] is False
    assert rendered["changes"] == [
        {"kind": "field", "key": "circuit:rate_limit", "details": {"from": 100, "to": 500}}
    ]
    assert rendered["a_end"]["state"] == "unchanged"
    assert rendered["b_end"]["state"] == "partner_is_provider_managed"
    json.dumps(rendered)


def test_render_plan_replacement_reasons() -> None:
    plan = plan_circuit_changes(_circuit(), _circuit(b_vlan=300), PORT, PORT)
    rendered = render_plan(plan)

    assert rendered["requires_replacement"] is True
    assert rendered["b_end"]["requires_replacement"] is True
    assert "aws" in rendered["b_end"]["replacement_reasons"][0]
    assert rendered["b_end"]["changes"][0]["kind"] == "tagging"


def test_render_prefix_list_changes() -> None:
    entry = [PrefixListEntry("permit", "10.0.0.0/8")]
    previous = [
        RoutingPolicyList("A", entries=entry, list_id=1),
        RoutingPolicyList("B", entries=entry, list_id=2),
    ]
    desired = [
        RoutingPolicyList("A2", entries=entry, list_id=1),
        RoutingPolicyList("C", entries=entry),
    ]
    rendered = render_prefix_list_changes(plan_prefix_list_changes(previous, desired))
    assert rendered == {"create": ["C"], "update": [1], "delete": [2]}
