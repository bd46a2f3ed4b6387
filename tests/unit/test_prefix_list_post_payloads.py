"""Unit tests for prefix-list payloads in vxcsync.client.prefix_list_ops."""

from __future__ import annotations

import json

import pytest
import responses as responses_lib

from vxcsync.client.errors import RemoteNotFoundError, RemoteParseError
from vxcsync.client.prefix_list_ops import (
    create_prefix_list,
    delete_prefix_list,
    get_prefix_list,
    list_prefix_lists,
    prefix_list_from_wire,
    update_prefix_list,
)
from vxcsync.client.session import ApiCredentials, ApiSession
from vxcsync.model.prefix_list import PrefixListEntry, RoutingPolicyList

_BASE = "https://api.example.net"
_ROUTER = "mcr-1"


def _session() -> ApiSession:
    session = ApiSession(base_url=_BASE, credentials=ApiCredentials("id", "secret"))
    session._token = "tok"
    session._expires_at = float("inf")
    return session


def _plist(list_id: int | None = None) -> RoutingPolicyList:
    return RoutingPolicyList(
        description="customers",
        address_family="IPv4",
        entries=[PrefixListEntry("permit", "10.0.0.0/8", ge=16, le=24)],
        list_id=list_id,
    )


class TestWire:
    def test_zero_bounds_filled_from_prefix(self) -> None:
        plist = prefix_list_from_wire(
            {
                "id": 7,
                "description": "v6",
                "addressFamily": "IPv6",
                "entries": [{"action": "deny", "prefix": "2001:db8::/32", "ge": 0, "le": 0}],
            }
        )
        assert plist.list_id == 7
        assert plist.entries[0].ge == 32
        assert plist.entries[0].le == 128

    def test_explicit_bounds_kept(self) -> None:
        plist = prefix_list_from_wire(
            {"id": 1, "entries": [{"action": "permit", "prefix": "10.0.0.0/8", "ge": 12, "le": 20}]}
        )
        assert (plist.entries[0].ge, plist.entries[0].le) == (12, 20)

    def test_non_object_raises(self) -> None:
        with pytest.raises(RemoteParseError):
            prefix_list_from_wire(["nope"])


class TestCalls:
    @responses_lib.activate
    def test_list_summaries(self) -> None:
        responses_lib.add(
            responses_lib.GET,
            f"{_BASE}/v2/product/mcr2/{_ROUTER}/prefixLists",
            json={"data": [{"id": 3, "description": "a", "addressFamily": "IPv4"}]},
        )
        lists = list_prefix_lists(_session(), _ROUTER)
        assert [(p.list_id, p.description) for p in lists] == [(3, "a")]

    @responses_lib.activate
    def test_get_missing_raises_not_found(self) -> None:
        responses_lib.add(
            responses_lib.GET, f"{_BASE}/v2/product/mcr2/{_ROUTER}/prefixList/9", status=404
        )
        with pytest.raises(RemoteNotFoundError):
            get_prefix_list(_session(), _ROUTER, 9)

    @responses_lib.activate
    def test_create_posts_body_and_returns_id(self) -> None:
        responses_lib.add(
            responses_lib.POST,
            f"{_BASE}/v2/product/mcr2/{_ROUTER}/prefixList",
            json={
                "data": {
                    "id": 42,
                    "description": "customers",
                    "addressFamily": "IPv4",
                    "entries": [
                        {"action": "permit", "prefix": "10.0.0.0/8", "ge": 16, "le": 24}
                    ],
                }
            },
        )
        created = create_prefix_list(_session(), _ROUTER, _plist())
        assert created.list_id == 42
        assert json.loads(responses_lib.calls[0].request.body or "{}") == {
            "description": "customers",
            "addressFamily": "IPv4",
            "entries": [{"action": "permit", "prefix": "10.0.0.0/8", "ge": 16, "le": 24}],
        }

    @responses_lib.activate
    def test_update_with_empty_body_returns_input(self) -> None:
        responses_lib.add(
            responses_lib.PUT, f"{_BASE}/v2/product/mcr2/{_ROUTER}/prefixList/5", body=""
        )
        plist = _plist(5)
        assert update_prefix_list(_session(), _ROUTER, plist) is plist

    def test_update_without_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            update_prefix_list(_session(), _ROUTER, _plist())

    @responses_lib.activate
    def test_delete(self) -> None:
        responses_lib.add(
            responses_lib.DELETE, f"{_BASE}/v2/product/mcr2/{_ROUTER}/prefixList/5", json={}
        )
        delete_prefix_list(_session(), _ROUTER, 5)
        assert responses_lib.calls[0].request.method == "DELETE"
