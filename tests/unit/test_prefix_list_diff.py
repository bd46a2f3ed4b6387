"""Unit tests for vxcsync.utils.prefix_list_diff.plan_prefix_list_changes."""

from __future__ import annotations

import pytest

from vxcsync.client.errors import InputValidationError
from vxcsync.model.prefix_list import PrefixListEntry, RoutingPolicyList
from vxcsync.utils.normalize import normalize_prefix_list
from vxcsync.utils.prefix_list_diff import plan_prefix_list_changes

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENTRY = PrefixListEntry("permit", "10.0.0.0/8")


def make_list(desc: str, list_id: int | None = None, **kwargs: object) -> RoutingPolicyList:
    plist = RoutingPolicyList(description=desc, entries=[ENTRY], list_id=list_id, **kwargs)  # type: ignore[arg-type]
    return normalize_prefix_list(plist)


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------


def test_update_create_delete_partition() -> None:
    previous = [make_list("A", 1), make_list("B", 2)]
    desired = [make_list("A-updated", 1), make_list("C")]
    cs = plan_prefix_list_changes(previous, desired)
    assert [p.list_id for p in cs.update] == [1]
    assert cs.update[0].description == "A-updated"
    assert [p.description for p in cs.create] == ["C"]
    assert [p.list_id for p in cs.delete] == [2]


def test_unchanged_list_not_updated() -> None:
    previous = [make_list("A", 1)]
    cs = plan_prefix_list_changes(previous, [make_list("A", 1)])
    assert cs.is_empty()


def test_unfilled_desired_bounds_match_previous() -> None:
    previous = [make_list("A", 1)]
    desired = [RoutingPolicyList("A", entries=[ENTRY], list_id=1)]
    assert plan_prefix_list_changes(previous, desired).is_empty()


def test_unfilled_previous_bounds_match_unfilled_desired() -> None:
    previous = [RoutingPolicyList("A", entries=[ENTRY], list_id=1)]
    desired = [RoutingPolicyList("A", entries=[ENTRY], list_id=1)]
    assert plan_prefix_list_changes(previous, desired).is_empty()


def test_delete_returns_previous_list_as_given() -> None:
    stale = RoutingPolicyList("B", entries=[ENTRY], list_id=2)
    cs = plan_prefix_list_changes([stale], [])
    assert cs.delete == [stale]
    assert cs.delete[0].entries[0].ge is None


def test_entry_change_is_update() -> None:
    previous = [make_list("A", 1)]
    desired = [
        RoutingPolicyList("A", entries=[PrefixListEntry("deny", "10.0.0.0/8")], list_id=1)
    ]
    cs = plan_prefix_list_changes(previous, desired)
    assert [p.list_id for p in cs.update] == [1]


def test_empty_desired_and_previous_plans_nothing() -> None:
    assert plan_prefix_list_changes([], []).is_empty()


def test_empty_desired_deletes_everything() -> None:
    cs = plan_prefix_list_changes([make_list("B", 2), make_list("A", 1)], [])
    assert [p.list_id for p in cs.delete] == [1, 2]


def test_creates_keep_declaration_order() -> None:
    cs = plan_prefix_list_changes([], [make_list("Z"), make_list("A")])
    assert [p.description for p in cs.create] == ["Z", "A"]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_invalid_desired_list_fails_whole_plan() -> None:
    bad = RoutingPolicyList("bad", entries=[PrefixListEntry("permit", "10.0.0.0/8", 30, 20)])
    with pytest.raises(InputValidationError):
        plan_prefix_list_changes([], [make_list("ok"), bad])


def test_duplicate_id_rejected() -> None:
    with pytest.raises(InputValidationError, match="declared twice"):
        plan_prefix_list_changes([make_list("A", 1)], [make_list("A", 1), make_list("B", 1)])


def test_unknown_id_rejected() -> None:
    with pytest.raises(InputValidationError, match="does not exist"):
        plan_prefix_list_changes([], [make_list("A", 5)])
