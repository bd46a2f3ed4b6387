"""Prefix-list change-set planner.

Compares the *previous* lists of a router (all with ids) against the
*desired* declaration and produces a :class:`PrefixListChangeSet` describing
what needs to be created, updated or deleted.  Lists are matched by id.
"""

from __future__ import annotations

from dataclasses import replace

from vxcsync.client.errors import InputValidationError
from vxcsync.model.prefix_list import PrefixListChangeSet, RoutingPolicyList
from vxcsync.utils.normalize import fill_entry_bounds, normalize_prefix_list


def plan_prefix_list_changes(
    previous: list[RoutingPolicyList],
    desired: list[RoutingPolicyList],
) -> PrefixListChangeSet:
    """Compute the changes needed to reach *desired* from *previous*.

    Every desired list is validated and normalized first, so a bad list
    fails the whole plan before anything is submitted.

    Args:
        previous: Lists tracked after the last cycle.
        desired: Lists declared now; new lists have ``list_id=None``.

    Returns:
        A :class:`PrefixListChangeSet`: creates in declaration order,
        updates and deletes by ascending id.

    Raises:
        InputValidationError: If a desired list is invalid, two desired lists
            share an id, or a desired id is not among *previous*.
    """
    normalized = [normalize_prefix_list(p) for p in desired]
    previous_by_id = {p.list_id: p for p in previous if p.list_id is not None}
    # compare against previous lists with the same default bounds filled in
    current = {
        list_id: replace(
            p, entries=[fill_entry_bounds(e, p.address_family) for e in p.entries]
        )
        for list_id, p in previous_by_id.items()
    }

    seen: set[int] = set()
    creates: list[RoutingPolicyList] = []
    updates: list[RoutingPolicyList] = []
    for plist in normalized:
        if plist.list_id is None:
            creates.append(plist)
            continue
        if plist.list_id in seen:
            raise InputValidationError(f"Prefix list id {plist.list_id} declared twice")
        seen.add(plist.list_id)
        if plist.list_id not in current:
            raise InputValidationError(
                f"Prefix list id {plist.list_id} ({plist.description!r}) does not exist"
            )
        if plist != current[plist.list_id]:
            updates.append(plist)

    updates.sort(key=lambda p: p.list_id or 0)
    deletes = [previous_by_id[i] for i in sorted(previous_by_id) if i not in seen]
    return PrefixListChangeSet(create=creates, update=updates, delete=deletes)
