"""Plan renderers."""

from __future__ import annotations

from typing import Any

from vxcsync.model.prefix_list import PrefixListChangeSet
from vxcsync.utils.endpoint_diff import Change, CircuitPlan, EndpointPlan


def _change(c: Change) -> dict[str, Any]:
    return {"kind": c.kind, "key": c.key, "details": c.details}


def _endpoint(plan: EndpointPlan) -> dict[str, Any]:
    return {
        "state": plan.state.value,
        "requires_replacement": plan.requires_replacement,
        "replacement_reasons": list(plan.replacement_reasons),
        "notices": list(plan.notices),
        "resolved_requested_uid": plan.resolved_requested_uid,
        "changes": [_change(c) for c in plan.changes],
    }


def render_plan(plan: CircuitPlan) -> dict[str, Any]:
    """Serialize *plan* to a JSON-serializable dict.

    Returns:
        A dict with keys:

        - ``"summary"``: count of each change kind.
        - ``"total_changes"``: total number of changes.
        - ``"requires_replacement"``: whether the circuit must be recreated.
        - ``"changes"``: circuit-level change dicts (``kind``, ``key``, ``details``).
        - ``"a_end"`` / ``"b_end"``: per-endpoint state, changes and notices.
    """
    return {
        "summary": dict(plan.summary),
        "total_changes": len(plan.all_changes()),
        "requires_replacement": plan.requires_replacement,
        "changes": [_change(c) for c in plan.changes],
        "a_end": _endpoint(plan.a_end),
        "b_end": _endpoint(plan.b_end),
    }


def render_prefix_list_changes(changes: PrefixListChangeSet) -> dict[str, Any]:
    """Serialize a prefix-list change set.

    Returns ``{"create": [...], "update": [...], "delete": [...]}``.
    """
    return {
        "create": [p.description for p in changes.create],
        "update": [p.list_id for p in changes.update],
        "delete": [p.list_id for p in changes.delete],
    }
