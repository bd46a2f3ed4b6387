"""Routing-policy list synchronization for virtual routers.

A virtual router owns a variable-size collection of prefix lists.  Each
cycle diffs the declared collection against the tracked one and executes
the resulting creates, updates and deletes on a thread pool, gated by one
:class:`~vxcsync.utils.rate_limit.TokenBucket` per call.

Phases:

1. Creates and updates run concurrently.
2. Once every phase-1 task has finished, deletes run concurrently, unless
   a phase-1 task failed.

Failures are collected per task and raised together as one
:class:`~vxcsync.client.errors.PartialBatchFailure` in the result; effects
of successful tasks are kept.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from vxcsync.client.errors import PartialBatchFailure, RemoteNotFoundError, VxcError
from vxcsync.client.protocol import RemoteServiceClient
from vxcsync.model.prefix_list import RoutingPolicyList
from vxcsync.model.settings import SyncSettings
from vxcsync.utils.prefix_list_diff import plan_prefix_list_changes
from vxcsync.utils.rate_limit import TokenBucket

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one synchronization call.

    Attributes:
        lists: Collection after the call, sorted by id.  Holds every
            successful change; failed updates and deletes keep their previous
            value and failed creates are absent.
        error: Aggregate of all task failures, or ``None``.
    """

    lists: list[RoutingPolicyList] = field(default_factory=list)
    error: PartialBatchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class _Batch:
    """Lock-guarded success/failure collections shared by one call's tasks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.failures: list[str] = []

    def fail(self, message: str) -> None:
        with self._lock:
            self.failures.append(message)

    def run(self, fn: Callable[[], None], label: str) -> None:
        try:
            fn()
        except VxcError as exc:
            logger.debug("%s failed: %s", label, exc)
            self.fail(f"{label}: {exc}")
        except Exception as exc:
            # the aggregate is the only way a task failure reaches the caller
            logger.exception("%s failed unexpectedly", label)
            self.fail(f"{label}: {type(exc).__name__}: {exc}")


class PrefixListSynchronizer:
    """Diffs and applies prefix-list collections for one router at a time.

    Args:
        client: Remote service client.
        settings: Rate-limit and pool settings.
        bucket_factory: Builds the per-call limiter; defaults to a
            :class:`TokenBucket` sized from *settings*.
    """

    def __init__(
        self,
        client: RemoteServiceClient,
        settings: SyncSettings | None = None,
        bucket_factory: Callable[[], TokenBucket] | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or SyncSettings()
        self._bucket_factory = bucket_factory or (
            lambda: TokenBucket(
                self._settings.rate_limit_burst,
                self._settings.rate_limit_period_s,
            )
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync(
        self,
        router_uid: str,
        previous: list[RoutingPolicyList],
        desired: list[RoutingPolicyList],
    ) -> SyncResult:
        """Bring the router's lists from *previous* to *desired*.

        Raises:
            InputValidationError: If *desired* is invalid; nothing is submitted.
        """
        changes = plan_prefix_list_changes(previous, desired)
        final: dict[int, RoutingPolicyList] = {
            p.list_id: p for p in previous if p.list_id is not None
        }
        if changes.is_empty():
            return SyncResult(lists=_sorted(final))

        bucket = self._bucket_factory()
        batch = _Batch()
        lock = threading.Lock()

        def create(plist: RoutingPolicyList) -> None:
            bucket.acquire()
            created = self._client.create_prefix_list(router_uid, plist)
            if created.list_id is None:
                raise VxcError(f"server returned no id for {plist.description!r}")
            with lock:
                final[created.list_id] = created

        def update(plist: RoutingPolicyList) -> None:
            bucket.acquire()
            updated = self._client.update_prefix_list(router_uid, plist)
            with lock:
                final[plist.list_id] = updated  # type: ignore[index]

        def delete(plist: RoutingPolicyList) -> None:
            bucket.acquire()
            try:
                self._client.delete_prefix_list(router_uid, plist.list_id)  # type: ignore[arg-type]
            except RemoteNotFoundError:
                logger.debug("Prefix list %s already gone", plist.list_id)
            with lock:
                final.pop(plist.list_id, None)  # type: ignore[arg-type]

        logger.debug(
            "Syncing prefix lists on %s: %d create, %d update, %d delete",
            router_uid,
            len(changes.create),
            len(changes.update),
            len(changes.delete),
        )

        # Phase 1: create + update
        self._run_phase(
            [(lambda p=p: create(p), f"create {p.description!r}") for p in changes.create]
            + [(lambda p=p: update(p), f"update {p.list_id}") for p in changes.update],
            batch,
        )

        # Phase 2: delete, only after a clean phase 1
        if batch.failures:
            if changes.delete:
                logger.warning(
                    "Skipping %d prefix list delete(s) on %s after failures",
                    len(changes.delete),
                    router_uid,
                )
        else:
            self._run_phase(
                [(lambda p=p: delete(p), f"delete {p.list_id}") for p in changes.delete],
                batch,
            )

        error = PartialBatchFailure("prefix list sync", batch.failures) if batch.failures else None
        return SyncResult(lists=_sorted(final), error=error)

    def read(self, router_uid: str) -> list[RoutingPolicyList]:
        """Read every list of the router with its entries, sorted by id.

        Raises:
            PartialBatchFailure: If any individual list could not be read.
        """
        summaries = self._client.list_prefix_lists(router_uid)
        bucket = self._bucket_factory()
        batch = _Batch()
        lock = threading.Lock()
        found: dict[int, RoutingPolicyList] = {}

        def fetch(list_id: int) -> None:
            bucket.acquire()
            plist = self._client.get_prefix_list(router_uid, list_id)
            with lock:
                found[list_id] = plist

        self._run_phase(
            [
                (lambda i=s.list_id: fetch(i), f"read {s.list_id}")
                for s in summaries
                if s.list_id is not None
            ],
            batch,
        )
        if batch.failures:
            raise PartialBatchFailure("prefix list read", batch.failures)
        return _sorted(found)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_phase(
        self,
        tasks: list[tuple[Callable[[], None], str]],
        batch: _Batch,
    ) -> None:
        """Run *tasks* concurrently and return once every one has finished."""
        if not tasks:
            return
        workers = min(self._settings.max_workers, len(tasks))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(batch.run, fn, label) for fn, label in tasks]
        for future in futures:
            future.result()


def _sorted(lists: dict[int, RoutingPolicyList]) -> list[RoutingPolicyList]:
    return [lists[i] for i in sorted(lists)]


class RouterPolicyManager:
    """Create/read/update entry points for a router's prefix-list collection.

    Args:
        client: Remote service client.
        settings: Rate-limit and pool settings.
    """

    def __init__(
        self,
        client: RemoteServiceClient,
        settings: SyncSettings | None = None,
    ) -> None:
        self._sync = PrefixListSynchronizer(client, settings)

    def create(self, router_uid: str, desired: list[RoutingPolicyList]) -> SyncResult:
        """Create every desired list on a freshly created router."""
        return self._sync.sync(router_uid, [], desired)

    def read(self, router_uid: str) -> list[RoutingPolicyList]:
        """Return the router's current lists."""
        return self._sync.read(router_uid)

    def update(
        self,
        router_uid: str,
        previous: list[RoutingPolicyList],
        desired: list[RoutingPolicyList],
    ) -> SyncResult:
        """Bring the router's lists from *previous* to *desired*."""
        return self._sync.sync(router_uid, previous, desired)
