"""Runtime settings for circuit orchestration and list synchronization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from vxcsync.client.errors import InputValidationError


@dataclass(frozen=True)
class SyncSettings:
    """Tunables shared by :class:`~vxcsync.circuit.CircuitOrchestrator` and
    :class:`~vxcsync.router.PrefixListSynchronizer`.

    Attributes:
        rate_limit_burst: Token-bucket capacity for list tasks.
        rate_limit_period_s: Seconds before a spent token is returned.
        max_workers: Thread-pool width for list tasks.
        wait_for_provision: Wait for a new circuit to be provisioned.
        provision_timeout_s: Upper bound for that wait.
        provision_poll_s: Poll interval while waiting.
    """

    rate_limit_burst: int = 10
    rate_limit_period_s: float = 1.0
    max_workers: int = 10
    wait_for_provision: bool = True
    provision_timeout_s: float = 600.0
    provision_poll_s: float = 5.0

    def __post_init__(self) -> None:
        if self.rate_limit_burst < 1:
            raise InputValidationError(
                f"rate_limit_burst must be >= 1, got {self.rate_limit_burst}"
            )
        if self.rate_limit_period_s <= 0:
            raise InputValidationError(
                f"rate_limit_period_s must be > 0, got {self.rate_limit_period_s}"
            )
        if self.max_workers < 1:
            raise InputValidationError(f"max_workers must be >= 1, got {self.max_workers}")

    @classmethod
    def from_optional_args(cls, optional_args: dict[str, Any] | None) -> SyncSettings:
        """Build settings from a loosely-typed ``optional_args`` dict.

        Unknown keys are ignored; known keys are coerced to their field type.
        """
        args = optional_args or {}
        defaults = cls()
        return cls(
            rate_limit_burst=int(args.get("rate_limit_burst", defaults.rate_limit_burst)),
            rate_limit_period_s=float(
                args.get("rate_limit_period_s", defaults.rate_limit_period_s)
            ),
            max_workers=int(args.get("max_workers", defaults.max_workers)),
            wait_for_provision=_as_bool(
                args.get("wait_for_provision", defaults.wait_for_provision)
            ),
            provision_timeout_s=float(
                args.get("provision_timeout_s", defaults.provision_timeout_s)
            ),
            provision_poll_s=float(args.get("provision_poll_s", defaults.provision_poll_s)),
        )


_TRUE_STRINGS: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS: frozenset[str] = frozenset({"0", "false", "no", "off", ""})


def _as_bool(value: Any) -> bool:
    """Coerce a flag that may arrive as a string (``"false"``, ``"yes"``, ...)."""
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_STRINGS:
            return True
        if token in _FALSE_STRINGS:
            return False
        raise InputValidationError(f"Expected a boolean flag, got {value!r}")
    return bool(value)
