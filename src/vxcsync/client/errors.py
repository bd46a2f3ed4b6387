"""Custom exceptions for the vxcsync reconciler and its service client."""

from __future__ import annotations

from dataclasses import dataclass, field

# Substring the provisioning API puts in a 400 body when a UID is unknown.
SERVICE_NOT_FOUND_MARKER: str = "Could not find a service with UID"


class VxcError(Exception):
    """Base exception for all vxcsync errors."""


class InputValidationError(VxcError, ValueError):
    """Raised when declared input is rejected before any remote call is made."""


class RemoteAuthError(VxcError):
    """Raised when the token endpoint rejects the API credentials."""


class RemoteNotFoundError(VxcError):
    """Raised when the remote system reports that a resource does not exist."""

    def __init__(self, url: str, message: str = "") -> None:
        self.url = url
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"Resource not found at {url!r}{detail}")


class RemoteTransientError(VxcError):
    """Any other remote failure, surfaced verbatim without internal retry."""


class RemoteRequestError(RemoteTransientError):
    """Raised when a network-level error occurs (connection refused, timeout, etc.)."""

    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url!r} failed: {cause}")


class RemoteResponseError(RemoteTransientError):
    """Raised when the API returns a non-2xx HTTP status code."""

    def __init__(self, status_code: int, url: str, message: str = "") -> None:
        self.status_code = status_code
        self.url = url
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"HTTP {status_code} for {url!r}{detail}")


class RemoteParseError(RemoteTransientError):
    """Raised when a response body is not the JSON shape the API documents."""


class ProvisioningTimeoutError(RemoteTransientError):
    """Raised when a created circuit does not reach a provisioned state in time."""

    def __init__(self, uid: str, status: str, timeout_s: float) -> None:
        self.uid = uid
        self.status = status
        self.timeout_s = timeout_s
        super().__init__(
            f"Circuit {uid!r} still {status!r} after {timeout_s:g}s"
        )


@dataclass(eq=False)
class PartialBatchFailure(VxcError):
    """Raised when one or more child-collection tasks failed.

    Successful tasks are not rolled back; the caller receives the partially
    applied collection next to this error.

    Attributes:
        operation: Short label of the batch, e.g. ``"prefix list sync"``.
        failures: One message per failed task, in completion order.
    """

    operation: str
    failures: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(
            f"{self.operation} failed for {len(self.failures)} item(s): "
            + ", ".join(self.failures)
        )
