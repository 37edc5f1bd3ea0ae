"""
Error taxonomy for the assignment and lifecycle engine.

Errors that affect an issue's own correctness (ValidationError,
InvalidTransitionError, NotFoundError) abort before any mutation and are
surfaced to the caller. Errors raised by auxiliary lookups (location,
geocoding, notification) are recovered locally and recorded in the
issue timeline.
"""

from typing import List, Optional


class CivicDispatchError(Exception):
    """Base class for all engine errors."""


class ValidationError(CivicDispatchError, ValueError):
    """Malformed input: bad coordinates, unknown status, missing reason."""


class NotFoundError(CivicDispatchError, LookupError):
    """Issue or authority does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class InvalidTransitionError(CivicDispatchError):
    """Requested transition is not allowed from the issue's current status."""

    def __init__(self, current_status: str, target_status: str, allowed: Optional[List[str]] = None):
        self.current_status = current_status
        self.target_status = target_status
        self.allowed = allowed or []
        super().__init__(
            f"Invalid status transition: {current_status} → {target_status}. "
            f"Allowed transitions from {current_status}: {self.allowed}"
        )


class UnresolvedLocationError(CivicDispatchError):
    """Coordinates could not be mapped to an administrative hierarchy."""


class NoAuthorityAvailable(CivicDispatchError):
    """Valid location but no authority anywhere in the cascade."""


class CollaboratorTimeoutError(CivicDispatchError):
    """An external collaborator (geocoder, notifier) did not answer in time."""


class ConcurrentModificationError(CivicDispatchError):
    """Optimistic version check failed while saving an issue."""

    def __init__(self, issue_id: str, expected_version: int, actual_version: Optional[int]):
        self.issue_id = issue_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Issue {issue_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
