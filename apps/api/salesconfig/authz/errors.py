from __future__ import annotations


class AuthorizationError(Exception):
    """Base error for access-control and permission enforcement failures."""


class PermissionDeniedError(AuthorizationError):
    """Raised when the evaluated decision for a resource/action is not an allow."""

    def __init__(self, resource_id: str, action: str, decision: str) -> None:
        self.resource_id = resource_id
        self.action = action
        self.decision = decision
        super().__init__(f"Permission denied for '{action}' on resource '{resource_id}' ({decision})")
