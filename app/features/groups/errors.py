"""
Errors raised by the group lifecycle service.

These represent failed lifecycle operations and are converted to HTTP
responses by the exception handlers registered in ``app.main``.
"""


class GroupServiceError(Exception):
    """Base exception for all group service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AccessDenied(GroupServiceError):
    """Raised when the caller is not allowed to administer the shop's groups."""

    def __init__(self, action: str, shop_id: str):
        super().__init__(f"Access Denied: '{action}' permission required for shop {shop_id}")
        self.action = action
        self.shop_id = shop_id


class NotFound(GroupServiceError):
    """Raised when a referenced shop, group, or user does not exist."""

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(f"{resource_type} not found: {identifier}")
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(GroupServiceError):
    """Raised when group data is malformed."""

    def __init__(self, message: str, errors: dict | None = None):
        super().__init__(message)
        self.errors = errors or {}


class ConcurrentModification(GroupServiceError):
    """Raised when an operation kept conflicting with concurrent writers."""
    pass


class ProjectionError(GroupServiceError):
    """
    Raised when a user's permissions cannot be derived from their memberships.

    Fatal for the current operation: the transaction is rolled back so the
    catalog and the projections never disagree.
    """
    pass
