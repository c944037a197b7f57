"""
Bookstore service exceptions.

Every error carries the user-facing message, a machine-readable code,
the HTTP status it maps to, and structured context for API responses.
"""

from typing import Any


class BookstoreError(Exception):
    """
    Base bookstore error with enhanced context.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        status_code: HTTP status code for this error type
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 400,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code or "BOOKSTORE_ERROR"
        self.status_code = status_code
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


class ValidationError(BookstoreError):
    """Malformed or duplicate input."""

    def __init__(
        self,
        message: str = "Validation failed.",
        errors: list[dict[str, Any]] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        context = dict(context or {})
        if errors:
            context["errors"] = errors

        super().__init__(
            message,
            "VALIDATION_FAILED",
            status_code=422,
            context=context,
            recovery_hint="Correct the highlighted fields and resubmit",
        )
        self.errors = errors or []


class NotFoundError(BookstoreError):
    """Requested resource does not exist."""

    def __init__(self, message: str, resource_type: str | None = None, resource_id: Any = None):
        context: dict[str, Any] = {}
        if resource_type:
            context["resource_type"] = resource_type
        if resource_id is not None:
            context["resource_id"] = resource_id

        super().__init__(
            message,
            "NOT_FOUND",
            status_code=404,
            context=context,
            recovery_hint="Verify the identifier and ensure the resource exists",
        )


class ConflictError(BookstoreError):
    """Request conflicts with the current subscription state."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(
            message,
            "CONFLICT",
            status_code=422,
            context=context,
            recovery_hint=recovery_hint,
        )


class PlanInUseError(ConflictError):
    """Plan deletion blocked by customers holding an active subscription."""

    def __init__(self, plan_id: int, active_subscriber_count: int) -> None:
        super().__init__(
            f"Cannot delete plan since there are {active_subscriber_count} users "
            "who are subscribed to it.",
            context={"plan_id": plan_id, "active_subscriber_count": active_subscriber_count},
            recovery_hint="Wait for subscribers to leave the plan before deleting it",
        )
        self.error_code = "PLAN_IN_USE"
        self.plan_id = plan_id
        self.active_subscriber_count = active_subscriber_count


class TransientError(BookstoreError):
    """Backing store timed out or is unavailable. Safe to retry."""

    def __init__(self, message: str, store: str, operation: str | None = None) -> None:
        context = {"store": store}
        if operation:
            context["operation"] = operation

        super().__init__(
            message,
            "STORE_UNAVAILABLE",
            status_code=503,
            context=context,
            recovery_hint="Retry the request shortly",
        )
        self.store = store
