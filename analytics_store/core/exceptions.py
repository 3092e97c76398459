"""Application errors in RFC 7807 Problem Details shape."""

from typing import Any


class AppError(Exception):
    """Base application error.

    Carries a short title, a human readable detail and a stable error type
    so callers can turn it into a Problem Details document.
    """

    def __init__(
        self,
        title: str,
        detail: str,
        error_type: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.title = title
        self.detail = detail
        self.error_type = error_type or "about:blank"
        self.extra = extra or {}
        super().__init__(detail)

    def to_problem_detail(self) -> dict[str, Any]:
        """Convert to RFC 7807 Problem Details format."""
        problem = {
            "type": self.error_type,
            "title": self.title,
            "detail": self.detail,
        }
        problem.update(self.extra)
        return problem


class NotFoundError(AppError):
    """Record not found error."""

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        detail: str | None = None,
    ) -> None:
        if detail is None:
            detail = f"{resource} not found"
            if resource_id:
                detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            title="Not Found",
            detail=detail,
            error_type="about:blank#not-found",
            extra={"resource": resource},
        )


class ValidationError(AppError):
    """A value violates a field constraint (required, enum or bound)."""

    def __init__(
        self,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            title="Validation Error",
            detail=detail,
            error_type="about:blank#validation-error",
            extra={"errors": errors or []},
        )

    @classmethod
    def for_field(cls, field: str, message: str, value: Any = None) -> "ValidationError":
        """Build an error describing a single offending field."""
        return cls(
            detail=f"Invalid value for '{field}': {message}",
            errors=[{"field": field, "message": message, "value": value}],
        )


class ConflictError(AppError):
    """Write conflicts with existing state."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            title="Conflict",
            detail=detail,
            error_type="about:blank#conflict",
        )
