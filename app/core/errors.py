from typing import Any, Dict, Optional


class ReviewEngineError(Exception):
    """Base for every error the workflow engine raises before committing anything."""

    status_code = 400
    error_code = "BUSINESS_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"detail": self.message, "code": self.error_code, **self.details}


class ValidationError(ReviewEngineError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class NotFoundError(ReviewEngineError):
    status_code = 404
    error_code = "NOT_FOUND"


class CycleNotFoundError(NotFoundError):
    error_code = "CYCLE_NOT_FOUND"

    def __init__(self, cycle_id: int):
        super().__init__("Review cycle not found", {"cycle_id": cycle_id})


class FormNotFoundError(NotFoundError):
    error_code = "FORM_NOT_FOUND"

    def __init__(self, form_id: int):
        super().__init__("Review form not found", {"form_id": form_id})


class AssignmentNotFoundError(NotFoundError):
    error_code = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, message: str = "Reviewer assignment not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class AccessDeniedError(ReviewEngineError):
    """Caller lacks the role or relationship to act. Named to avoid shadowing the builtin PermissionError."""

    status_code = 403
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class CycleLockedError(ReviewEngineError):
    status_code = 409
    error_code = "CYCLE_LOCKED"

    def __init__(self, cycle_id: int, status: str):
        super().__init__(
            f"Review cycle is {status}; forms can no longer be changed",
            {"cycle_id": cycle_id, "current_status": status},
        )


class CycleNotActiveError(ReviewEngineError):
    status_code = 409
    error_code = "CYCLE_NOT_ACTIVE"

    def __init__(self, cycle_id: int, status: str):
        super().__init__(
            f"Cannot assign reviewers to a {status} cycle",
            {"cycle_id": cycle_id, "current_status": status},
        )


class InvalidStateError(ReviewEngineError):
    status_code = 409
    error_code = "INVALID_STATUS_TRANSITION"


class ConflictError(ReviewEngineError):
    status_code = 409
    error_code = "CONFLICT"


class IncompleteFormError(ReviewEngineError):
    status_code = 400
    error_code = "INCOMPLETE_FORM"

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            "All required fields must be completed before submitting: " + ", ".join(self.missing_fields),
            {"missing_fields": self.missing_fields},
        )


class NotificationError(ReviewEngineError):
    status_code = 500
    error_code = "NOTIFICATION_FAILED"
