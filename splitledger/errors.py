from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for errors the API turns into a JSON error response."""

    status_code = 500
    code = "ledger_error"

    def __init__(self, message: str = "", details: Optional[Any] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(LedgerError):
    status_code = 400
    code = "validation_error"


class IdempotencyKeyRequired(ValidationError):
    code = "idempotency_key_required"


class IdempotencyKeyReused(ValidationError):
    status_code = 422
    code = "idempotency_key_reused"


class NotFoundError(LedgerError):
    status_code = 404
    code = "not_found"


class PermissionDenied(LedgerError):
    status_code = 403
    code = "forbidden"


class ConflictError(LedgerError):
    status_code = 409
    code = "request_in_progress"


class IntegrityError(LedgerError):
    """The ledger broke an invariant that validation should have enforced."""

    status_code = 500
    code = "ledger_integrity_error"


class StorageError(LedgerError):
    status_code = 503
    code = "storage_error"


# errors that describe the request itself; the mutation gate stores them as
# the final result of a key so retries see the same answer
CLIENT_ERRORS = (ValidationError, NotFoundError, PermissionDenied)
