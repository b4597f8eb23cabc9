"""
Typed errors for the budget submission and approval engine.

Every error carries a stable ``code`` so clients can tell "nothing to do"
apart from "rejected" without parsing messages:

    BudgetEngineError
    +-- ValidationError   validation_error   malformed submitted payload
    +-- InvalidStatus     invalid_status     status target not allowed
    +-- NotFound          not_found          plan, item or match missing/ambiguous
    +-- Conflict          conflict           stale category revision
    +-- StoreError        store_error        persistence boundary failure
    +-- DeliveryWarning   delivery_warning   push attempt failed, never surfaced
"""


class BudgetEngineError(Exception):
    code = "budget_engine_error"
    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"status": "error", "code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BudgetEngineError):
    code = "validation_error"
    status_code = 422


class InvalidStatus(BudgetEngineError):
    code = "invalid_status"
    status_code = 400


class NotFound(BudgetEngineError):
    code = "not_found"
    status_code = 404


class Conflict(BudgetEngineError):
    code = "conflict"
    status_code = 409


class StoreError(BudgetEngineError):
    code = "store_error"
    status_code = 500


class DeliveryWarning(BudgetEngineError):
    """Raised by the push transport; the dispatcher logs it and moves on."""

    code = "delivery_warning"
