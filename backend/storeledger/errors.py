# Overview: Domain error taxonomy shared by services and the route boundary.

"""
Expected errors carry a user-facing message, a stable code, and the HTTP
status the route boundary answers with. Anything that is not a LedgerError
is unexpected: it is rolled back, logged with a reference id, and surfaced
generically (see decorators.handle_ledger_errors).
"""


class LedgerError(Exception):
    """Base class for expected, user-facing failures."""
    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(LedgerError):
    """400-level input problem. Raised before any transaction is opened."""
    code = "VALIDATION_ERROR"
    status_code = 400


class AuthorizationError(LedgerError):
    """Actor lacks the action grant. Raised before any transaction is opened."""
    code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(self, message: str, action: str | None = None):
        super().__init__(message)
        self.action = action

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["required_action"] = self.action
        return data


class NotFoundError(LedgerError):
    """Document or payment missing, or owned by another organization."""
    code = "NOT_FOUND"
    status_code = 404


class OverpaymentError(LedgerError):
    """Payment amount exceeds the document's remaining pending balance."""
    code = "OVERPAYMENT"
    status_code = 409


class AlreadyCanceledError(LedgerError):
    """Document is canceled; it cannot be canceled again or paid against."""
    code = "ALREADY_CANCELED"
    status_code = 409


class UnexpectedError(LedgerError):
    """Generic failure shown to the user with the error log reference id."""
    code = "UNEXPECTED"
    status_code = 500

    def __init__(self, message: str, reference_id: str | None = None):
        super().__init__(message)
        self.reference_id = reference_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reference_id"] = self.reference_id
        return data


class TransactionTimeoutError(Exception):
    """
    A bounded transaction exceeded its budget and was rolled back.

    Not a LedgerError: the boundary treats it as unexpected and logs it.
    """
