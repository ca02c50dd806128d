"""Ledger error kinds. Services raise these; the API layer maps them to HTTP statuses."""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(LedgerError):
    """Booking, payment or extension id does not exist."""
    status_code = 404


class InvalidArgument(LedgerError):
    """Non-positive amount, missing payment-method fields, malformed date."""
    status_code = 400


class Conflict(LedgerError):
    """Operation is not allowed in the current state of the booking or extension."""
    status_code = 409
