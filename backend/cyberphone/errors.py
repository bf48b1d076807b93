# Overview: Typed failures shared by the store services and mapped to HTTP codes by the routes.

"""
Error taxonomy

- NotFoundError: referenced entity id does not exist. Most mutations report
  absence as "nothing changed" instead of raising; this class is for the
  operations where the caller must know (e.g. rating, checkout).
- AlreadyRatedError: a sale can be rated exactly once.
- InvalidStateError: the operation is not allowed in the entity's current state.
- InsufficientFundsError: the buyer's balance does not cover the debit.
- ValidationError: malformed input.
- TransactionTimeoutError: the transaction exceeded its time budget and was rolled back.
"""


class ServiceError(Exception):
    """Base class for business-rule failures returned to callers."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": str(self)}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ServiceError):
    """400-level input problem."""


class InvalidStateError(ServiceError):
    """Operation not permitted for the entity's current owner or state."""


class NotFoundError(ServiceError):
    status_code = 404


class AlreadyRatedError(ServiceError):
    status_code = 409


class InsufficientFundsError(ServiceError):
    status_code = 402


class AuthError(ServiceError):
    status_code = 401


class TransactionTimeoutError(ServiceError):
    status_code = 503
