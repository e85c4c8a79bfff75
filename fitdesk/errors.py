# fitdesk/errors.py
"""Exceptions raised by the membership workflows and mapped to HTTP errors by the app."""


class MembershipError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {"error": self.message}


class InvalidPlanType(MembershipError, ValueError):
    """Raised when a membership plan string is not one of the recognised plans."""

    def __init__(self, plan_type=None):
        self.plan_type = plan_type
        super().__init__(f"Invalid membership type: {plan_type!r}")


class ValidationError(MembershipError):
    """Missing or malformed input. `field` names the offending field."""

    def __init__(self, field, message=None):
        self.field = field
        super().__init__(message or f"'{field}' is missing or invalid.")

    def to_dict(self):
        return {"error": self.message, "field": self.field}


class NotFound(MembershipError):
    status_code = 404

    def __init__(self, message="Client not found."):
        super().__init__(message)


class DuplicateClient(MembershipError):
    status_code = 409


class RenewalTransactionFailed(MembershipError):
    """The renewal transaction was rolled back; nothing was persisted and it is safe to retry."""

    status_code = 500

    def __init__(self, message="Renewal failed and was rolled back. Please retry."):
        super().__init__(message)


class NotificationDispatchFailed(MembershipError):
    status_code = 502

    def __init__(self, recipient, reason=None):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to send notification to {recipient}: {reason}")


class SweepAlreadyRunning(MembershipError):
    status_code = 409

    def __init__(self, message="A membership reminder sweep is already running."):
        super().__init__(message)
