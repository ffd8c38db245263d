from typing import Optional


class CartSmartError(Exception):
    """Base class for every error raised by the stacking code."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StackRuleError(CartSmartError):
    """A selection or reorder was rejected; the stack state is unchanged."""


class SubmissionValidationError(CartSmartError):
    """The stack is not ready to be submitted (client-side check, no request sent)."""


class MalformedDealError(CartSmartError):
    """An API record could not be turned into a Deal."""


class ApiError(CartSmartError):
    """Non-2xx response or transport failure talking to the CartSmart API."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DuplicateDealError(ApiError):
    """409: the same deal (or the same combination of steps) already exists."""

    def __init__(self, message: str, existing_deal_id: Optional[int] = None):
        super().__init__(message, status=409)
        self.existing_deal_id = existing_deal_id


class SubmissionLimitError(ApiError):
    """429: the user hit the deal submission limit."""

    def __init__(self, message: str, limit: Optional[int] = None, used: Optional[int] = None):
        super().__init__(message, status=429)
        self.limit = limit
        self.used = used
