"""
Error taxonomy for link allocation and resolution.

Every error carries an ``error_code`` that the HTTP layer returns verbatim
in the JSON body, so clients can tell a taken code from an invalid one
without parsing messages.
"""


class ShortLinkError(Exception):
    """Base class for all service errors."""

    error_code = "ShortLinkError"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.error_code)
        self.detail = detail or self.error_code


# --- Allocation ---

class AllocationError(ShortLinkError):
    """A create request was rejected."""

    error_code = "AllocationError"


class InvalidUrlError(AllocationError):
    error_code = "InvalidUrl"


class InvalidCodeError(AllocationError):
    error_code = "InvalidCode"


class InvalidValidityError(AllocationError):
    error_code = "InvalidValidity"


class CodeTakenError(AllocationError):
    error_code = "CodeTaken"

    def __init__(self, code: str):
        super().__init__(f"Short code '{code}' is already taken")
        self.code = code


class AllocationExhaustedError(AllocationError):
    error_code = "AllocationExhausted"

    def __init__(self, attempts: int):
        super().__init__(
            f"Could not find a free short code after {attempts} attempts"
        )
        self.attempts = attempts


# --- Resolution ---

class ResolveError(ShortLinkError):
    """A short code could not be turned into a redirect."""

    error_code = "ResolveError"


class LinkNotFoundError(ResolveError):
    error_code = "NotFound"

    def __init__(self, code: str):
        super().__init__(f"Short link '{code}' was not found")
        self.code = code


class LinkExpiredError(ResolveError):
    error_code = "Expired"

    def __init__(self, code: str):
        super().__init__(f"Short link '{code}' has expired")
        self.code = code


# --- Infrastructure ---

class StoreUnavailableError(ShortLinkError):
    """The link store could not be reached. Safe to retry."""

    error_code = "StoreUnavailable"


class OperationTimeoutError(ShortLinkError):
    error_code = "Timeout"


# --- Request ---

class InvalidRequestError(ShortLinkError):
    """Request body or query failed schema validation outside the known fields."""

    error_code = "InvalidRequest"
