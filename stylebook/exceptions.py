"""Domain errors shared by the services and translated to HTTP in ``main``."""


class StylebookError(Exception):
    """Base class for all domain errors."""


class NotFoundError(StylebookError):
    """Referenced item or record does not exist (or belongs to another user)."""


class PersistenceError(StylebookError):
    """Backing store read or write failed."""


class ExternalServiceError(StylebookError):
    """AI call failed or returned something we could not parse."""


class QuotaExceededError(StylebookError):
    """Daily quota for an action type is used up."""

    def __init__(self, action: str, limit: int, current: int):
        self.action = action
        self.limit = limit
        self.current = current
        super().__init__(
            f"Daily limit reached: {limit} {action.lower().replace('_', ' ')} per day. "
            "Please try again tomorrow."
        )
