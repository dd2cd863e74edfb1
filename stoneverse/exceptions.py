"""Exception hierarchy for the Stoneverse engine."""


class StoneverseError(Exception):
    """Base exception for all engine errors."""

    code = "STONEVERSE_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidInput(StoneverseError, ValueError):
    """Raised when a numeric parameter is malformed or out of its domain."""

    code = "INVALID_INPUT"


class DateOutOfRange(InvalidInput):
    """Raised when a date precedes the start of the schedule it queries."""

    code = "DATE_OUT_OF_RANGE"


class UnknownEntityType(StoneverseError, ValueError):
    """Raised for an entity tag outside personal / lmnp / sci_is."""

    code = "UNKNOWN_ENTITY_TYPE"

    def __init__(self, tag: object):
        super().__init__(f"Unknown entity type: {tag!r}", field="entity_type")
        self.tag = tag


class InvalidFiscalSettings(StoneverseError, ValueError):
    """Raised when a configured rate or bracket threshold is negative."""

    code = "INVALID_FISCAL_SETTINGS"


class NoSolution(StoneverseError):
    """Raised when IRR root-finding finds no root or does not converge."""

    code = "NO_SOLUTION"
