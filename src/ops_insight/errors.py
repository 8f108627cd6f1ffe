"""Exception types raised by the insight engines."""


class InsightError(Exception):
    """Base class for all engine errors."""


class InvalidConfiguration(InsightError, ValueError):
    """A configuration value is unsupported or out of range."""


class InsufficientData(InsightError):
    """A computation needs more observations than were supplied."""
