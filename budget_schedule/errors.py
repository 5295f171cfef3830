"""
Exception types raised by the schedule engine and its collaborators.

Every failure the engine can produce is one of these, so callers can catch
``ScheduleError`` and show something like "this bill has an invalid schedule"
instead of a traceback.
"""


class ScheduleError(Exception):
    """Base class for all budget_schedule errors."""


class InvalidFrequencyConfig(ScheduleError, ValueError):
    """Unknown frequency, or a custom frequency without a positive interval."""


class InvalidAnchorDate(ScheduleError, ValueError):
    """Anchor is not a valid calendar date (e.g. malformed storage string)."""


class ItemNotFound(ScheduleError, KeyError):
    """No stored document with the requested id."""

    def __str__(self):
        return f"No stored item with id {self.args[0] if self.args else '?'}"


class NotABill(ScheduleError, TypeError):
    """Paid-state operations only apply to bills."""


class ConfigError(ScheduleError):
    """Configuration file is missing required keys."""


class DateOutOfRange(ScheduleError, OverflowError):
    """Stepping would leave the representable calendar (past year 9999)."""
