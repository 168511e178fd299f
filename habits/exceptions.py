"""
Custom Exception Classes

Provides specific exception types for the analytics engine so callers can
tell bad input apart from missing upstream data.
"""


class HabitAnalyticsException(Exception):
    """Base exception for all habit analytics errors"""
    pass


class InvalidInputError(HabitAnalyticsException):
    """Raised when input records, series or date ranges are malformed"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Invalid input for '{field}': {message}")


class InvalidDateRangeError(InvalidInputError):
    """Raised when date range is invalid (e.g., start > end)"""
    def __init__(self, start_date, end_date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__('date_range', f"{start_date} to {end_date}")


class DataUnavailableError(HabitAnalyticsException):
    """Raised when a data or membership provider cannot supply records"""
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Data unavailable from '{source}': {reason}")


class AnalyticsError(HabitAnalyticsException):
    """Raised when analytics computation fails"""
    def __init__(self, metric: str, reason: str):
        self.metric = metric
        self.reason = reason
        super().__init__(f"Analytics error for '{metric}': {reason}")
