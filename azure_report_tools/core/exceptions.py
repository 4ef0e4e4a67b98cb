"""Exception hierarchy for Azure Report Tools"""


class ReportToolsError(Exception):
    """Base class for all report tool errors"""


class IntervalParseError(ReportToolsError, ValueError):
    """Raised when a port range descriptor cannot be parsed"""

    def __init__(self, text, reason: str = "not a port or port range"):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid port range '{text}': {reason}")


class InvalidIntervalError(ReportToolsError, ValueError):
    """Raised when an interval's lower bound is greater than its upper bound"""

    def __init__(self, lower: int, upper: int):
        self.lower = lower
        self.upper = upper
        super().__init__(f"Invalid interval: lower bound {lower} is greater than upper bound {upper}")


class RetryBudgetExceededError(ReportToolsError):
    """Raised when the cumulative retry delay of an API call exceeds its budget"""

    def __init__(self, operation: str, total_delay: float, attempts: int, last_error: Exception = None):
        self.operation = operation
        self.total_delay = total_delay
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts "
            f"({total_delay:.1f}s cumulative delay): {last_error}"
        )


class ConfigurationError(ReportToolsError):
    """Raised for invalid configuration values"""


class AuthenticationError(ReportToolsError):
    """Raised when no Azure credential could be established"""
