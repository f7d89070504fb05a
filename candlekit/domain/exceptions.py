"""
Domain exceptions for candlekit.

Implements a hierarchy distinguishing between recoverable runtime errors
(a failed page fetch, an unreachable store on a single call) and fatal
errors (invalid configuration, schema bootstrap exhausted) that stop the
process.
"""


class CandlekitError(Exception):
    """Base class for all candlekit domain exceptions."""


class RecoverableError(CandlekitError):
    """
    Errors the caller can recover from without restarting.

    Examples:
    - Exchange rate limit or network failure while fetching a gap
    - Store unreachable for one coverage/read/write call
    """


class FatalError(CandlekitError):
    """
    Critical errors requiring shutdown or operator intervention.

    Examples:
    - Invalid configuration
    - Schema bootstrap failed after all retries
    """


class ValidationError(CandlekitError, ValueError):
    """Missing or invalid request fields, unsupported interval, inverted range."""


class NotFoundError(CandlekitError, LookupError):
    """Requested entity (strategy, backtest) does not exist."""


class UnconfiguredStrategyError(CandlekitError):
    """Strategy has no rules configuration (code-only strategy)."""


class FetchError(RecoverableError):
    """Network, rate-limit or parse failure from an external data source."""

    def __init__(self, message: str, source: str = "", status_code: int | None = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class PersistenceError(RecoverableError):
    """Coverage store failure during a coverage, read or write call."""


class ConfigurationError(FatalError):
    """Invalid system configuration."""


class SchemaBootstrapError(FatalError):
    """Schema bootstrap did not succeed within the retry limit."""
