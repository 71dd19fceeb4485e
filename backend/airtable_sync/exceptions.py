"""
Errors raised by the Airtable phase sync.

Transport problems surface as AirtableError subclasses, bad source rows as
RecordTranslationError, and lock contention as LockNotAcquired subclasses.
"""


class AirtableError(Exception):
    """Base class for Airtable API failures."""


class AirtableConfigurationError(AirtableError):
    """API key or base id missing."""


class AirtableFetchError(AirtableError):
    """Retries exhausted or a non-retryable HTTP error."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class RecordTranslationError(Exception):
    """A single source record could not be translated into store fields."""

    def __init__(self, message, record_id=None):
        super().__init__(message)
        self.record_id = record_id


class LockNotAcquired(Exception):
    pass


class SyncAlreadyRunning(LockNotAcquired):
    """Another full sync holds the single-flight lock."""


class PropertyLocked(LockNotAcquired):
    """The per-property lock could not be taken within the wait budget."""


class TransientHTTPError(Exception):
    """A response worth retrying (429 or 5xx); raised inside the retry loop only."""

    def __init__(self, response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response
        self.status_code = response.status_code
