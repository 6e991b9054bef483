"""Exception hierarchy for nimbus-reports."""

from typing import Any

GENERIC_REPORT_FAILURE = "Failed to load report data"


class NimbusReportsError(Exception):
    """Base exception for all nimbus-reports errors."""


class TransportError(NimbusReportsError):
    """A single GET against the Nimbus API failed."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        # Include response body in the message for debugging
        full_message = message
        if response:
            text = str(response)
            full_message = f"{message} - Response: {text[:500]}"
        super().__init__(full_message)
        self.status_code = status_code
        self.response = response


class ReportError(NimbusReportsError):
    """A report run failed; the message is shown to the user as-is."""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ReportError":
        """Build a terminal report error from whatever the run raised."""
        message = str(exc).strip() if isinstance(exc, Exception) else ""
        return cls(message or GENERIC_REPORT_FAILURE)


class ReportPreconditionError(ReportError):
    """A report was requested without the inputs it needs (session, dates)."""
