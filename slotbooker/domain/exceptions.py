"""
Domain-specific exception hierarchy for the booking engine.

Every error carries a stable ``code`` that the request-handling layer can
return verbatim.
"""

from typing import Any, Dict, List, Optional


class BookingEngineError(Exception):
    """Base class for all application-level errors."""

    code = "booking_engine_error"

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message or self.code)
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "detail": str(self)}
        payload.update(self.details)
        return payload


class ConfigurationError(BookingEngineError):
    """Raised when the YAML configuration cannot be loaded or validated."""

    code = "configuration_error"


class InvalidInputError(BookingEngineError):
    """Client errors: reported immediately, never retried, no side effects."""

    code = "invalid_input"


class InvalidTimeRangeError(InvalidInputError):
    code = "invalid_time_range"


class InvalidDayError(InvalidInputError):
    code = "invalid_day"


class InvalidTimezoneError(InvalidInputError):
    code = "invalid_timezone"


class MissingAvailabilityError(InvalidInputError):
    """Raised when dates are requested for an agent without weekly rules."""

    code = "no_weekly_availability"


class AgentNotFoundError(BookingEngineError):
    code = "agent_not_found"


class CalendarNotConfiguredError(BookingEngineError):
    """Raised when the agent has no usable calendar connection."""

    code = "calendar_not_configured"

    def __init__(self, message: str = "", issues: Optional[List[str]] = None):
        super().__init__(message, issues=list(issues or []))

    @property
    def issues(self) -> List[str]:
        return self.details["issues"]


class SlotNotAvailableError(BookingEngineError):
    """The requested interval overlaps a busy period on the external calendar."""

    code = "slot_not_available"


class UpstreamUnavailableError(BookingEngineError):
    """
    Availability is temporarily unknown.

    Must never be interpreted as "everything is free".
    """

    code = "availability_unknown"


class CredentialUnavailableError(UpstreamUnavailableError):
    code = "credential_unavailable"


class ProviderUnreachableError(UpstreamUnavailableError):
    code = "provider_unreachable"


class ExternalEventCreationError(BookingEngineError):
    """The provider rejected or failed the event insert. Not retried automatically."""

    code = "external_event_creation_error"


class ExternalEventTimeoutError(ExternalEventCreationError):
    """The event insert timed out; the event may or may not exist."""

    code = "external_event_creation_timeout"


class StorageError(BookingEngineError):
    code = "storage_error"


class PersistenceAfterExternalCreateError(BookingEngineError):
    """
    The external event exists but the local appointment could not be stored.

    Requires out-of-band reconciliation using ``external_event_id``.
    """

    code = "persistence_error_after_external_create"

    def __init__(self, message: str, external_event_id: str):
        super().__init__(message, external_event_id=external_event_id)

    @property
    def external_event_id(self) -> str:
        return self.details["external_event_id"]
