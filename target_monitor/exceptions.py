"""Exception hierarchy for the target-hit monitor"""

from typing import Any


class MonitorError(Exception):
    """Base exception carrying a context dictionary

    Attributes:
        message: Error message
        context: Additional context (e.g. symbol, target type, path)
        original_error: Original exception if wrapped
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None,
                 original_error: Exception | None = None):
        self.message = message
        self.context = context or {}
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            msg = f"{msg} [{ctx_str}]"
        if self.original_error:
            msg = f"{msg} (caused by: {type(self.original_error).__name__}: {self.original_error})"
        return msg


class UpstreamError(MonitorError):
    """Quote endpoint rejected the request (4xx other than 429)"""
    pass


class TransientUpstreamError(UpstreamError):
    """Quote endpoint call failed in a way worth retrying

    Common causes:
    - Timeout or connection reset
    - HTTP 5xx / 429 from the exchange endpoint
    - Body is not JSON or lacks ``msgArray``
    - ``msgArray`` is empty (endpoint throttling us)
    """
    pass


class DataAnomaly(MonitorError):
    """A single quote is missing usable price/high/low fields"""
    pass


class DuplicateHitError(MonitorError):
    """A hit record already exists for (stock, target type, day)

    Expected under concurrent evaluation; means "already logged".
    """
    pass


class PersistenceError(MonitorError):
    """Document store could not be read or written

    Common causes:
    - File system permissions
    - Corrupted store file
    """
    pass


class ConfigError(MonitorError):
    """Configuration validation failed

    Common causes:
    - Missing or invalid config.yaml
    - Placeholder values left in place
    - Invalid time-of-day strings in the session block
    """
    pass


class NotificationError(MonitorError):
    """Notification sink failed to deliver a message

    Common causes:
    - Invalid bot token or chat ID
    - Network connectivity issues
    - Rate limit exceeded
    """
    pass


class TransientNotificationError(NotificationError):
    """Delivery failed in a way worth retrying (timeout, network, 429, 5xx)

    ``context["retry_after"]`` carries the server's requested wait, if any.
    """
    pass


class NotificationRejected(NotificationError):
    """The API refused the message itself; resending it cannot succeed

    Common causes:
    - Unparsable Markdown entities in the text
    - Chat not found or bot blocked
    """
    pass
