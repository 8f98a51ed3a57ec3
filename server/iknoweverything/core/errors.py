from __future__ import annotations


class RelayError(Exception):
    """Base error for the chat relay; carries the HTTP status reported to the caller."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidChatRequest(RelayError):
    status_code = 400


class NotAuthenticated(RelayError):
    status_code = 401


class ConversationNotFound(RelayError):
    status_code = 404


class RateLimited(RelayError):
    status_code = 429

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ConfigurationError(RelayError):
    status_code = 500


class UpstreamError(RelayError):
    status_code = 502
