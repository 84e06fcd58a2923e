"""
Slack Reporter error types.

Configuration errors surface synchronously from enqueue; connectivity and
persistence errors come out of a drain attempt. Transport failures are never
raised, they are reported as SendOutcome values.
"""

from typing import Any, Optional


class SlackReporterError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class TokenNotDefinedError(SlackReporterError):
    def __init__(self, message: str = "No webhook id or API token supplied and no default token set"):
        super().__init__("token_not_defined", message)


class ChannelRequiredError(SlackReporterError):
    """Authenticated posts need a channel name or id."""

    def __init__(self, message: str = "Authenticated mode requires a channel argument"):
        super().__init__("channel_required", message)


class InvalidPayloadError(SlackReporterError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("invalid_payload", message, details)


class NoInternetConnectionError(SlackReporterError):
    def __init__(self, message: str = "No internet connection, upload deferred"):
        super().__init__("no_internet_connection", message)


class CouldNotSaveJSONError(SlackReporterError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("could_not_save_json", message, details)
