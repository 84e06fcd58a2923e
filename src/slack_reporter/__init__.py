"""
slack-reporter: durable feedback delivery to Slack for Python apps.

Queues completed feedback forms on disk and posts them to an incoming
webhook or chat.postMessage, retrying across connectivity changes and
restarts.
"""

from slack_reporter.client import SlackReporter, AsyncSlackReporter
from slack_reporter.config import ConnectionMode, ReporterConfig
from slack_reporter.connectivity import (
    ConnectivityMonitor,
    ConnectivityStatus,
    ProbeConnectivityMonitor,
    StaticConnectivityMonitor,
)
from slack_reporter.coordinator import UploadCoordinator, UploadState
from slack_reporter.errors import (
    SlackReporterError,
    TokenNotDefinedError,
    ChannelRequiredError,
    InvalidPayloadError,
    NoInternetConnectionError,
    CouldNotSaveJSONError,
)
from slack_reporter.models.envelope import Envelope
from slack_reporter.models.feedback import Feedback, FeedbackField
from slack_reporter.models.outcome import OutcomeKind, SendOutcome
from slack_reporter.store import DeadLetterLog, QueueStore
from slack_reporter.transport.http import SlackTransport, Transport

__version__ = "0.1.0"
__all__ = [
    "SlackReporter",
    "AsyncSlackReporter",
    "ConnectionMode",
    "ReporterConfig",
    "ConnectivityMonitor",
    "ConnectivityStatus",
    "ProbeConnectivityMonitor",
    "StaticConnectivityMonitor",
    "UploadCoordinator",
    "UploadState",
    "SlackReporterError",
    "TokenNotDefinedError",
    "ChannelRequiredError",
    "InvalidPayloadError",
    "NoInternetConnectionError",
    "CouldNotSaveJSONError",
    "Envelope",
    "Feedback",
    "FeedbackField",
    "OutcomeKind",
    "SendOutcome",
    "DeadLetterLog",
    "QueueStore",
    "SlackTransport",
    "Transport",
]
