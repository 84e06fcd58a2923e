"""
Reporter configuration.

One ReporterConfig is built at application start and handed to the
reporter; nothing in the package keeps global state.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

CONFIG_DIR = Path.home() / ".slack_reporter"
CONFIG_FILE = CONFIG_DIR / "config.json"
DEFAULT_QUEUE_PATH = CONFIG_DIR / "queue.json"
DEFAULT_DEAD_LETTER_PATH = CONFIG_DIR / "dead_letters.jsonl"

SLACK_WEBHOOK_BASE_URL = "https://hooks.slack.com"
SLACK_API_BASE_URL = "https://slack.com"


class ConnectionMode(str, Enum):
    WEBHOOK = "webhook"
    AUTHENTICATED = "authenticated"


class ReporterConfig(BaseModel):
    connection_mode: ConnectionMode = ConnectionMode.WEBHOOK
    # Webhook id (the path after /services/) or an API token, depending on mode
    default_token: str = ""
    user_name: str = ""
    post_as_user: bool = True
    # No persistence and no retry: submissions are sent once and dropped on failure
    disable_queue: bool = False
    queue_path: Path = DEFAULT_QUEUE_PATH
    dead_letter_path: Path = DEFAULT_DEAD_LETTER_PATH
    # None keeps retrying a failing head forever
    max_attempts: Optional[int] = Field(default=None, ge=1)
    display_id: bool = True
    display_title: bool = True
    webhook_base_url: str = SLACK_WEBHOOK_BASE_URL
    api_base_url: str = SLACK_API_BASE_URL
    request_timeout: float = 30.0


def load_config(path: Path = CONFIG_FILE) -> ReporterConfig:
    """Read a config file; a missing or unreadable file yields the defaults."""
    try:
        return ReporterConfig.model_validate(json.loads(Path(path).read_text()))
    except (FileNotFoundError, json.JSONDecodeError, ValidationError):
        return ReporterConfig()


def save_config(cfg: ReporterConfig, path: Path = CONFIG_FILE) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(cfg.model_dump_json(indent=2))
