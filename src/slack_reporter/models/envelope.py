"""
Submission envelope: one queued feedback submission awaiting delivery.

On disk an envelope is the positional row [token, payload, channel, name];
rows are decoded into Envelope as soon as they are read.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, field_validator

WEBHOOK = "webhook"
AUTHENTICATED = "authenticated"


class Envelope(BaseModel):
    token: str
    payload: dict[str, Any]
    channel: str = ""
    name: str = ""

    @field_validator("payload", mode="before")
    @classmethod
    def _plain_json(cls, value: Any) -> Any:
        # Stored as it will read back from disk: tuples become lists, keys become strings.
        if not isinstance(value, dict):
            return value
        try:
            return json.loads(json.dumps(value, allow_nan=False))
        except (TypeError, ValueError) as e:
            raise ValueError(f"payload is not JSON serializable: {e}") from e

    @property
    def mode(self) -> str:
        return AUTHENTICATED if self.channel else WEBHOOK

    def to_row(self) -> list[Any]:
        return [self.token, self.payload, self.channel, self.name]

    @classmethod
    def from_row(cls, row: Any) -> Envelope:
        """Decode a persisted 4-tuple. Raises ValueError on any other shape."""
        if not isinstance(row, list) or len(row) != 4:
            raise ValueError(f"expected a 4-element array, got {type(row).__name__}")
        token, payload, channel, name = row
        if not isinstance(token, str) or not isinstance(channel, str) or not isinstance(name, str):
            raise ValueError("token, channel and name must be strings")
        if not isinstance(payload, dict):
            raise ValueError("payload must be an object")
        return cls(token=token, payload=payload, channel=channel, name=name)


def is_json_compliant(value: Any) -> bool:
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        return False
    return True
