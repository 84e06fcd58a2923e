"""
Transport outcome: the four results a send can produce.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OutcomeKind(str, Enum):
    INTERNAL_ERROR = "internal_error"  # request could not be built
    REQUEST_ERROR = "request_error"  # network failure, no response
    SERVER_RESPONSE_ERROR = "server_response_error"  # status outside 200-299
    SUCCESS = "success"


class SendOutcome(BaseModel):
    kind: OutcomeKind
    reason: Optional[str] = None
    status_code: Optional[int] = None
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def internal_error(cls, reason: str) -> SendOutcome:
        return cls(kind=OutcomeKind.INTERNAL_ERROR, reason=reason)

    @classmethod
    def request_error(cls, reason: str = "") -> SendOutcome:
        return cls(kind=OutcomeKind.REQUEST_ERROR, reason=reason or None)

    @classmethod
    def server_error(cls, status_code: int, reason: Optional[str] = None) -> SendOutcome:
        return cls(kind=OutcomeKind.SERVER_RESPONSE_ERROR, status_code=status_code, reason=reason)

    @classmethod
    def success(cls, body: bytes = b"", status_code: int = 200) -> SendOutcome:
        return cls(kind=OutcomeKind.SUCCESS, status_code=status_code, body=body)

    def describe(self) -> str:
        if self.kind is OutcomeKind.SERVER_RESPONSE_ERROR:
            return f"{self.kind.value} (HTTP {self.status_code})"
        if self.reason:
            return f"{self.kind.value}: {self.reason}"
        return self.kind.value
