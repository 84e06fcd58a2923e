"""
Feedback models: the completed-form content handed over by the UI layer.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field


class FeedbackField(BaseModel):
    identifier: Optional[str] = None
    title: Optional[str] = None
    result: str = ""


class Feedback(BaseModel):
    title: str = ""
    pretext: str = ""
    fields: list[FeedbackField] = Field(default_factory=list)

    def with_system_fields(
        self,
        top: Optional[list[FeedbackField]] = None,
        bottom: Optional[list[FeedbackField]] = None,
    ) -> Feedback:
        """Wrap the user's answers with system-generated fields (app version etc)."""
        return self.model_copy(update={"fields": [*(top or []), *self.fields, *(bottom or [])]})
