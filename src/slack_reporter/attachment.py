"""
Render feedback into a single Slack message attachment.

The result is what gets queued as an envelope payload, and ends up as the
only element of the message's "attachments" array.
"""

from typing import Any

from slack_reporter.models.feedback import Feedback


def render_fallback(feedback: Feedback) -> str:
    """Plain-text rendition for clients that cannot show attachments."""
    text = f"{feedback.pretext} \n"
    for field in feedback.fields:
        label = field.title or field.identifier or "No ID"
        text += f"{label}: {field.result}\n"
    return text


def render_attachment(feedback: Feedback, display_id: bool = True, display_title: bool = True) -> dict[str, Any]:
    fields: list[dict[str, str]] = []
    for field in feedback.fields:
        id_text = (field.identifier or "") if display_id else ""
        title_text = (field.title or "") if display_title else ""
        separator = ": " if display_id and display_title else ""
        fields.append({"title": id_text + separator + title_text, "value": field.result})
    return {
        "pretext": feedback.pretext,
        "fields": fields,
        "fallback": render_fallback(feedback),
    }
