"""
Request construction for the two Slack endpoints.

Webhook:        POST {hooks}/services/{webhook_id}, JSON body
Authenticated:  POST {api}/api/chat.postMessage, multipart form

Both builders raise RequestBuildError when the envelope cannot be turned
into a request at all; retrying such an envelope cannot help.
"""

import json
from typing import Any, Optional

import httpx

from slack_reporter.config import SLACK_API_BASE_URL, SLACK_WEBHOOK_BASE_URL
from slack_reporter.models.envelope import Envelope

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
POST_MESSAGE = "chat.postMessage"


class RequestBuildError(Exception):
    pass


def _dump(value: Any) -> str:
    try:
        return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise RequestBuildError(f"payload is not JSON serializable: {e}") from e


def _request(client: Optional[httpx.AsyncClient], url: httpx.URL, **kwargs: Any) -> httpx.Request:
    # Going through the client applies its default headers and timeout
    if client is None:
        return httpx.Request("POST", url, **kwargs)
    return client.build_request("POST", url, **kwargs)


def _url(base_url: str, path: str) -> httpx.URL:
    try:
        return httpx.URL(f"{base_url.rstrip('/')}/{path}")
    except httpx.InvalidURL as e:
        raise RequestBuildError(f"invalid URL: {e}") from e


def build_webhook_request(
    envelope: Envelope,
    text: str = "",
    base_url: str = SLACK_WEBHOOK_BASE_URL,
    client: Optional[httpx.AsyncClient] = None,
) -> httpx.Request:
    if not envelope.token:
        raise RequestBuildError("webhook id is empty")
    body = {"text": text, "attachments": [envelope.payload]}
    return _request(
        client,
        _url(base_url, f"services/{envelope.token}"),
        content=_dump(body).encode("utf-8"),
        headers={"Content-Type": JSON_CONTENT_TYPE},
    )


def build_post_message_request(
    envelope: Envelope,
    user_name: str = "",
    as_user: bool = True,
    base_url: str = SLACK_API_BASE_URL,
    client: Optional[httpx.AsyncClient] = None,
) -> httpx.Request:
    """chat.postMessage with the envelope name as message text."""
    if not envelope.channel:
        raise RequestBuildError("chat.postMessage requires a channel")
    fields: dict[str, str] = {
        "token": envelope.token,
        "channel": envelope.channel,
        "text": envelope.name,
        "username": user_name,
        "as_user": "true" if as_user else "false",
        "attachments": _dump([envelope.payload]),
    }
    # (None, value) parts are sent as plain form fields, which forces multipart encoding
    files = {key: (None, value) for key, value in fields.items()}
    return _request(client, _url(base_url, f"api/{POST_MESSAGE}"), files=files)
