"""
HTTP transport for Slack: turns an envelope into one POST and classifies
the result as a SendOutcome.
"""

import logging
from typing import Optional

import httpx

from slack_reporter.config import SLACK_API_BASE_URL, SLACK_WEBHOOK_BASE_URL, ReporterConfig
from slack_reporter.models.envelope import Envelope
from slack_reporter.models.outcome import SendOutcome
from slack_reporter.transport.commands import (
    RequestBuildError,
    build_post_message_request,
    build_webhook_request,
)

logger = logging.getLogger(__name__)

USER_AGENT = "slack-reporter/0.1.0"


class Transport:
    """Delivers one envelope. Implementations never raise for delivery failures."""

    async def send(self, envelope: Envelope) -> SendOutcome:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class SlackTransport(Transport):
    def __init__(
        self,
        user_name: str = "",
        as_user: bool = True,
        webhook_base_url: str = SLACK_WEBHOOK_BASE_URL,
        api_base_url: str = SLACK_API_BASE_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._user_name = user_name
        self._as_user = as_user
        self._webhook_base_url = webhook_base_url
        self._api_base_url = api_base_url
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )

    @classmethod
    def from_config(cls, cfg: ReporterConfig, client: Optional[httpx.AsyncClient] = None) -> "SlackTransport":
        return cls(
            user_name=cfg.user_name,
            as_user=cfg.post_as_user,
            webhook_base_url=cfg.webhook_base_url,
            api_base_url=cfg.api_base_url,
            timeout=cfg.request_timeout,
            client=client,
        )

    def build_request(self, envelope: Envelope) -> httpx.Request:
        if envelope.channel:
            return build_post_message_request(
                envelope,
                user_name=self._user_name,
                as_user=self._as_user,
                base_url=self._api_base_url,
                client=self._client,
            )
        return build_webhook_request(envelope, base_url=self._webhook_base_url, client=self._client)

    async def send(self, envelope: Envelope) -> SendOutcome:
        try:
            request = self.build_request(envelope)
        except RequestBuildError as e:
            return SendOutcome.internal_error(str(e))

        try:
            resp = await self._client.send(request)
        except httpx.RequestError as e:
            # The webhook id is part of the path, so only the host is logged
            logger.debug(f"{request.method} {request.url.host} failed: {e!r}")
            return SendOutcome.request_error(f"{type(e).__name__}: {e}")

        if not 200 <= resp.status_code < 300:
            return SendOutcome.server_error(resp.status_code, reason=resp.text[:200])
        return SendOutcome.success(resp.content, status_code=resp.status_code)

    async def close(self) -> None:
        await self._client.aclose()
