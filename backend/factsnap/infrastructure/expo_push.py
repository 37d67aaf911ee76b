"""Expo Push Client — notification collaborator over the Expo push HTTP API.

Invariants:
    - One POST per send() carrying one message per token
    - Empty token list is a no-op (no request issued)
    - HTTP status >= 400 or transport failure -> ExternalServiceError("expo", ...)
"""

import logging
from typing import Any

import httpx

from factsnap.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"


class ExpoPushClient:
    """Satisfies core.repository_protocols.NotificationSender."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        push_url: str = EXPO_PUSH_URL,
    ):
        self._client = client
        self._push_url = push_url

    async def send(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        if not tokens:
            logger.info("No push tokens to notify")
            return

        messages = []
        for token in tokens:
            message: dict[str, Any] = {"to": token, "title": title, "body": body}
            if data:
                message["data"] = data
            messages.append(message)

        try:
            resp = await self._client.post(
                self._push_url,
                json=messages,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError("expo", f"request failed: {e}") from e

        if resp.status_code >= 400:
            raise ExternalServiceError(
                "expo", f"push API returned status {resp.status_code}: {resp.text}",
            )
        logger.info("Push notifications sent", extra={"count": len(messages)})
