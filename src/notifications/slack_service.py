"""
Slack webhook notifications client.

Posts booking workflow events (approvals, failures) to the operations
channel so the office can see what other operators did.
"""

from __future__ import annotations

import json
import os
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import requests

from src.utils.logger import get_logger, mask_email, StructuredLogger


class SlackServiceError(Exception):
    """Raised when the Slack service fails to deliver a message."""


LEVEL_EMOJI = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
}

DEFAULT_RETRY_AFTER_SECONDS = 60


def parse_retry_after(value: Optional[str], default: int = DEFAULT_RETRY_AFTER_SECONDS) -> int:
    """
    Seconds to wait from a Retry-After header.

    Accepts delta-seconds or an HTTP date; anything unparseable gives `default`.
    """
    if value is None:
        return default
    value = str(value).strip()
    if value.isdigit():
        return int(value)
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return default
    if retry_at is None:
        return default
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0, int((retry_at - datetime.now(timezone.utc)).total_seconds()))


class SlackWebhookClient:
    """
    Client for sending notifications through a Slack incoming webhook.

    Attributes:
        webhook_url: Slack incoming webhook URL (None disables delivery)
        max_retries: Number of attempts per message
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http_client: Optional[requests.Session] = None,
        logger: Optional[StructuredLogger] = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 0.5,
    ) -> None:
        """
        Initialize the Slack webhook client.

        Args:
            webhook_url: Incoming webhook URL (SLACK_WEBHOOK_URL if None)
            http_client: Optional requests-like session (useful for testing)
            logger: Optional structured logger instance
            max_retries: Number of attempts when sending messages
            retry_delay_seconds: Base delay between retries (linear backoff)
        """
        self.logger = logger or get_logger(__name__)
        self.http_client = http_client or requests.Session()
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL")
        if not self.webhook_url:
            self.logger.warning("Slack webhook URL not configured; Slack notifications disabled")
            self.webhook_url = None

    def send_booking_notification(
        self, level: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Send a booking workflow event, e.g. an approval outcome."""
        if not self.webhook_url:
            return

        context = dict(context or {})
        lines = [f"{LEVEL_EMOJI.get(level, '')} *{message}*".strip()]
        if context.get("booking_id"):
            lines.append(f"Booking ID: `{context['booking_id']}`")
        if context.get("preferred_date"):
            lines.append(f"Date: `{context['preferred_date']}`")
        if context.get("member_email"):
            lines.append(f"Member: `{mask_email(context['member_email'])}`")
        if context.get("error"):
            lines.append(f"Error: `{context['error']}`")

        payload = {
            "blocks": [
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": "\n".join(lines)},
                }
            ]
        }
        self._dispatch(payload, action="send_booking_notification")

    def send_text(self, text: str, channel: Optional[str] = None) -> None:
        """Send a plaintext message."""
        if not self.webhook_url:
            return

        payload: Dict[str, Any] = {"text": text}
        if channel:
            payload["channel"] = channel

        self._dispatch(payload, action="send_text")

    def _dispatch(
        self,
        payload: Dict[str, Any],
        action: str,
        max_retries: Optional[int] = None,
    ) -> None:
        """Send payload to the webhook with retry handling; never raises."""
        if not self.webhook_url:
            return

        max_retries = max_retries or self.max_retries
        body = json.dumps(payload, ensure_ascii=False)

        for attempt in range(1, max_retries + 1):
            try:
                response = self.http_client.post(
                    self.webhook_url,
                    headers={"Content-Type": "application/json"},
                    data=body.encode("utf-8"),
                    timeout=10,
                )

                if response.status_code == 429:
                    retry_after = parse_retry_after(response.headers.get("Retry-After"))
                    self.logger.warning(
                        "Slack rate limited",
                        operation=action,
                        context={"attempt": attempt, "retry_after": retry_after},
                    )
                    if attempt < max_retries:
                        time.sleep(min(retry_after, self.retry_delay_seconds * attempt))
                        continue
                    raise SlackServiceError(f"Rate limited; retry after {retry_after}s")

                if response.status_code >= 400:
                    raise SlackServiceError(
                        f"Slack responded with {response.status_code}: {response.text}"
                    )

                self.logger.debug(
                    "Slack notification delivered",
                    operation=action,
                    context={"attempt": attempt},
                )
                return

            except (SlackServiceError, requests.RequestException) as exc:
                if attempt >= max_retries:
                    # Slack is best-effort; the booking workflow must not fail on it
                    self.logger.error(
                        "Slack delivery failed",
                        operation=action,
                        context={"attempt": attempt},
                        error=str(exc),
                    )
                    return

                self.logger.warning(
                    "Retrying Slack delivery",
                    operation=action,
                    context={"attempt": attempt},
                    error=str(exc),
                )
                time.sleep(self.retry_delay_seconds * attempt)
