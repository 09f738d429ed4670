"""
Resend transactional email provider.

Example usage:
    provider = ResendEmailProvider(client, api_key="re_xxx")
    message_id = await provider.send_email(
        to="user@example.com",
        subject="Hello",
        html="<p>Hello</p>",
    )
"""

import asyncio
import random

import httpx

from inkwell.core.config import email_logger, settings
from inkwell.core.exceptions.types import EmailDeliveryException


__all__ = ["ResendEmailProvider"]


class ResendEmailProvider:
    """
    Sends email through the Resend HTTP API.

    Transient failures (network errors, 429 and 5xx responses) are retried a
    bounded number of times with jittered exponential backoff. Any other
    failure raises ``EmailDeliveryException`` carrying Resend's message.

    Args:
        client: Shared async HTTP client.
        api_key: Resend API key.
        sender_name: Display name of the sender.
        sender_address: Sender email address.
        base_url: Resend API base URL.
    """

    _MAX_RETRIES: int = 2
    _BACKOFF_BASE: float = 0.5
    _BACKOFF_MAX: float = 5.0
    _JITTER: float = 0.2

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = settings.RESEND_API_KEY,
        sender_name: str = settings.EMAIL_SENDER_NAME,
        sender_address: str = settings.EMAIL_SENDER_ADDRESS,
        base_url: str = settings.RESEND_BASE_URL,
    ):
        self._client = client
        self._api_key = api_key
        self._sender = f"{sender_name} <{sender_address}>"
        self._url = f"{base_url.rstrip('/')}/emails"

    def _compute_backoff(self, attempt: int) -> float:
        base = min(self._BACKOFF_BASE * (2 ** (attempt - 1)), self._BACKOFF_MAX)
        return base * random.uniform(1 - self._JITTER, 1 + self._JITTER)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return "Unexpected error sending email"
        if isinstance(data, dict) and isinstance(data.get("message"), str):
            return data["message"]
        return "Unexpected error sending email"

    async def send_email(
        self,
        to: str | list[str],
        subject: str,
        html: str,
        text: str | None = None,
    ) -> str:
        """
        Send one email.

        Returns:
            str: The Resend message id.

        Raises:
            EmailDeliveryException: If the API key is missing or Resend rejects the send.
        """
        if not self._api_key:
            email_logger.error("Resend API key is not configured")
            raise EmailDeliveryException("Resend API key is not initialized")

        payload: dict = {"from": self._sender, "to": to, "subject": subject, "html": html}
        if text:
            payload["text"] = text
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(1, self._MAX_RETRIES + 2):
            try:
                response = await self._client.post(
                    self._url, json=payload, headers=headers
                )
            except httpx.RequestError as e:
                email_logger.warning(
                    f"Resend network error (attempt {attempt}/{self._MAX_RETRIES + 1}): {e}"
                )
                if attempt <= self._MAX_RETRIES:
                    await asyncio.sleep(self._compute_backoff(attempt))
                    continue
                raise EmailDeliveryException() from e

            retryable = response.status_code == 429 or response.status_code >= 500
            if retryable and attempt <= self._MAX_RETRIES:
                email_logger.warning(
                    f"Resend returned {response.status_code}, retrying "
                    f"(attempt {attempt}/{self._MAX_RETRIES + 1})"
                )
                await asyncio.sleep(self._compute_backoff(attempt))
                continue

            if response.is_success:
                try:
                    data = response.json()
                except ValueError as e:
                    email_logger.error(f"Resend returned an unreadable body: {e}")
                    raise EmailDeliveryException() from e
                if isinstance(data, dict) and isinstance(data.get("id"), str):
                    email_logger.info(f"Email sent via Resend: id={data['id']}")
                    return data["id"]

            message = self._error_message(response)
            email_logger.error(
                f"Resend API error: status={response.status_code}, message={message}"
            )
            raise EmailDeliveryException(message)

        raise EmailDeliveryException()
