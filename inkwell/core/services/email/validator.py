"""
Email address validation.

The syntax check is done by ``email-validator``, the same library behind
pydantic's ``EmailStr``. When MX checking is enabled the domain must also
publish at least one MX record, looked up over DNS-over-HTTPS. Any lookup
failure counts as invalid.
"""

import httpx
from email_validator import EmailNotValidError, validate_email

from inkwell.core.config import email_logger, settings


__all__ = ["EmailValidator", "is_valid_email_format"]


def _ascii_domain(email: str) -> str | None:
    try:
        return validate_email(email, check_deliverability=False).ascii_domain
    except EmailNotValidError:
        return None


def is_valid_email_format(email: str) -> bool:
    return _ascii_domain(email) is not None


class EmailValidator:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        check_mx: bool = settings.is_production,
        lookup_url: str = settings.EMAIL_MX_LOOKUP_URL,
    ):
        if check_mx and client is None:
            raise ValueError("An HTTP client is required for MX lookups")
        self._client = client
        self._check_mx = check_mx
        self._lookup_url = lookup_url

    async def has_mx_record(self, domain: str) -> bool:
        if self._client is None:
            raise ValueError("An HTTP client is required for MX lookups")
        try:
            response = await self._client.get(
                self._lookup_url,
                params={"name": domain, "type": "MX"},
                headers={"Accept": "application/dns-json"},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            email_logger.error(f"MX record check failed for {domain}: {e}")
            return False

        answers = data.get("Answer")
        return data.get("Status") == 0 and isinstance(answers, list) and len(answers) > 0

    async def validate(self, email: str) -> bool:
        """Return True if ``email`` is well-formed and, when enabled, routable."""
        domain = _ascii_domain(email)
        if domain is None:
            return False
        if not self._check_mx:
            return True

        return await self.has_mx_record(domain.lower())

    __call__ = validate
