from datetime import datetime, timezone

from inkwell.core.config import email_logger, settings
from inkwell.core.services.auth.outcome import SendCodeParams
from inkwell.core.services.email.resend import ResendEmailProvider
from inkwell.core.services.template import Renderer
from inkwell.core.utils import format_wait_time, mask_code


__all__ = ["AuthCodeMailer"]


class AuthCodeMailer:
    """
    Delivers TOTP login codes by email.

    In development the code is written to the email log instead of being
    sent, so no provider is needed.

    Args:
        provider: Resend provider. May be None in development.
        app_name: Product name shown in the email.
        code_period: Code lifetime in seconds, shown to the recipient.
        development: Log codes instead of sending them.
    """

    def __init__(
        self,
        provider: ResendEmailProvider | None,
        app_name: str = settings.APP_NAME,
        code_period: int = settings.TOTP_PERIOD,
        development: bool = settings.is_development,
    ):
        if provider is None and not development:
            raise ValueError("An email provider is required outside development")
        self._provider = provider
        self._app_name = app_name
        self._code_period = code_period
        self._development = development

    async def send_code(self, params: SendCodeParams) -> None:
        """
        Send ``params.code`` to ``params.email``.

        Raises:
            EmailDeliveryException: If the provider fails to deliver.
        """
        if self._development or self._provider is None:
            email_logger.info(f"[dev] Login code for {params.email}: {params.code}")
            return

        context = {
            "app_name": self._app_name,
            "code": params.code,
            "expires_in": format_wait_time(self._code_period),
            "sent_at": datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S GMT"),
        }
        html = await Renderer.render_template("auth_totp.html", context)
        text = await Renderer.render_template("auth_totp.txt", context)

        await self._provider.send_email(
            to=params.email,
            subject=f"Your {self._app_name} login code is {params.code}",
            html=html,
            text=text,
        )
        email_logger.info(
            f"Login code {mask_code(params.code)} sent to {params.email}"
        )

    __call__ = send_code
