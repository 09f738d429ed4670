"""
One-shot flash notices carried across redirects in their own cookie.
"""

from pydantic import ValidationError

from inkwell.core.config import utils_logger
from inkwell.core.enums import ToastType
from inkwell.core.schemas.auth import Toast
from inkwell.core.services.auth.outcome import Interrupt
from inkwell.core.services.cookie_session import CookieSessionStorage


__all__ = ["ToastManager", "TOAST_KEY"]

TOAST_KEY = "flash-toast"


class ToastManager:
    def __init__(self, storage: CookieSessionStorage):
        self.storage = storage

    def create_toast_cookie(self, toast: Toast) -> str:
        """Return a ``Set-Cookie`` value flashing ``toast``."""
        session = self.storage.get_session()
        session.set(TOAST_KEY, toast.model_dump(mode="json"))
        return self.storage.commit_session(session)

    def redirect_with_toast(
        self,
        url: str,
        title: str,
        type: ToastType = ToastType.MESSAGE,
        description: str | None = None,
    ) -> Interrupt:
        toast = Toast(title=title, type=type, description=description)
        return Interrupt(url).with_cookies(self.create_toast_cookie(toast))

    def get_toast(self, cookie_header: str | None) -> tuple[Toast | None, str | None]:
        """
        Read and consume the pending toast.

        Returns:
            tuple: The toast (or None) and a ``Set-Cookie`` value clearing it
            when a toast was present.
        """
        session = self.storage.get_session(cookie_header)
        payload = session.get(TOAST_KEY)
        if payload is None:
            return None, None

        try:
            toast = Toast.model_validate(payload)
        except ValidationError:
            utils_logger.warning("Discarding malformed toast cookie")
            return None, self.storage.destroy_session(session)

        return toast, self.storage.destroy_session(session)
