from inkwell.core.services.email.mailer import AuthCodeMailer
from inkwell.core.services.email.resend import ResendEmailProvider
from inkwell.core.services.email.validator import EmailValidator, is_valid_email_format

__all__ = [
    "AuthCodeMailer",
    "EmailValidator",
    "ResendEmailProvider",
    "is_valid_email_format",
]
