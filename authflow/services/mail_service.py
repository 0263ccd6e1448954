# authflow/services/mail_service.py
from __future__ import annotations

import logging
from html import escape
from typing import Optional

from authflow.core.config import Settings
from authflow.utils.email_utils import MailDeliveryError, print_mail, send_mail

log = logging.getLogger(__name__)

# The console backend writes codes to the log; only allowed here
CONSOLE_ENVIRONMENTS = ("development",)


class Mailer:
    """Delivers verification codes and reset tokens.

    Both send methods raise MailDeliveryError on failure; callers decide
    whether that is fatal (the flows in this package log and swallow it).
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        backend = (settings.MAIL_BACKEND or "console").lower().strip()
        if backend not in ("smtp", "console"):
            raise ValueError(f"unknown MAIL_BACKEND {backend!r}")
        env = (settings.APP_ENV or "").lower().strip()
        if backend == "console" and env not in CONSOLE_ENVIRONMENTS:
            raise ValueError(f"MAIL_BACKEND 'console' is not allowed with APP_ENV {env!r}, use 'smtp'")
        self.backend = backend

    def _deliver(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        if self.backend == "smtp":
            send_mail(self.settings, to_email, subject, html_body, text_body)
        else:
            print_mail(self.settings, to_email, subject, html_body, text_body)

    def _base_url(self) -> str:
        return self.settings.PUBLIC_BASE_URL.rstrip("/")

    def send_verification_email(self, email: str, token: str, display_name: Optional[str] = None) -> None:
        minutes = self.settings.VERIFICATION_TOKEN_EXPIRE_MINUTES
        name = display_name or "there"
        app_name = self.settings.APP_NAME
        link = f"{self._base_url()}/verify-email?token={token}"

        subject = "Verify your email"
        text = f"""Welcome to {app_name}!

Hi {name},

your verification code is: {token}

You can also confirm here: {link}
The code is valid for {minutes} minutes.

If you did not sign up, ignore this message.
""".strip()
        html = (
            f"<p>Hi <b>{escape(name)}</b>,</p>"
            f"<p>your verification code for {escape(app_name)} is:</p>"
            f'<p style="font-size: 24px; letter-spacing: 4px;"><b>{escape(token)}</b></p>'
            f'<p><a href="{escape(link)}" target="_blank">Verify email</a></p>'
            f"<p>The code is valid for {minutes} minutes.</p>"
            f"<p>If you did not sign up, ignore this message.</p>"
        )
        self._deliver(email, subject, html, text)

    def send_reset_password_email(self, email: str, token: str, display_name: Optional[str] = None) -> None:
        minutes = self.settings.RESET_TOKEN_EXPIRE_MINUTES
        name = display_name or "there"
        link = f"{self._base_url()}/reset-password?token={token}"

        subject = "Reset your password"
        text = (
            f"Hi {name},\n\n"
            f"someone asked to reset the password of your account.\n"
            f"Reset code (valid {minutes} minutes): {token}\n\n{link}\n\n"
            f"If that was not you, ignore this email."
        )
        html = (
            f"<p>Hi <b>{escape(name)}</b>,</p>"
            f"<p>someone asked to reset the password of your account.</p>"
            f"<p>Reset code: <b>{escape(token)}</b></p>"
            f'<p><a href="{escape(link)}" target="_blank">Set a new password</a></p>'
            f"<p>The code is valid for {minutes} minutes.</p>"
            f"<p>If that was not you, ignore this email.</p>"
        )
        self._deliver(email, subject, html, text)


def deliver_quietly(send, *args, **kwargs) -> bool:
    """Runs a Mailer send; failure is logged and reported as False."""
    try:
        send(*args, **kwargs)
        return True
    except MailDeliveryError as e:
        log.error("Mail delivery failed: %s", e)
        return False
    except Exception:
        log.exception("Unexpected mailer failure")
        return False
