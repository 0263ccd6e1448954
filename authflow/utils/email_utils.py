import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr

from authflow.core.config import Settings

log = logging.getLogger(__name__)


class MailDeliveryError(RuntimeError):
    pass


def build_message(settings: Settings, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["From"] = formataddr((settings.MAIL_FROM_NAME, str(settings.MAIL_FROM)))
    msg["To"] = to_email
    msg["Subject"] = subject
    if text_body:
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


def send_mail(settings: Settings, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> None:
    """Sends one mail via SMTP. Raises MailDeliveryError on any transport failure."""
    if not settings.MAIL_SERVER:
        raise MailDeliveryError("MAIL_SERVER is not configured")

    msg = build_message(settings, to_email, subject, html_body, text_body)
    try:
        with smtplib.SMTP(settings.MAIL_SERVER, settings.MAIL_PORT, timeout=settings.MAIL_TIMEOUT_SECONDS) as server:
            server.ehlo()
            if settings.MAIL_USE_TLS:
                server.starttls()
                server.ehlo()
            if settings.MAIL_USERNAME and settings.MAIL_PASSWORD:
                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
            server.sendmail(str(settings.MAIL_FROM), [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as ex:
        raise MailDeliveryError(f"SMTP delivery to {to_email} failed: {ex}") from ex
    log.info("Mail sent to %s: %s", to_email, subject)


def print_mail(settings: Settings, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> None:
    """Development backend: writes the mail to the log instead of sending it."""
    log.info("[MAIL] To: %s\nSubject: %s\n---\n%s", to_email, subject, text_body or html_body)
