"""SMTP client wrapper for the email channel.

Thin layer over smtplib handling TLS negotiation, authentication and
connection cleanup. Connection factories are injectable for tests.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, List, Optional

from email_validator import EmailNotValidError, validate_email

from tasknotify.config.environment import EnvironmentConfig
from tasknotify.notifications.models import SMTPDeliveryError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


class SMTPClient:
    """Sends EmailMessage objects over one short-lived SMTP connection each."""

    def __init__(
        self,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.env_config = env_config
        self.use_tls = use_tls
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def send(self, message: EmailMessage) -> None:
        """Deliver ``message``.

        Port 465 uses implicit TLS; any other port uses plain SMTP upgraded
        with STARTTLS when ``use_tls`` is set.

        Raises:
            SMTPDeliveryError: On any SMTP or network failure
        """
        env = self.env_config
        smtp = None
        try:
            if env.smtp_port == IMPLICIT_TLS_PORT:
                logger.debug(f"Connecting to {env.smtp_host}:{env.smtp_port} with implicit TLS")
                smtp = self.smtp_ssl_factory(
                    env.smtp_host, env.smtp_port, context=ssl.create_default_context()
                )
            else:
                logger.debug(f"Connecting to {env.smtp_host}:{env.smtp_port}")
                smtp = self.smtp_factory(env.smtp_host, env.smtp_port)
                if self.use_tls:
                    smtp.starttls(context=ssl.create_default_context())

            if env.smtp_user and env.smtp_pass:
                smtp.login(env.smtp_user, env.smtp_pass)

            smtp.send_message(message)
            logger.debug(f"Message sent to {message['To']}")

        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except Exception as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def parse_recipients(recipient_string: str) -> List[str]:
    """Parse and validate comma-separated email addresses.

    Raises:
        ValueError: If any address is invalid or none is given
    """
    recipients = []
    for email in (part.strip() for part in recipient_string.split(",")):
        if not email:
            continue
        try:
            validated = validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid recipient address '{email}': {e}") from e
        recipients.append(validated.normalized)

    if not recipients:
        raise ValueError("No valid recipient address given")

    return recipients


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Build the ``From`` header.

    Prefers SMTP_FROM_EMAIL, then SMTP_USER, then ``noreply@<smtp host>``.
    """
    sender_email = (
        env_config.smtp_from_email or env_config.smtp_user or f"noreply@{env_config.smtp_host}"
    )
    return f"{env_config.smtp_sender_name} <{sender_email}>"
