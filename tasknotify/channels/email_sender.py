"""Email channel: Jinja2-rendered multipart messages delivered over SMTP."""

import logging
from email.message import EmailMessage
from typing import Optional

from tasknotify.config.environment import EnvironmentConfig
from tasknotify.notifications.models import (
    Notification,
    NotificationType,
    NotificationValidationError,
)
from tasknotify.notifications.senders import ChannelSender

from .smtp_client import SMTPClient, build_sender_address, parse_recipients
from .templates import TemplateRenderer

logger = logging.getLogger(__name__)


class EmailSender(ChannelSender):
    """Delivers email notifications.

    Flow per notification:
    1. Validate the recipient list (a bad address is never retried)
    2. Render subject and bodies (template errors are never retried)
    3. Send through SMTPClient (SMTP failures raise SMTPDeliveryError, retried)
    """

    notification_type = NotificationType.EMAIL.value

    def __init__(
        self,
        env_config: EnvironmentConfig,
        template_renderer: Optional[TemplateRenderer] = None,
        smtp_client: Optional[SMTPClient] = None,
        use_tls: bool = True,
        subject_prefix: str = "",
    ):
        self.env_config = env_config
        self.template_renderer = template_renderer or TemplateRenderer(subject_prefix=subject_prefix)
        self.smtp_client = smtp_client or SMTPClient(env_config, use_tls=use_tls)

    def build_message(self, notification: Notification) -> EmailMessage:
        try:
            recipients = parse_recipients(notification.recipient)
        except ValueError as e:
            raise NotificationValidationError(str(e)) from e

        rendered = self.template_renderer.render(notification)

        message = EmailMessage()
        message["Subject"] = rendered["subject"]
        message["From"] = build_sender_address(self.env_config)
        message["To"] = ", ".join(recipients)
        message.set_content(rendered["text_body"])
        message.add_alternative(rendered["html_body"], subtype="html")
        return message

    def send(self, notification: Notification) -> None:
        message = self.build_message(notification)
        self.smtp_client.send(message)
        logger.debug(f"Email notification {notification.id} handed to SMTP server")
