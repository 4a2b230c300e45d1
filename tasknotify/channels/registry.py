"""Builds the sender registry from application and environment config."""

import logging
from typing import Optional

from tasknotify.config.environment import EnvironmentConfig
from tasknotify.config.models import AppConfig
from tasknotify.notifications.senders import SenderRegistry

from .email_sender import EmailSender
from .http_senders import DiscordSender, SlackSender, SMSGatewaySender, WebhookSender
from .inapp import InAppInbox, InAppSender

logger = logging.getLogger(__name__)


def build_sender_registry(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    inbox: Optional[InAppInbox] = None,
) -> SenderRegistry:
    """Register every channel whose configuration is present.

    In-app, webhook, Slack and Discord are always available (Slack and
    Discord then need a per-notification channel unless a default webhook
    URL is configured). Email needs SMTP_HOST; SMS needs SMS_GATEWAY_URL.
    """
    http = app_config.channels.http
    http_kwargs = {"timeout_seconds": http.timeout_seconds, "user_agent": http.user_agent}

    registry = SenderRegistry()
    registry.register(InAppSender(inbox))
    registry.register(WebhookSender(**http_kwargs))
    registry.register(SlackSender(default_url=env_config.slack_webhook_url, **http_kwargs))
    registry.register(
        DiscordSender(
            default_url=env_config.discord_webhook_url,
            username=env_config.smtp_sender_name,
            **http_kwargs,
        )
    )

    if env_config.email_enabled:
        email = app_config.channels.email
        registry.register(
            EmailSender(
                env_config,
                use_tls=email.use_tls,
                subject_prefix=email.subject_prefix,
            )
        )
    else:
        logger.info("SMTP_HOST not set; email channel disabled")

    if env_config.sms_enabled:
        registry.register(
            SMSGatewaySender(
                env_config.sms_gateway_url,
                token=env_config.sms_gateway_token,
                **http_kwargs,
            )
        )
    else:
        logger.info("SMS_GATEWAY_URL not set; sms channel disabled")

    logger.info(f"Registered channel senders: {', '.join(registry.supported_types())}")
    return registry
