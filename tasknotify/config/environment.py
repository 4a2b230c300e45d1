"""Environment variable loading and validation.

Secrets and deployment endpoints come from the environment; behavior
settings come from the YAML file.
"""

import os
from typing import List, Optional
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        smtp_from_email: Optional[str] = None,
        slack_webhook_url: Optional[str] = None,
        discord_webhook_url: Optional[str] = None,
        sms_gateway_url: Optional[str] = None,
        sms_gateway_token: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name or "Task Notifier"
        self.smtp_from_email = smtp_from_email
        self.slack_webhook_url = slack_webhook_url
        self.discord_webhook_url = discord_webhook_url
        self.sms_gateway_url = sms_gateway_url
        self.sms_gateway_token = sms_gateway_token
        self.log_level = log_level
        self.database_url = database_url or "sqlite:///./data/tasknotify.db"

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host)

    @property
    def sms_enabled(self) -> bool:
        return bool(self.sms_gateway_url)


def load_environment_config() -> EnvironmentConfig:
    """Load and validate environment variables.

    All variables are optional; a channel whose variables are absent is
    simply not registered.

    - SMTP_HOST, SMTP_PORT (default 587), SMTP_USER, SMTP_PASS,
      SMTP_SENDER_NAME, SMTP_FROM_EMAIL: email channel
    - SLACK_WEBHOOK_URL, DISCORD_WEBHOOK_URL: default chat destinations
    - SMS_GATEWAY_URL, SMS_GATEWAY_TOKEN: HTTP SMS gateway
    - LOG_LEVEL: overrides the configured log level
    - DATABASE_URL: SQLAlchemy URL (default sqlite:///./data/tasknotify.db)

    Raises:
        ConfigurationError: If any present variable is invalid
    """
    errors: List[str] = []

    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    smtp_from_email = os.getenv("SMTP_FROM_EMAIL")
    log_level = os.getenv("LOG_LEVEL")

    smtp_port = 587
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535.")
        except ValueError:
            errors.append(f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer.")

    if smtp_user and not smtp_pass:
        errors.append("SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication.")
    elif smtp_pass and not smtp_user:
        errors.append("SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication.")

    if smtp_from_email:
        try:
            validate_email(smtp_from_email, check_deliverability=False)
        except EmailNotValidError as e:
            errors.append(f"Invalid SMTP_FROM_EMAIL: '{smtp_from_email}' - {e}")

    urls = {
        "SLACK_WEBHOOK_URL": os.getenv("SLACK_WEBHOOK_URL"),
        "DISCORD_WEBHOOK_URL": os.getenv("DISCORD_WEBHOOK_URL"),
        "SMS_GATEWAY_URL": os.getenv("SMS_GATEWAY_URL"),
    }
    for name, url in urls.items():
        if url and not _is_http_url(url):
            errors.append(f"Invalid {name}: '{url}'. Must be an http(s) URL.")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Unset variables for channels you do not use",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=os.getenv("SMTP_SENDER_NAME"),
        smtp_from_email=smtp_from_email,
        slack_webhook_url=urls["SLACK_WEBHOOK_URL"],
        discord_webhook_url=urls["DISCORD_WEBHOOK_URL"],
        sms_gateway_url=urls["SMS_GATEWAY_URL"],
        sms_gateway_token=os.getenv("SMS_GATEWAY_TOKEN"),
        log_level=log_level.upper() if log_level else None,
        database_url=os.getenv("DATABASE_URL"),
    )


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
