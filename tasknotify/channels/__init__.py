"""Concrete channel senders plugged into the notification engine."""

from .email_sender import EmailSender
from .http_senders import DiscordSender, HttpSender, SlackSender, SMSGatewaySender, WebhookSender
from .inapp import InAppInbox, InAppSender, InboxEntry
from .registry import build_sender_registry
from .smtp_client import SMTPClient, build_sender_address, parse_recipients
from .templates import TemplateRenderer

__all__ = [
    "EmailSender",
    "HttpSender",
    "WebhookSender",
    "SlackSender",
    "DiscordSender",
    "SMSGatewaySender",
    "InAppInbox",
    "InAppSender",
    "InboxEntry",
    "build_sender_registry",
    "SMTPClient",
    "build_sender_address",
    "parse_recipients",
    "TemplateRenderer",
]
