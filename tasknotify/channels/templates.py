"""Template rendering for email notifications using Jinja2.

Wraps Jinja2 with strict undefined checking so that a template referring
to a missing field fails loudly instead of sending a half-empty email.
"""

import logging
from typing import Any, Dict, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from tasknotify.notifications.models import Notification, NotificationTemplateError, enum_value
from tasknotify.utils.timestamps import format_timestamp

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders subject, HTML and plain-text bodies for a notification.

    Templates are loaded from the ``tasknotify.channels`` package and cached
    by the Jinja2 environment.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        subject_template: str = "notification_subject.j2",
        html_template: str = "notification_body.html.j2",
        text_template: str = "notification_body.txt.j2",
        subject_prefix: str = "",
    ):
        self.subject_template_name = subject_template
        self.html_template_name = html_template
        self.text_template_name = text_template
        self.subject_prefix = subject_prefix

        self.env = Environment(
            loader=PackageLoader("tasknotify.channels", template_dir),
            # Only the HTML body is escaped; subject and text stay verbatim
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            undefined=StrictUndefined,
        )

    def render(self, notification: Notification, extra: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        """Render all email parts.

        Returns:
            Dictionary with ``subject`` (single line), ``html_body`` and ``text_body``

        Raises:
            NotificationTemplateError: If rendering fails
        """
        context = build_template_context(notification, self.subject_prefix)
        if extra:
            context.update(extra)

        try:
            subject = (
                self.env.get_template(self.subject_template_name)
                .render(context)
                .strip()
                .replace("\n", " ")
            )
            html_body = self.env.get_template(self.html_template_name).render(context)
            text_body = self.env.get_template(self.text_template_name).render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        logger.debug(f"Rendered email templates for notification {notification.id}")
        return {"subject": subject, "html_body": html_body, "text_body": text_body}


def build_template_context(notification: Notification, subject_prefix: str = "") -> Dict[str, Any]:
    """Flatten a notification into template variables."""
    return {
        "subject_prefix": subject_prefix,
        "notification_id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "priority": enum_value(notification.priority),
        "trigger": enum_value(notification.trigger),
        "task_id": notification.task_id,
        "user_id": notification.user_id,
        "is_urgent": enum_value(notification.priority) in ("high", "critical"),
        "created_at": format_timestamp(notification.created_at),
        "metadata": notification.metadata,
    }
