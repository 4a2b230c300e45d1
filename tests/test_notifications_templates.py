"""Unit tests for email template rendering.

Tests the TemplateRenderer for:
- Subject, HTML, and text template rendering
- Subject prefix and urgency marker
- HTML auto-escaping
- Strict undefined variable detection
"""

from datetime import datetime, timezone

import pytest
from jinja2 import DictLoader, Environment, StrictUndefined

from tasknotify.channels.templates import TemplateRenderer, build_template_context
from tasknotify.notifications.models import Notification, NotificationTemplateError


@pytest.fixture
def notification():
    return Notification(
        type="email",
        user_id=3,
        task_id=42,
        priority="normal",
        trigger="due_date",
        title="Task Reminder: File taxes",
        message="Your task 'File taxes' is due in 30 minutes.",
        recipient="owner@example.com",
        created_at=datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc),
    )


def test_template_renderer_initialization():
    renderer = TemplateRenderer()

    assert renderer.env is not None
    assert renderer.subject_template_name == "notification_subject.j2"
    assert renderer.html_template_name == "notification_body.html.j2"
    assert renderer.text_template_name == "notification_body.txt.j2"


def test_render_all_parts(notification):
    rendered = TemplateRenderer().render(notification)

    assert set(rendered) == {"subject", "html_body", "text_body"}
    assert rendered["subject"] == "Task Reminder: File taxes"
    assert "due in 30 minutes" in rendered["text_body"]
    assert "Task: #42" in rendered["text_body"]
    assert "Reason: due date" in rendered["text_body"]
    assert notification.id in rendered["text_body"]
    assert "<html" in rendered["html_body"].lower()


def test_subject_prefix(notification):
    rendered = TemplateRenderer(subject_prefix="[Tasks]").render(notification)
    assert rendered["subject"] == "[Tasks] Task Reminder: File taxes"


def test_urgent_subject(notification):
    notification.priority = "critical"
    rendered = TemplateRenderer(subject_prefix="[Tasks]").render(notification)
    assert rendered["subject"] == "[Tasks] [CRITICAL] Task Reminder: File taxes"


def test_subject_is_single_line(notification):
    notification.title = "Line one\nLine two"
    rendered = TemplateRenderer().render(notification)
    assert "\n" not in rendered["subject"]


def test_html_is_escaped(notification):
    notification.message = "<script>alert('x')</script>"
    rendered = TemplateRenderer().render(notification)

    assert "<script>" not in rendered["html_body"]
    assert "&lt;script&gt;" in rendered["html_body"]


def test_text_body_is_not_escaped(notification):
    rendered = TemplateRenderer().render(notification)
    assert "Your task 'File taxes' is due" in rendered["text_body"]


def test_missing_variable_raises(notification):
    renderer = TemplateRenderer()
    renderer.env = Environment(
        loader=DictLoader(
            {
                "notification_subject.j2": "{{ title }}",
                "notification_body.html.j2": "{{ assignee }}",
                "notification_body.txt.j2": "{{ message }}",
            }
        ),
        undefined=StrictUndefined,
    )

    with pytest.raises(NotificationTemplateError, match="Template rendering failed"):
        renderer.render(notification)


def test_extra_context_fills_variables(notification):
    renderer = TemplateRenderer()
    renderer.env = Environment(
        loader=DictLoader(
            {
                "notification_subject.j2": "{{ title }}",
                "notification_body.html.j2": "{{ assignee }}",
                "notification_body.txt.j2": "{{ message }}",
            }
        ),
        undefined=StrictUndefined,
    )

    rendered = renderer.render(notification, extra={"assignee": "Sam"})
    assert rendered["html_body"] == "Sam"


def test_missing_template_file():
    renderer = TemplateRenderer(subject_template="does_not_exist.j2")
    with pytest.raises(NotificationTemplateError):
        renderer.render(Notification(title="x"))


def test_build_template_context(notification):
    notification.priority = "high"
    context = build_template_context(notification, "[Tasks]")

    assert context["subject_prefix"] == "[Tasks]"
    assert context["priority"] == "high"
    assert context["trigger"] == "due_date"
    assert context["is_urgent"] is True
    assert context["created_at"] == "2025-01-15T12:00:00Z"
    assert context["task_id"] == 42
