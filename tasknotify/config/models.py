"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class NotificationConfig(BaseModel):
    """Process-wide delivery engine settings. Immutable once built."""

    worker_count: int = Field(5, ge=1, le=256, description="Number of delivery worker threads")
    batch_size: int = Field(100, ge=1, description="Capacity of the shared delivery queue")
    max_retries: int = Field(
        3, ge=0, le=100, description="Default retry budget for notifications that omit one"
    )
    retry_delay_seconds: float = Field(
        300, ge=0, description="Fixed delay before a failed notification is re-submitted"
    )
    requeue_delay_seconds: float = Field(
        1.0,
        gt=0,
        description="Delay before a deferred item tries again when the queue is full",
    )

    model_config = {"frozen": True}


class SchedulerConfig(BaseModel):
    """Periodic due-date sweep settings."""

    enabled: bool = Field(True, description="Run the periodic overdue/due-soon sweep")
    sweep_interval: str = Field("15m", description="Interval between sweeps")
    due_soon_window: str = Field(
        "60m", description="Tasks due within this window get a due-date reminder"
    )
    renotify_interval: Optional[str] = Field(
        None,
        description="Suppress repeat sweep notifications for the same task within this window",
    )
    notification_type: str = Field(
        "in_app", description="Channel used for sweep-generated reminders"
    )

    sweep_interval_seconds: Optional[int] = None
    due_soon_window_seconds: Optional[int] = None
    renotify_interval_seconds: Optional[int] = None

    @field_validator("sweep_interval")
    @classmethod
    def validate_sweep_interval(cls, v: str) -> str:
        try:
            validate_duration_range(
                parse_duration(v), min_seconds=10, max_seconds=86400, label="Sweep interval"
            )
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("due_soon_window", "renotify_interval")
    @classmethod
    def validate_window(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            parse_duration(v)
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("notification_type")
    @classmethod
    def validate_notification_type(cls, v: str) -> str:
        allowed = ("email", "in_app", "sms", "webhook", "slack", "discord")
        normalized = v.strip().lower()
        if normalized not in allowed:
            raise ValueError(f"notification_type must be one of: {', '.join(allowed)}")
        return normalized

    @model_validator(mode="after")
    def compute_seconds(self):
        self.sweep_interval_seconds = parse_duration(self.sweep_interval)
        self.due_soon_window_seconds = parse_duration(self.due_soon_window)
        if self.renotify_interval is not None:
            self.renotify_interval_seconds = parse_duration(self.renotify_interval)
        return self


class EmailChannelConfig(BaseModel):
    """Email channel settings that are not secrets."""

    use_tls: bool = Field(True, description="Use STARTTLS (or implicit TLS on port 465)")
    subject_prefix: str = Field("[Tasks]", description="Prefix for every email subject")


class HttpChannelConfig(BaseModel):
    """Settings shared by webhook, Slack, Discord and SMS gateway senders."""

    timeout_seconds: int = Field(10, ge=1, le=120, description="HTTP request timeout")
    user_agent: str = Field("tasknotify/0.1", min_length=1)

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class ChannelsConfig(BaseModel):
    """Channel sender settings."""

    email: EmailChannelConfig = Field(default_factory=EmailChannelConfig)
    http: HttpChannelConfig = Field(default_factory=HttpChannelConfig)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(LogFormat.KEY_VALUE, description="json or key-value")

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object."""

    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
