"""
Configuration Schema and Models

Pydantic models for the scheduler tree, the managed queues and the
application settings. Keys are snake_case; the camelCase names used by
existing deployments (``callbackRef``, ``sqsClientConfig``...) are
accepted and normalized.

Author: PulseQueue Project
License: MIT
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, validator, root_validator

from ..errors import ConfigurationError

DEFAULT_MAX_RECEIVE_COUNT = 10


class LogLevel(str, Enum):
    """Logging level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class InterruptorKind(str, Enum):
    """Kinds of configurable interruptors."""
    TICKER = "ticker"
    MULTIPLEXER = "multiplexer"
    CRON_MULTIPLEXER = "cron_multiplexer"
    QUEUE_CONSUMER = "queue_consumer"


def _normalize_keys(values: Any, aliases: Dict[str, str]) -> Any:
    """Rename alias keys to field names; field names win over aliases."""
    if not isinstance(values, dict):
        return values
    normalized = dict(values)
    for alias, field_name in aliases.items():
        if alias in normalized:
            value = normalized.pop(alias)
            normalized.setdefault(field_name, value)
    return normalized


def check_queue_settings(
    client_config: Optional[Dict[str, Any]],
    dead_letter_queue_name: Optional[str],
    max_receive_count: Optional[int]
) -> None:
    """
    Validate the queue settings that depend on each other.

    Raises:
        ConfigurationError: Missing client config or a receive count
            without a dead-letter queue name
    """
    if client_config is None:
        raise ConfigurationError("Invalid option 'sqsClientConfig': client configuration is required")
    if max_receive_count is not None and not dead_letter_queue_name:
        raise ConfigurationError("dead-letter queue name required when max receive count is specified")
    if max_receive_count is not None and max_receive_count <= 0:
        raise ConfigurationError(f"maxReceiveCount must be positive, got {max_receive_count}")


class AppConfig(BaseModel):
    """Application, logging and web settings."""

    host: str = Field(
        default="0.0.0.0",
        description="Web API host address"
    )
    port: int = Field(
        default=8080,
        description="Web API port"
    )
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application logging level"
    )
    log_to_file: bool = Field(
        default=False,
        description="Enable logging to file"
    )
    log_file_path: str = Field(
        default="/app/logs/pulsequeue.log",
        description="Log file location"
    )
    log_rotation_size: int = Field(
        default=10485760,  # 10MB
        description="Log file size before rotation (bytes)"
    )
    log_retention_count: int = Field(
        default=5,
        description="Number of rotated log files to keep"
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON formatted log lines"
    )

    class Config:
        use_enum_values = True


class SecurityConfig(BaseModel):
    """Webhook API access control."""

    webhook_secret: Optional[str] = Field(
        default=None,
        description="HS256 secret for API bearer tokens; API is open if unset"
    )
    token_expiry_hours: int = Field(
        default=24,
        description="Lifetime of tokens issued by create_token"
    )


class PulseConfig(BaseModel):
    """External pulse source driving the root ticker."""

    enabled: bool = Field(
        default=True,
        description="Start the pulse driver with the orchestrator"
    )
    interval_seconds: float = Field(
        default=1.0,
        description="Seconds between pulses (finest granularity)"
    )
    root: str = Field(
        default="cron",
        description="Name of the ticker receiving the pulses"
    )

    @validator("interval_seconds")
    def validate_interval(cls, v):
        if v <= 0:
            raise ValueError(f"Pulse interval must be positive: {v}")
        return v


class TickerConfig(BaseModel):
    """Ticker declaration."""

    kind: InterruptorKind = InterruptorKind.TICKER
    callback: str = Field(
        description="Reference to the interruptor or callable fired by the ticker"
    )
    threshold: int = Field(
        default=1,
        description="Pulses per firing; no count means every pulse"
    )
    wrapper: str = Field(
        default="thread",
        description="Isolation wrapper (thread, process or inline)"
    )
    timeout: Optional[float] = Field(
        default=30.0,
        description="Seconds the wrapper waits for the target"
    )

    @root_validator(pre=True)
    def normalize_keys(cls, values):
        return _normalize_keys(values, {
            "callbackRef": "callback",
            "callback_ref": "callback",
            "wrapperTarget": "wrapper",
            "wrapper_target": "wrapper",
            "ticksCount": "threshold",
            "ticks_count": "threshold",
        })

    @validator("threshold")
    def validate_threshold(cls, v):
        if v <= 0:
            raise ValueError(f"Ticker threshold must be positive: {v}")
        return v

    @validator("timeout")
    def validate_timeout(cls, v):
        if v is not None and v <= 0:
            raise ValueError(f"Wrapper timeout must be positive: {v}")
        return v


class MultiplexerConfig(BaseModel):
    """Plain fan-out multiplexer declaration."""

    kind: InterruptorKind = InterruptorKind.MULTIPLEXER
    children: List[str] = Field(
        default=[],
        description="Child references in dispatch order"
    )

    @root_validator(pre=True)
    def normalize_keys(cls, values):
        return _normalize_keys(values, {"interruptors": "children"})


class CronMultiplexerConfig(MultiplexerConfig):
    """Time-gated multiplexer declaration."""

    kind: InterruptorKind = InterruptorKind.CRON_MULTIPLEXER
    granularity: str = Field(
        default="minute",
        description="second, minute, hour or day"
    )

    @validator("granularity")
    def validate_granularity(cls, v):
        v = v.lower()
        if v not in ("second", "minute", "hour", "day"):
            raise ValueError(f"Unknown granularity: {v}")
        return v


class QueueConsumerConfig(BaseModel):
    """Leaf job draining a managed queue on every trigger."""

    kind: InterruptorKind = InterruptorKind.QUEUE_CONSUMER
    queue: str = Field(
        description="Name of a configured queue"
    )
    handler: str = Field(
        description="Reference to the message handler callable"
    )
    max_messages: int = Field(
        default=10,
        description="Messages received per trigger (1-10)"
    )
    priority: Optional[str] = Field(
        default=None,
        description="Only consume this priority level"
    )

    @validator("max_messages")
    def validate_max_messages(cls, v):
        if not 1 <= v <= 10:
            raise ValueError(f"max_messages must be between 1 and 10: {v}")
        return v


KIND_MODELS = {
    InterruptorKind.TICKER: TickerConfig,
    InterruptorKind.MULTIPLEXER: MultiplexerConfig,
    InterruptorKind.CRON_MULTIPLEXER: CronMultiplexerConfig,
    InterruptorKind.QUEUE_CONSUMER: QueueConsumerConfig,
}


def infer_kind(data: Dict[str, Any]) -> InterruptorKind:
    """Guess the kind of an entry that does not declare one."""
    if "kind" in data:
        return InterruptorKind(data["kind"])
    if "granularity" in data:
        return InterruptorKind.CRON_MULTIPLEXER
    if "children" in data or "interruptors" in data:
        return InterruptorKind.MULTIPLEXER
    if "queue" in data:
        return InterruptorKind.QUEUE_CONSUMER
    return InterruptorKind.TICKER


class QueueConfig(BaseModel):
    """
    Managed queue declaration.

    A dead-letter queue and redrive policy are provisioned when
    ``dead_letter_queue_name`` is set.
    """

    priority_handler: Optional[str] = Field(
        default=None,
        description="Priority handler reference (standard handler if unset)"
    )
    sqs_client_config: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Keyword arguments for the SQS client (region, endpoint, credentials)"
    )
    sqs_attributes: Dict[str, Any] = Field(
        default={},
        description="Queue attributes, e.g. VisibilityTimeout"
    )
    dead_letter_queue_name: Optional[str] = Field(
        default=None,
        description="Dead-letter queue to create and attach"
    )
    max_receive_count: Optional[int] = Field(
        default=None,
        description="Receives before a message is redriven (default 10)"
    )

    @root_validator(pre=True)
    def normalize_keys(cls, values):
        return _normalize_keys(values, {
            "priorityHandler": "priority_handler",
            "sqsClientConfig": "sqs_client_config",
            "sqsAttributes": "sqs_attributes",
            "deadLetterQueueName": "dead_letter_queue_name",
            "maxReceiveCount": "max_receive_count",
        })

    @root_validator(skip_on_failure=True)
    def validate_dead_letter_settings(cls, values):
        check_queue_settings(
            values.get("sqs_client_config"),
            values.get("dead_letter_queue_name"),
            values.get("max_receive_count")
        )
        return values


class Config(BaseModel):
    """
    Root configuration model for PulseQueue.

    Loaded from config.yaml and overridable by environment variables.
    ``interruptors`` maps names to ticker, multiplexer, cron multiplexer
    or queue consumer declarations; ``queues`` maps names to managed
    queue declarations.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    pulse: PulseConfig = Field(default_factory=PulseConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    interruptors: Dict[str, Any] = Field(
        default={},
        description="Named scheduler tree declarations"
    )
    queues: Dict[str, QueueConfig] = Field(
        default={},
        description="Named managed queue declarations"
    )

    @validator("interruptors", pre=True)
    def parse_interruptors(cls, v):
        """Parse each entry into the model for its kind."""
        parsed = {}
        for name, data in (v or {}).items():
            if isinstance(data, BaseModel):
                parsed[name] = data
                continue
            if not isinstance(data, dict):
                raise ValueError(f"Interruptor '{name}' must be a mapping")
            try:
                kind = infer_kind(data)
            except ValueError:
                raise ValueError(f"Interruptor '{name}' has unknown kind '{data.get('kind')}'") from None
            parsed[name] = KIND_MODELS[kind].parse_obj({**data, "kind": kind})
        return parsed

    @root_validator(skip_on_failure=True)
    def validate_references(cls, values):
        """Check names that must point inside this configuration."""
        interruptors = values.get("interruptors") or {}
        queues = values.get("queues") or {}
        pulse = values.get("pulse")

        for name, entry in interruptors.items():
            if isinstance(entry, QueueConsumerConfig) and entry.queue not in queues:
                raise ValueError(f"Queue consumer '{name}' references unknown queue '{entry.queue}'")

        if pulse is not None and pulse.enabled and interruptors:
            root = interruptors.get(pulse.root)
            if root is None:
                raise ValueError(f"Pulse root '{pulse.root}' is not a configured interruptor")
            if not isinstance(root, TickerConfig):
                raise ValueError(f"Pulse root '{pulse.root}' must be a ticker")
        return values
