"""Configuration settings using Pydantic for validation."""

from typing import Any, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import os
import re


class AWSCredentials(BaseModel):
    """AWS credentials (optional - boto3 falls back to its default chain)."""
    access_key_id: Optional[str] = Field(default=None, description="AWS access key ID")
    secret_access_key: Optional[str] = Field(default=None, description="AWS secret access key")
    session_token: Optional[str] = Field(default=None, description="AWS session token")


class DeliveryOptions(BaseModel):
    """Connection and delivery options shared by every worker of a supervisor."""
    region: str = Field(default="us-east-1", description="AWS region")
    open_timeout_seconds: float = Field(default=120, gt=0, description="HTTP connect timeout")
    read_timeout_seconds: float = Field(default=120, gt=0, description="HTTP read timeout")

    # LocalStack overrides for local development
    endpoint_url: Optional[str] = Field(default=None, description="CloudWatch Logs endpoint override")
    backend: Literal["cloudwatch", "memory"] = Field(
        default="cloudwatch", description="Log stream backend; a supervisor keeps one memory store for all its workers"
    )

    # Batching
    batch_size: int = Field(default=100, ge=1, le=10000, description="Maximum events per append")
    idle_wait_seconds: float = Field(default=0.1, gt=0, description="Sleep between checks of an empty queue")

    # Queue bounds
    max_queue_size: Optional[int] = Field(default=None, ge=1, description="Pending message limit (None = unbounded)")
    overflow_policy: Literal["drop_oldest", "drop_newest"] = Field(
        default="drop_oldest", description="What to discard when the queue is full"
    )

    max_sequence_token_retries: Optional[int] = Field(
        default=50, ge=0, description="Consecutive sequence token conflicts tolerated per batch (None = unbounded)"
    )
    shutdown_timeout_seconds: float = Field(default=5.0, ge=0, description="Bounded wait for the final flush")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")
    output: str = Field(default="stderr", description="Log output destination")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if v.upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"Unknown log level '{v}'")
        return v.upper()


class MetricsConfig(BaseModel):
    """Metrics configuration."""
    enable_prometheus: bool = Field(default=False, description="Expose Prometheus metrics over HTTP")
    prometheus_port: int = Field(default=8081, description="Prometheus metrics port")


class ShipperSettings(BaseSettings):
    """Main log shipper settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # Service configuration
    service_name: str = Field(default="cloudwatch-shipper", description="Service name")
    environment: str = Field(default="local", description="Environment: local, dev, prod")

    # Destination
    log_group_name: str = Field(default="cloudwatch-shipper", description="CloudWatch log group")
    log_stream_name: str = Field(default="default", description="CloudWatch log stream")

    # Component configurations
    credentials: AWSCredentials = Field(default_factory=AWSCredentials)
    options: DeliveryOptions = Field(default_factory=DeliveryOptions)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        if v not in ['local', 'dev', 'prod']:
            raise ValueError("Environment must be 'local', 'dev', or 'prod'")
        return v

    @field_validator('log_group_name', 'log_stream_name')
    @classmethod
    def validate_names(cls, v):
        if not v or not v.strip():
            raise ValueError("Log group and stream names must not be empty")
        return v


def substitute_env_vars(obj: Any) -> Any:
    """
    Recursively substitute environment variables in configuration objects.

    Supports syntax:
    - ${VAR_NAME} - Required variable (raises error if not found)
    - ${VAR_NAME:-default} - Optional variable with default value

    Args:
        obj: Configuration object (dict, list, string, or other)

    Returns:
        Object with environment variables substituted

    Raises:
        ValueError: If required environment variable is not found
    """
    if isinstance(obj, dict):
        return {key: substitute_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_env_var(match):
            var_expr = match.group(1)

            if ':-' in var_expr:
                var_name, default_value = var_expr.split(':-', 1)
                return os.getenv(var_name.strip(), default_value)
            else:
                var_name = var_expr.strip()
                value = os.getenv(var_name)
                if value is None:
                    raise ValueError(f"Required environment variable '{var_name}' is not set")
                return value

        return re.sub(r'\$\{([^}]+)\}', replace_env_var, obj)
    else:
        return obj


def load_settings(config_file: Optional[str] = None) -> ShipperSettings:
    """
    Load settings from config file and environment variables.

    The config file supports environment variable substitution using ${VAR_NAME} syntax.
    Values given in the file are passed to the settings constructor; anything the
    file leaves out is read from the environment.

    Args:
        config_file: Path to YAML configuration file

    Returns:
        ShipperSettings: Validated configuration object

    Raises:
        ValueError: If required environment variables are missing
        FileNotFoundError: If config file doesn't exist
    """

    if config_file and os.path.exists(config_file):
        import yaml

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        config_data = substitute_env_vars(raw_config)

        return ShipperSettings(**config_data)

    elif config_file:
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    # Load from environment variables only
    return ShipperSettings()
