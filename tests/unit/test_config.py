"""Tests for settings loading and AWS client setup."""

import pytest
from botocore.stub import Stubber
from pydantic import ValidationError

from cloudwatch_shipper.clients import create_log_stream_backend
from cloudwatch_shipper.clients.cloudwatch_logs import CloudWatchLogsClient
from cloudwatch_shipper.clients.memory import InMemoryLogStream
from cloudwatch_shipper.config import (
    AWSCredentials,
    DeliveryOptions,
    LoggingConfig,
    ShipperSettings,
    load_settings,
)
from cloudwatch_shipper.config.aws_config import AWSClientManager
from cloudwatch_shipper.config.settings import substitute_env_vars


@pytest.mark.unit
class TestDeliveryOptions:
    """Test option defaults and validation."""

    def test_defaults(self):
        options = DeliveryOptions()

        assert options.region == "us-east-1"
        assert options.open_timeout_seconds == 120
        assert options.read_timeout_seconds == 120
        assert options.batch_size == 100
        assert options.idle_wait_seconds == 0.1
        assert options.max_queue_size is None
        assert options.overflow_policy == "drop_oldest"
        assert options.max_sequence_token_retries == 50
        assert options.backend == "cloudwatch"

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            DeliveryOptions(batch_size=0)

    def test_unknown_overflow_policy(self):
        with pytest.raises(ValidationError):
            DeliveryOptions(overflow_policy="block")

    def test_unbounded_token_retries(self):
        assert DeliveryOptions(max_sequence_token_retries=None).max_sequence_token_retries is None


@pytest.mark.unit
class TestShipperSettings:
    """Test top-level settings."""

    def test_defaults(self):
        settings = ShipperSettings()

        assert settings.service_name == "cloudwatch-shipper"
        assert settings.log_stream_name == "default"
        assert settings.credentials.access_key_id is None
        assert settings.logging.level == "INFO"
        assert settings.metrics.enable_prometheus is False

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            ShipperSettings(environment="staging")

    def test_blank_stream_name(self):
        with pytest.raises(ValidationError):
            ShipperSettings(log_stream_name="  ")

    def test_log_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

        with pytest.raises(ValidationError):
            LoggingConfig(level="verbose")

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("OPTIONS__REGION", "eu-west-1")
        monkeypatch.setenv("LOG_GROUP_NAME", "from-env")

        settings = load_settings()

        assert settings.options.region == "eu-west-1"
        assert settings.log_group_name == "from-env"


@pytest.mark.unit
class TestLoadSettings:
    """Test YAML loading with environment substitution."""

    def test_yaml_with_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHIPPER_STREAM", "web-1")
        monkeypatch.delenv("SHIPPER_REGION", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "log_group_name: app\n"
            "log_stream_name: ${SHIPPER_STREAM}\n"
            "options:\n"
            "  region: ${SHIPPER_REGION:-ap-southeast-2}\n"
            "  batch_size: 25\n"
            "  backend: memory\n"
        )

        settings = load_settings(str(config_file))

        assert settings.log_group_name == "app"
        assert settings.log_stream_name == "web-1"
        assert settings.options.region == "ap-southeast-2"
        assert settings.options.batch_size == 25
        assert settings.options.backend == "memory"

    def test_empty_yaml(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_settings(str(config_file)).log_stream_name == "default"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_missing_required_variable(self, monkeypatch):
        monkeypatch.delenv("SHIPPER_UNSET", raising=False)

        with pytest.raises(ValueError, match="SHIPPER_UNSET"):
            substitute_env_vars({"stream": ["${SHIPPER_UNSET}"]})

    def test_non_strings_untouched(self):
        assert substitute_env_vars({"batch_size": 10, "enabled": True}) == {"batch_size": 10, "enabled": True}


@pytest.mark.unit
class TestAWSClientManager:
    """Test boto3 client construction."""

    def test_client_configuration(self):
        options = DeliveryOptions(region="eu-west-1", open_timeout_seconds=3, read_timeout_seconds=7)
        manager = AWSClientManager(AWSCredentials(access_key_id="a", secret_access_key="b"), options)

        client = manager.logs_client

        assert client.meta.region_name == "eu-west-1"
        assert client.meta.config.connect_timeout == 3
        assert client.meta.config.read_timeout == 7
        assert manager.logs_client is client

    def test_endpoint_override(self):
        options = DeliveryOptions(endpoint_url="http://localhost:4566")
        manager = AWSClientManager(AWSCredentials(access_key_id="a", secret_access_key="b"), options)

        assert manager.logs_client.meta.endpoint_url == "http://localhost:4566"

    def test_verify_connection(self):
        manager = AWSClientManager(AWSCredentials(access_key_id="a", secret_access_key="b"), DeliveryOptions())

        with Stubber(manager.logs_client) as stubber:
            stubber.add_response('describe_log_groups', {'logGroups': []}, {'limit': 1})
            assert manager.verify_connection() == {'logs': 'healthy'}

            stubber.add_client_error('describe_log_groups', 'AccessDeniedException', http_status_code=403)
            assert manager.verify_connection()['logs'].startswith('error')


@pytest.mark.unit
class TestBackendFactory:
    """Test create_log_stream_backend."""

    def test_memory_backend_is_fresh_each_time(self):
        options = DeliveryOptions(backend="memory")

        first = create_log_stream_backend(None, options)
        second = create_log_stream_backend(None, options)

        assert isinstance(first, InMemoryLogStream)
        assert first is not second

    def test_cloudwatch_backend(self):
        options = DeliveryOptions(region="eu-central-1")
        credentials = AWSCredentials(access_key_id="a", secret_access_key="b")

        backend = create_log_stream_backend(credentials, options)

        assert isinstance(backend, CloudWatchLogsClient)
        assert backend.aws_client_manager.options is options
        assert backend.aws_client_manager.credentials is credentials
