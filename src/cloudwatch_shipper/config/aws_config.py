"""AWS-specific configuration and client setup."""

import boto3
from botocore.config import Config
from typing import Optional
import logging

from .settings import AWSCredentials, DeliveryOptions

logger = logging.getLogger(__name__)


class AWSClientManager:
    """Manages the CloudWatch Logs client with proper configuration."""

    def __init__(self, credentials: Optional[AWSCredentials], options: DeliveryOptions):
        self.credentials = credentials or AWSCredentials()
        self.options = options
        self._logs_client = None

        # Sequence token conflicts are handled by the delivery worker, so
        # botocore only retries transport-level failures.
        self._boto_config = Config(
            region_name=options.region,
            retries={
                'max_attempts': 3,
                'mode': 'standard'
            },
            connect_timeout=options.open_timeout_seconds,
            read_timeout=options.read_timeout_seconds
        )

    @property
    def logs_client(self):
        """Get or create CloudWatch Logs client."""
        if self._logs_client is None:
            self._logs_client = boto3.client(
                'logs',
                config=self._boto_config,
                endpoint_url=self.options.endpoint_url,
                aws_access_key_id=self.credentials.access_key_id,
                aws_secret_access_key=self.credentials.secret_access_key,
                aws_session_token=self.credentials.session_token
            )
            if self.options.endpoint_url:
                logger.info(f"Created CloudWatch Logs client: {self.options.endpoint_url}")
            else:
                logger.info(f"Created AWS CloudWatch Logs client in region: {self.options.region}")

        return self._logs_client

    def verify_connection(self) -> dict:
        """Verify the CloudWatch Logs connection and return status."""
        status = {}

        try:
            self.logs_client.describe_log_groups(limit=1)
            status['logs'] = 'healthy'
            logger.info("CloudWatch Logs connection verified")
        except Exception as e:
            status['logs'] = f'error: {str(e)}'
            logger.error(f"CloudWatch Logs connection failed: {e}")

        return status
