"""AWS CloudWatch Logs backend."""

import logging
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..config.aws_config import AWSClientManager
from ..exceptions import (
    DataAlreadyAccepted,
    GroupAlreadyExists,
    GroupNotFound,
    InvalidSequenceToken,
    RemoteLogStreamError,
    StreamAlreadyExists,
)
from .base import AppendResult, LogEvent

logger = logging.getLogger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


def extract_expected_token(error: ClientError) -> Optional[str]:
    """
    Pull the sequence token the stream expects out of a CloudWatch error.

    CloudWatch returns it as the modeled ``expectedSequenceToken`` field and
    also as the last word of the error message; the message is used when the
    field is missing. A literal ``null`` means the stream expects no token.
    """
    token = error.response.get('expectedSequenceToken')
    if token:
        return token

    message = error.response.get('Error', {}).get('Message', '') or ''
    words = message.split()
    if not words or words[-1] == 'null':
        return None
    return words[-1]


class CloudWatchLogsClient:
    """
    CloudWatch Logs implementation of the LogStreamBackend protocol.

    Translates botocore errors into the shipper's exception hierarchy so the
    delivery worker never has to inspect AWS error codes.
    """

    def __init__(self, aws_client_manager: AWSClientManager):
        self.aws_client_manager = aws_client_manager

    @property
    def client(self):
        return self.aws_client_manager.logs_client

    def create_log_group(self, log_group_name: str) -> None:
        try:
            self.client.create_log_group(logGroupName=log_group_name)
            logger.info(f"Created log group {log_group_name}")
        except ClientError as e:
            if _error_code(e) == 'ResourceAlreadyExistsException':
                raise GroupAlreadyExists(log_group_name) from e
            raise RemoteLogStreamError(f"Failed to create log group {log_group_name}: {e}") from e
        except BotoCoreError as e:
            raise RemoteLogStreamError(f"Failed to create log group {log_group_name}: {e}") from e

    def create_log_stream(self, log_group_name: str, log_stream_name: str) -> None:
        try:
            self.client.create_log_stream(
                logGroupName=log_group_name,
                logStreamName=log_stream_name
            )
            logger.info(f"Created log stream {log_group_name}/{log_stream_name}")
        except ClientError as e:
            code = _error_code(e)
            if code == 'ResourceNotFoundException':
                raise GroupNotFound(log_group_name) from e
            if code == 'ResourceAlreadyExistsException':
                raise StreamAlreadyExists(f"{log_group_name}/{log_stream_name}") from e
            raise RemoteLogStreamError(
                f"Failed to create log stream {log_group_name}/{log_stream_name}: {e}"
            ) from e
        except BotoCoreError as e:
            raise RemoteLogStreamError(
                f"Failed to create log stream {log_group_name}/{log_stream_name}: {e}"
            ) from e

    def append_events(
        self,
        log_group_name: str,
        log_stream_name: str,
        events: List[LogEvent],
        sequence_token: Optional[str] = None,
    ) -> AppendResult:
        request = {
            'logGroupName': log_group_name,
            'logStreamName': log_stream_name,
            'logEvents': [event.to_dict() for event in events]
        }

        if sequence_token:
            request['sequenceToken'] = sequence_token

        try:
            response = self.client.put_log_events(**request)
        except ClientError as e:
            code = _error_code(e)
            if code == 'InvalidSequenceTokenException':
                raise InvalidSequenceToken(str(e), extract_expected_token(e)) from e
            if code == 'DataAlreadyAcceptedException':
                raise DataAlreadyAccepted(str(e), extract_expected_token(e)) from e
            raise RemoteLogStreamError(f"Failed to put log events: {e}") from e
        except BotoCoreError as e:
            raise RemoteLogStreamError(f"Failed to put log events: {e}") from e

        return AppendResult(
            next_sequence_token=response.get('nextSequenceToken'),
            rejected_info=response.get('rejectedLogEventsInfo')
        )
