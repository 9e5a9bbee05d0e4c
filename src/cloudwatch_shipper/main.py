"""Log shipper service - ships lines read from stdin to CloudWatch Logs."""

import logging
import os
import signal
import sys
import threading
from typing import Optional, TextIO

from prometheus_client import start_http_server

from .config.settings import load_settings
from .delivery.supervisor import DeliverySupervisor
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


class ShipperService:
    """Reads lines from a text stream and delivers each one as a log event."""

    def __init__(self, config_file: Optional[str] = None, source: Optional[TextIO] = None):
        self.config = load_settings(config_file)
        self.source = source or sys.stdin
        self.supervisor: Optional[DeliverySupervisor] = None
        self.lines_read = 0
        self._shutdown_event = threading.Event()

        setup_logging(self.config.logging, self.config.service_name)
        logger.info("Log shipper service initialized")

    def start(self) -> bool:
        """Ship until the source is exhausted or a shutdown is requested.

        Returns:
            True if everything read was delivered before the shutdown timeout
        """
        logger.info(
            f"Starting log shipper: group={self.config.log_group_name}, "
            f"stream={self.config.log_stream_name}, region={self.config.options.region}"
        )

        if self.config.metrics.enable_prometheus:
            start_http_server(self.config.metrics.prometheus_port)
            logger.info(f"Prometheus metrics on port {self.config.metrics.prometheus_port}")

        self.supervisor = DeliverySupervisor(
            self.config.credentials,
            self.config.log_group_name,
            self.config.log_stream_name,
            self.config.options
        )

        reader = threading.Thread(target=self._read_source, name="stdin-reader", daemon=True)
        reader.start()

        self._shutdown_event.wait()

        logger.info(f"Shutting down log shipper after {self.lines_read} lines")
        return self.supervisor.shutdown()

    def stop(self) -> None:
        self._shutdown_event.set()

    def _read_source(self) -> None:
        try:
            for line in self.source:
                if self._shutdown_event.is_set():
                    break
                line = line.rstrip('\r\n')
                if not line:
                    continue
                self.supervisor.deliver(line)
                self.lines_read += 1
        except Exception as e:
            logger.error(f"Reading input failed: {e}", exc_info=True)
        finally:
            self._shutdown_event.set()

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating shutdown")
            self.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)


def main() -> None:
    """Main entry point."""
    config_file = os.getenv("CONFIG_FILE")
    service = ShipperService(config_file)
    service.setup_signal_handlers()

    try:
        delivered = service.start()
    except Exception as e:
        logger.error(f"Service failed: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(0 if delivered else 2)


if __name__ == "__main__":
    main()
