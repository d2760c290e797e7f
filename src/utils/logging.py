"""Logging utilities for the application."""

import logging
import os
import sys

# Create and configure application logger
logger = logging.getLogger("kronos")

logging_level = getattr(logging, os.environ.get("LOGGING_LEVEL", "INFO").upper(), logging.INFO)

logger.setLevel(logging_level)

# Create formatter with process and thread IDs for worker identification
formatter = logging.Formatter("%(asctime)s - PID:%(process)d - Thread:%(thread)d - %(name)s - %(levelname)s - %(message)s")

# Create and configure stdout handler
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(formatter)

# Add stdout handler to logger
logger.addHandler(console_handler)

# Upstream request lines only at WARNING and above
for noisy_logger in ("httpx", "httpcore"):
    logging.getLogger(noisy_logger).setLevel(max(logging_level, logging.WARNING))

# Ship logs to Application Insights when deployed with a connection string
appinsights_connection_string = os.environ.get("APPLICATIONINSIGHTS_CONNECTION_STRING")
if appinsights_connection_string:
    from azure.monitor.opentelemetry import configure_azure_monitor
    from opentelemetry.instrumentation.logging import LoggingInstrumentor

    configure_azure_monitor(
        connection_string=appinsights_connection_string,
        logger_name=logger.name,
    )

    # Avoid recursive logging from the exporter's own HTTP calls
    LoggingInstrumentor().instrument(level=logging_level, excluded_loggers=["azure", "httpx", "httpcore"])

# Prevent propagation to root logger to avoid duplicate logs
logger.propagate = False
