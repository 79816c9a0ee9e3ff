import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from forge_client.config import get_log_level


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure structured JSON logging for SDK consumers and the example server.

    Replaces the handlers of the root logger and the uvicorn loggers with a single
    stdout handler so upload progress and request logs share one format.

    Returns:
        logging.Logger: The configured root logger instance.
    """
    formatter = JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    resolved_level = (level or get_log_level()).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers = []
    root_logger.addHandler(stream_handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        u_logger = logging.getLogger(logger_name)
        u_logger.setLevel(resolved_level)
        u_logger.handlers = []
        u_logger.addHandler(stream_handler)
        u_logger.propagate = False

    return root_logger
