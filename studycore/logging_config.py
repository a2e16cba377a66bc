import logging
import os
import sys

import structlog


class LoggingConfig:
    """Centralized logging configuration"""

    def __init__(self):
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_format = os.getenv("LOG_FORMAT", "json")  # json or text

        # Application metadata
        self.app_name = os.getenv("APP_NAME", "studycore")
        self.environment = os.getenv("ENVIRONMENT", "development")

    def setup_logging(self):
        """Setup structlog on top of the stdlib root logger"""

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                self._add_app_context,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer() if self.log_format == "json" else structlog.dev.ConsoleRenderer()
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level))

        # Replace only our own handler so embedding applications keep theirs
        for handler in list(root_logger.handlers):
            if getattr(handler, "_studycore", False):
                root_logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, self.log_level))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        console_handler._studycore = True
        root_logger.addHandler(console_handler)

        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("studycore").setLevel(getattr(logging, self.log_level))

        logger = structlog.get_logger("studycore.logging")
        logger.info(
            "Logging configuration initialized",
            log_level=self.log_level,
            log_format=self.log_format,
            environment=self.environment
        )

    def _add_app_context(self, logger, method_name, event_dict):
        """Add application context to all log entries"""
        event_dict.update({
            "app_name": self.app_name,
            "environment": self.environment,
        })
        return event_dict


# Global logging configuration instance
logging_config = LoggingConfig()


def setup_logging():
    """Initialize logging configuration"""
    logging_config.setup_logging()


def get_logger(name: str):
    """Get a structured logger for the given name"""
    return structlog.get_logger(name)
