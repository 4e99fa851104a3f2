"""
Logging configuration for the jeeprouting engine
"""

import logging
import sys
from typing import Optional

from .config import config


class JeepRoutingLogger:
    """Centralized logging for the jeeprouting engine"""

    def __init__(self, name: str = "jeeprouting", level: int = logging.INFO,
                 log_file: Optional[str] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Prevent duplicate handlers (the package NullHandler does not count)
        if not [h for h in self.logger.handlers if not isinstance(h, logging.NullHandler)]:
            self._setup_handlers(log_file)

    def _setup_handlers(self, log_file: Optional[str]):
        """Setup console and (optional) file handlers"""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(console_format)
        self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_format = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
            )
            file_handler.setFormatter(file_format)
            self.logger.addHandler(file_handler)

    def info(self, message: str):
        """Log info message"""
        self.logger.info(message)

    def debug(self, message: str):
        """Log debug message"""
        self.logger.debug(message)

    def warning(self, message: str):
        """Log warning message"""
        self.logger.warning(message)

    def error(self, message: str):
        """Log error message"""
        self.logger.error(message)

    def critical(self, message: str):
        """Log critical message"""
        self.logger.critical(message)

    def log_route_request(self, origin: tuple, destination: tuple, case: str,
                          duration_ms: float, success: bool):
        """Log route request metrics"""
        self.info(f"Route request: {origin} -> {destination}, case={case}, "
                  f"duration={duration_ms:.2f}ms, success={success}")

    def log_api_call(self, api_name: str, duration_ms: float, success: bool):
        """Log API call metrics"""
        self.info(f"API call: {api_name}, duration={duration_ms:.2f}ms, success={success}")


# Global logger instance
logger = JeepRoutingLogger(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    log_file=config.log_file,
)
