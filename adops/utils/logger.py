"""
AdOps Analytics - Logging Utility
=================================

Logging setup using Loguru with:
- Console logging
- Optional file logging with rotation
- Separate error log
- JSON logging support
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from adops.core.config import Config

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)


class LoggerSetup:
    """Configure and manage application logging"""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize logger with configuration

        Args:
            config: The ``logging`` section of settings.yaml. Read from
                :class:`Config` when omitted.
        """
        self.config = config if config is not None else self._load_config()
        self._setup_logger()

    def _load_config(self) -> dict:
        """Load logging configuration, falling back to defaults"""
        section = Config.get("logging", default=None)
        if not isinstance(section, dict):
            return self._default_config()
        return {**self._default_config(), **section}

    def _default_config(self) -> dict:
        """Default logging configuration"""
        return {
            'level': 'INFO',
            'format': DEFAULT_FORMAT,
            'console': {'enabled': True, 'colorize': True},
            'file': {
                'enabled': False,
                'path': './logs/adops.log',
                'rotation': '50 MB',
                'retention': '14 days',
                'compression': 'zip'
            },
            'error_file': {
                'enabled': False,
                'path': './logs/errors.log',
                'level': 'ERROR',
                'rotation': '10 MB',
                'retention': '30 days'
            },
            'json': {
                'enabled': False,
                'path': './logs/adops.json'
            }
        }

    def _setup_logger(self):
        """Configure loguru logger"""
        logger.remove()
        logger.configure(extra={"name": "adops"})

        log_level = self.config.get('level', 'INFO')
        log_format = self.config.get('format') or DEFAULT_FORMAT

        console_config = self.config.get('console', {})
        if console_config.get('enabled', True):
            logger.add(
                sys.stderr,
                format=log_format,
                level=log_level,
                colorize=console_config.get('colorize', True),
                backtrace=True,
                diagnose=False
            )

        file_config = self.config.get('file', {})
        if file_config.get('enabled', False):
            log_path = Path(file_config.get('path', './logs/adops.log'))
            log_path.parent.mkdir(parents=True, exist_ok=True)

            logger.add(
                log_path,
                format=log_format,
                level=log_level,
                rotation=file_config.get('rotation', '50 MB'),
                retention=file_config.get('retention', '14 days'),
                compression=file_config.get('compression', 'zip'),
                backtrace=True,
                diagnose=False
            )

        error_config = self.config.get('error_file', {})
        if error_config.get('enabled', False):
            error_path = Path(error_config.get('path', './logs/errors.log'))
            error_path.parent.mkdir(parents=True, exist_ok=True)

            logger.add(
                error_path,
                format=log_format,
                level=error_config.get('level', 'ERROR'),
                rotation=error_config.get('rotation', '10 MB'),
                retention=error_config.get('retention', '30 days'),
                backtrace=True,
                diagnose=False
            )

        # JSON logging (for log aggregation systems)
        json_config = self.config.get('json', {})
        if json_config.get('enabled', False):
            json_path = Path(json_config.get('path', './logs/adops.json'))
            json_path.parent.mkdir(parents=True, exist_ok=True)

            logger.add(
                json_path,
                format="{message}",
                level=log_level,
                serialize=True,
                rotation=file_config.get('rotation', '50 MB'),
                retention=file_config.get('retention', '14 days')
            )

    def get_logger(self, name: Optional[str] = None):
        """
        Get a logger instance

        Args:
            name: Logger name (usually __name__)

        Returns:
            Configured logger instance
        """
        if name:
            return logger.bind(name=name)
        return logger


_logger_setup = None


def setup_logging(config: Optional[dict] = None):
    """
    Initialize logging system

    Args:
        config: Optional ``logging`` section overriding settings.yaml
    """
    global _logger_setup
    _logger_setup = LoggerSetup(config)
    logger.bind(name=__name__).debug("Logging system initialized")


def get_logger(name: Optional[str] = None):
    """
    Get a logger instance

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance

    Example:
        >>> from adops.utils.logger import get_logger
        >>> log = get_logger(__name__)
        >>> log.info("Coordinator started")
    """
    global _logger_setup
    if _logger_setup is None:
        setup_logging()
    return _logger_setup.get_logger(name)


def log_execution_time(func):
    """
    Decorator to log coroutine execution time

    Example:
        >>> @log_execution_time
        >>> async def fetch_creatives():
        >>>     ...
    """
    from functools import wraps
    import time

    @wraps(func)
    async def wrapper(*args, **kwargs):
        log = get_logger(func.__module__)
        start_time = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
            elapsed = time.perf_counter() - start_time
            log.debug(f"{func.__name__} executed in {elapsed:.3f}s")
            return result
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            log.warning(f"{func.__name__} failed after {elapsed:.3f}s: {e}")
            raise

    return wrapper
