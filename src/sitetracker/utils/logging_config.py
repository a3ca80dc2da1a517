"""
Centralized logging configuration for the site tracker.
Provides component-specific loggers with optional per-component log files.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import get_config


DETAILED_FORMAT = (
    '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s'
)
SIMPLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class ComponentLogger:
    """Manages component-specific logging."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None
    _to_file = False

    # Component definitions with their log levels
    COMPONENTS = {
        'auth': {'level': logging.INFO, 'file': 'auth.log'},
        'registry': {'level': logging.INFO, 'file': 'registry.log'},
        'database': {'level': logging.INFO, 'file': 'database.log'},
        'main': {'level': logging.INFO, 'file': 'main.log'},
        'error': {'level': logging.ERROR, 'file': 'errors.log'},  # Centralized error log
    }

    @classmethod
    def initialize(cls, log_dir: Optional[str] = None, debug: Optional[bool] = None) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components. Defaults to config.app.debug
        """
        if cls._initialized:
            return

        config = get_config()
        if debug is None:
            debug = config.app.debug
        cls._to_file = config.app.log_to_file or log_dir is not None

        if cls._to_file:
            cls._log_dir = Path(log_dir or config.app.log_dir)
            cls._log_dir.mkdir(parents=True, exist_ok=True)

        base_level = logging.DEBUG if debug else logging.getLevelName(config.app.log_level)

        for component_name, component_config in cls.COMPONENTS.items():
            level = logging.DEBUG if debug else max(component_config['level'], base_level)
            cls._build_logger(component_name, level, component_config['file'])

        # Mark as initialized before logging to avoid recursion
        cls._initialized = True

        cls._loggers['main'].debug(
            "Logging initialized",
            extra={"log_dir": str(cls._log_dir) if cls._log_dir else None, "debug": debug},
        )

    @classmethod
    def _build_logger(cls, component: str, level: int, filename: str) -> logging.Logger:
        logger = logging.getLogger(f"sitetracker.{component}")

        # Clear existing handlers
        logger.handlers.clear()
        logger.setLevel(level)
        # Propagate so pytest caplog and host applications still see records
        logger.propagate = True

        if cls._to_file and cls._log_dir is not None:
            file_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / filename,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            logger.addHandler(file_handler)

        if component == 'error':
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.ERROR)
            console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt='%H:%M:%S'))
            logger.addHandler(console_handler)

        cls._loggers[component] = logger
        return logger

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (auth, registry, database, ...)
                      Can also be a module path like 'sitetracker.auth.resolver'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        if component.startswith('sitetracker.'):
            parts = component.split('.')
            if len(parts) >= 2 and parts[1] == 'auth':
                component = 'auth'
            elif len(parts) >= 2 and parts[1] in ('db', 'store', 'repositories'):
                component = 'database'
            elif len(parts) >= 2 and parts[1] in ('services', 'domain'):
                component = 'registry'
            else:
                component = 'main'

        if component not in cls._loggers:
            level = cls._loggers['main'].level
            cls._build_logger(component, level, f'{component}.log')

        return cls._loggers[component]

    @classmethod
    def log_exception(cls, component: str, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        component_logger = cls.get_logger(component)
        error_logger = cls.get_logger('error')

        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        exc_info = (type(exc), exc, exc.__traceback__)
        component_logger.error(
            f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}", exc_info=exc_info
        )
        error_logger.error(f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc_info)

    @classmethod
    def reset(cls) -> None:
        """Drop configured handlers so the next call re-initializes."""
        for logger in cls._loggers.values():
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
        cls._loggers = {}
        cls._initialized = False
        cls._log_dir = None
        cls._to_file = False


# Convenience functions
def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def log_exception(component: str, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)

