import logging
import logging.handlers
from pathlib import Path
import traceback
from datetime import datetime

from demand_transfer.config import config

APP_LOGGER_NAME = 'demand_transfer'

class Logger:
    """Logging manager for the Demand Transfer tool.

    Importing the package attaches no handlers; package loggers propagate to
    the root logger, which the command line configures through
    configure_root_logger().
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the logger if not already initialized."""
        if self._initialized:
            return

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])
        self._root_handlers = []

        # Package logger, parent of every module level logger
        self._app_logger = self.get_logger(APP_LOGGER_NAME)

        self._initialized = True

    def _level(self):
        level_name = self._log_config['level'].upper()
        return getattr(logging, level_name, logging.INFO)

    def configure_root_logger(self):
        """Attach the configured console and file handlers to the root logger.

        Handlers added by an earlier call are replaced; handlers installed by
        anyone else are left alone.

        Returns:
            Handlers now attached by this manager
        """
        root_logger = logging.getLogger()
        root_logger.setLevel(self._level())

        self.reset_root_logger()

        formatter = logging.Formatter(self._log_config['format'])

        if self._log_config['file_output']:
            if not self._log_dir.exists():
                self._log_dir.mkdir(parents=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_dir / f"{APP_LOGGER_NAME}.log",
                maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
                backupCount=self._log_config['backup_count']
            )
            file_handler.setFormatter(formatter)
            self._root_handlers.append(file_handler)

        if self._log_config['console_output']:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            self._root_handlers.append(console_handler)

        for handler in self._root_handlers:
            root_logger.addHandler(handler)

        return list(self._root_handlers)

    def reset_root_logger(self):
        """Detach the handlers added by configure_root_logger()."""
        root_logger = logging.getLogger()
        for handler in self._root_handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._root_handlers = []

    def get_logger(self, name):
        """Get a logger with the specified name.

        Args:
            name: Name of the logger

        Returns:
            Logger that propagates to the root logger
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(name)
        self._loggers[name] = logger
        return logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with stack trace.

        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        logger = self.get_logger(logger_name)

        if message:
            logger.error(f"{message}: {str(exception)}")
        else:
            logger.error(str(exception))

        logger.error(traceback.format_exc())

    @property
    def app_logger(self):
        """Get the application logger."""
        return self._app_logger

    def operation_start_log(self, operation_name, additional_info=None):
        """Log the start of an engine operation.

        Args:
            operation_name: Name of the operation
            additional_info: Optional additional information

        Returns:
            Dictionary with operation logging information
        """
        start_time = datetime.now()

        log_info = {
            'operation_name': operation_name,
            'start_time': start_time,
            'additional_info': additional_info
        }

        self._app_logger.info(f"Starting {operation_name}")
        if additional_info:
            self._app_logger.debug(f"Operation info: {additional_info}")

        return log_info

    def operation_end_log(self, log_info, success=True, result_info=None):
        """Log the end of an engine operation.

        Args:
            log_info: Dictionary returned by operation_start_log
            success: Whether the operation succeeded
            result_info: Optional result information
        """
        end_time = datetime.now()

        operation_name = log_info.get('operation_name', 'Unknown')
        start_time = log_info.get('start_time', end_time)
        duration = end_time - start_time

        if success:
            self._app_logger.info(f"Completed {operation_name} in {duration}")
        else:
            self._app_logger.error(f"Failed {operation_name} after {duration}")

        if result_info:
            self._app_logger.info(f"Results: {result_info}")

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)

def configure_root_logger():
    """Attach the configured handlers to the root logger."""
    return logger.configure_root_logger()
