"""Structured logging infrastructure: console/file setup and the append-only run log."""

import copy
import logging
import logging.handlers
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import colorlog

from models import LogEntry, LogLevel

LOGGER_NAME = 'public_folder_migrator'

# Sits between INFO (20) and WARNING (30)
SUCCESS = 25
logging.addLevelName(SUCCESS, 'SUCCESS')

_STDLIB_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: SUCCESS,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Set up console and optional file logging.

    Args:
        verbosity: Verbosity level (0=INFO, 1+=DEBUG)
        log_file: Optional path to log file
        log_format: Optional custom log format string
        date_format: Optional custom date format string
        level: Optional explicit log level string

    Returns:
        Configured logger instance
    """
    if level:
        allowed_levels = {"DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        level_upper = level.upper()
        if level_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{level}'. Must be one of: {sorted(allowed_levels)}"
            )
        log_level = logging.getLevelName(level_upper)
    else:
        # The run log is the operator's console, so INFO is the floor
        log_level = logging.DEBUG if verbosity >= 1 else logging.INFO

    if log_format is None:
        log_format = '%(asctime)s [%(levelname)s] %(message)s'

    if date_format is None:
        date_format = '%Y-%m-%d %H:%M:%S'

    # Keep dependencies (urllib3, requests) quiet unless asked
    logging.basicConfig(level=logging.WARNING, format=log_format, datefmt=date_format)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'white',
            'SUCCESS': 'bold_green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)
            logger.debug(f"Logging to file: {log_file}")
        except OSError as e:
            logger.warning(f"Failed to set up file logging: {str(e)}")

    return logger


class RunLog:
    """Append-only record of everything that happened during one migration run.

    Every stage receives the same RunLog and writes to it; the report reads
    an immutable snapshot of it. Entries are never removed or reordered, and
    each one is mirrored to the console logger as it is recorded.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize an empty run log.

        Args:
            logger: Logger that receives a mirrored copy of every entry
            clock: Source of entry timestamps
        """
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self._clock = clock
        self._entries: List[LogEntry] = []
        self._warning_count = 0
        self._error_count = 0

    def record(self, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        """
        Append an entry stamped with the current time.

        Args:
            message: Human-readable event description
            level: Entry severity

        Returns:
            The recorded entry
        """
        timestamp = self._clock()
        if self._entries and timestamp < self._entries[-1].timestamp:
            # Wall clock stepped backwards; keep the sequence non-decreasing
            timestamp = self._entries[-1].timestamp

        entry = LogEntry(timestamp=timestamp, level=level, message=message)
        self._entries.append(entry)

        if level is LogLevel.WARNING:
            self._warning_count += 1
        elif level is LogLevel.ERROR:
            self._error_count += 1

        self.logger.log(_STDLIB_LEVELS[level], message)
        return entry

    def info(self, message: str) -> LogEntry:
        return self.record(message, LogLevel.INFO)

    def warning(self, message: str) -> LogEntry:
        return self.record(message, LogLevel.WARNING)

    def error(self, message: str) -> LogEntry:
        return self.record(message, LogLevel.ERROR)

    def success(self, message: str) -> LogEntry:
        return self.record(message, LogLevel.SUCCESS)

    def snapshot(self) -> Tuple[LogEntry, ...]:
        """Return an immutable, ordered copy of all entries so far."""
        return tuple(self._entries)

    @property
    def warning_count(self) -> int:
        return self._warning_count

    @property
    def error_count(self) -> int:
        return self._error_count

    def __len__(self) -> int:
        return len(self._entries)


def log_section(title: str, run_log: Optional[RunLog] = None) -> None:
    """
    Log a decorative section header.

    Args:
        title: Section title to display
        run_log: When given, the header is recorded in the run log as well
    """
    separator = "=" * 60
    if run_log is not None:
        run_log.info(f"--- {title} ---")
        return

    logger = logging.getLogger(LOGGER_NAME)
    logger.info(separator)
    logger.info(f"  {title.upper()}")
    logger.info(separator)


def log_config(config: Dict[str, Any]) -> None:
    """
    Log sanitized configuration for debugging.

    Args:
        config: Configuration dictionary to log
    """
    logger = logging.getLogger(LOGGER_NAME)

    sanitized_config = _sanitize_config(config)

    log_section("Configuration")

    source = sanitized_config.get('source', {})
    logger.info(f"Source Base URL: {source.get('base_url', 'Not Set')}")
    logger.info(f"Source Authentication: {source.get('auth_type', 'basic')}")
    if source.get('username'):
        logger.info(f"Source Username: {source.get('username')}")
    if source.get('password'):
        logger.info(f"Source Password: {source.get('password')}")

    destination = sanitized_config.get('destination', {})
    logger.info(f"Destination Base URL: {destination.get('base_url', 'Not Set')}")
    logger.info(
        f"Destination Sign-in: {'static token' if destination.get('access_token') else 'client credentials'}"
    )
    if destination.get('client_id'):
        logger.info(f"Client ID: {destination.get('client_id')}")
    if destination.get('client_secret'):
        logger.info(f"Client Secret: {destination.get('client_secret')}")

    migration = sanitized_config.get('migration', {})
    logger.info(f"Batch Label: {migration.get('batch_label') or 'Generated'}")
    logger.info(f"Dry Run: {migration.get('dry_run', False)}")
    logger.info(f"Top Folders Shown: {migration.get('top_n', 10)}")

    report = sanitized_config.get('report', {})
    logger.info(f"Report Directory: {report.get('output_directory', '.')}")
    logger.info(f"Fallback Directory: {report.get('fallback_directory') or 'System temp'}")


def _sanitize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a sanitized copy of configuration with sensitive fields masked.

    Args:
        config: Configuration dictionary

    Returns:
        Sanitized configuration copy
    """
    sanitized = copy.deepcopy(config)

    sensitive_fields = {
        'password', 'secret', 'api_token', 'access_token', 'auth_header'
    }

    def mask_sensitive(data: Any) -> Any:
        """Recursively mask sensitive fields."""
        if isinstance(data, dict):
            masked = {}
            for key, value in data.items():
                is_sensitive = any(sensitive in key.lower() for sensitive in sensitive_fields)
                if is_sensitive and isinstance(value, str) and value:
                    masked[key] = "***REDACTED***"
                else:
                    masked[key] = mask_sensitive(value)
            return masked
        elif isinstance(data, list):
            return [mask_sensitive(item) for item in data]
        else:
            return data

    return mask_sensitive(sanitized)


__all__ = [
    'SUCCESS',
    'LOGGER_NAME',
    'setup_logging',
    'RunLog',
    'log_section',
    'log_config'
]
