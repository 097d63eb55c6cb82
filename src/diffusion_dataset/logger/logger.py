import os
import threading
from datetime import datetime
from enum import Enum

from .local_file_strategy import LocalFileStrategy
from .stream_strategy import StreamStrategy


LOG_PATH_ENV = "DIFFUSION_DATASET_LOG_PATH"
DEFAULT_LOG_PATH = "/tmp/diffusion_dataset_logs.txt"


class Logger:
    """
    Process-wide logger for dataset generation.

    Static class: all state lives on the class. Until a storage strategy
    is set every call is a no-op, so importing the library never creates
    files.
    """

    class LogPriority(Enum):
        DEBUG = 1
        INFO = 2
        WARNING = 3
        ERROR = 4
        CRITICAL = 5

    is_logging_enabled = True
    log_storage_strategy = None
    min_priority = LogPriority.DEBUG
    _lock = threading.RLock()

    # DEFAULT FILE SINK
    @classmethod
    def initialize(cls):
        """
        Install a file sink at $DIFFUSION_DATASET_LOG_PATH unless a
        strategy is already configured.
        """
        with cls._lock:
            if cls.log_storage_strategy is not None:
                return
            file_location = os.getenv(LOG_PATH_ENV, DEFAULT_LOG_PATH)
            cls.set_log_storage_strategy(LocalFileStrategy(file_location))
        cls.log(f"Logger initialized with default file storage at {file_location}.")

    # SINK SELECTION FROM CLI FLAGS
    @classmethod
    def configure(cls, verbose=False, quiet=False):
        """
        Pick the sink for a command-line run.

        verbose streams every entry to stderr; quiet keeps the file sink
        but drops DEBUG entries.
        """
        if verbose:
            cls.set_log_storage_strategy(StreamStrategy())
        else:
            cls.initialize()
        if quiet and not verbose:
            cls.set_min_priority(cls.LogPriority.INFO)

    @classmethod
    def _coerce_priority(cls, priority):
        if isinstance(priority, cls.LogPriority):
            return priority
        return cls.LogPriority[str(priority).upper()]

    # LOG WITH MESSAGE AND PRIORITY
    @classmethod
    def log(cls, message, priority=LogPriority.DEBUG):
        """
        Store a message through the active strategy.

        Args:
            message (str): Log text.
            priority (LogPriority | str): Level, as enum member or name
                ("info", "WARNING", ...). Defaults to DEBUG.
        """
        priority = cls._coerce_priority(priority)
        if priority.value < cls.min_priority.value:
            return
        with cls._lock:
            if cls.is_logging_enabled and cls.log_storage_strategy:
                cls.log_storage_strategy.store_log(
                    message, priority.name, datetime.now().strftime("%Y-%m-%d %H:%M:%S")
                )

    @classmethod
    def set_log_storage_strategy(cls, log_storage_strategy):
        with cls._lock:
            previous, cls.log_storage_strategy = cls.log_storage_strategy, log_storage_strategy
        if previous is not None and previous is not log_storage_strategy:
            previous.close()

    @classmethod
    def set_min_priority(cls, priority):
        cls.min_priority = cls._coerce_priority(priority)

    @classmethod
    def flush_logs(cls):
        with cls._lock:
            if cls.is_logging_enabled and cls.log_storage_strategy:
                cls.log_storage_strategy.flush_logs()

    @classmethod
    def disable_logging(cls):
        cls.log("Logging disabled")
        cls.is_logging_enabled = False

    @classmethod
    def enable_logging(cls):
        cls.is_logging_enabled = True
        cls.log("Logging enabled")

    # BACK TO UNCONFIGURED STATE
    @classmethod
    def reset(cls):
        """Drop the strategy and restore defaults (between runs and in tests)."""
        cls.set_log_storage_strategy(None)
        cls.is_logging_enabled = True
        cls.min_priority = cls.LogPriority.DEBUG
