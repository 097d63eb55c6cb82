class LogStorageStrategy:
    """
    Interface for Logger sinks.

    Subclasses implement store_log and flush_logs; close is optional and
    is called when Logger swaps the sink out.
    """

    def store_log(self, message, priority, timestamp):
        """
        Persist one entry.

        Args:
            message (str): Log text.
            priority (str): Priority name, e.g. "INFO".
            timestamp (str): Formatted wall-clock time.

        Raises:
            NotImplementedError: Always, in the base class.
        """
        raise NotImplementedError()

    def flush_logs(self):
        """Discard or push out buffered entries (sink-specific)."""
        raise NotImplementedError()

    def close(self):
        pass
