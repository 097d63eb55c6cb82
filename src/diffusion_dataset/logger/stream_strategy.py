import sys

from .log_storage_strategy import LogStorageStrategy


class StreamStrategy(LogStorageStrategy):
    """
    Writes log entries to a text stream (stderr by default).
    """

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stderr

    def store_log(self, message, priority, timestamp):
        self.stream.write(f"[{timestamp}] [{priority}] {message}\n")

    # Nothing is retained; flushing only pushes buffered text out.
    def flush_logs(self):
        self.stream.flush()
