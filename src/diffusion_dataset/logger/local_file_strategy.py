import os
from datetime import datetime

from .log_storage_strategy import LogStorageStrategy


class LocalFileStrategy(LogStorageStrategy):
    """
    Text-file sink, one line per entry: "[timestamp] [PRIORITY] message".
    """

    def __init__(self, file_location, append=False):
        """
        Args:
            file_location (str | PathLike): Log file; relative paths resolve
                against the current working directory. Parent directories
                are created.
            append (bool): Keep existing entries instead of starting a
                fresh file.
        """
        self.file_location = self._resolve(file_location)
        self.append = append
        self._write_header("LOG INITIALIZATION", mode="a" if append else "w")

    @staticmethod
    def _resolve(file_location):
        path = os.path.abspath(os.fspath(file_location))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        return path

    def _write_header(self, label, mode):
        with open(self.file_location, mode, encoding="utf-8") as log_file:
            log_file.write(f"{label}: {datetime.now()}\n")

    def store_log(self, message, priority, timestamp):
        with open(self.file_location, "a", encoding="utf-8") as log_file:
            log_file.write(f"[{timestamp}] [{priority}] {message}\n")

    # TRUNCATE: previous entries are discarded
    def flush_logs(self):
        self._write_header("LOG FLUSHED", mode="w")
