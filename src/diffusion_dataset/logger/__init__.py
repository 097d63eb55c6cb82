from .logger import Logger
from .log_storage_strategy import LogStorageStrategy
from .local_file_strategy import LocalFileStrategy
from .stream_strategy import StreamStrategy

__all__ = ["Logger", "LogStorageStrategy", "LocalFileStrategy", "StreamStrategy"]
