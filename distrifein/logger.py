"""Timestamped, thread-safe logging to standard output or a file."""

from __future__ import annotations

import os
import sys
import threading
from datetime import datetime
from typing import IO


class Logger:
    """Writes timestamped lines to stdout, or to a file once one is set."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._file: IO[str] | None = None

    def log(self, message: str) -> None:
        """Write one line prefixed with the local time to the millisecond."""
        now = datetime.now()
        line = f"[{now:%Y-%m-%d %H:%M:%S}.{now.microsecond // 1000:03d}] {message}"
        with self._lock:
            if self._file is not None and not self._file.closed:
                self._file.write(line + "\n")
                self._file.flush()
            else:
                print(line, file=sys.stdout, flush=True)

    def set_output_file(self, filename: str | os.PathLike[str]) -> None:
        """Append further lines to the file; if it cannot be opened, keep the current output."""
        with self._lock:
            try:
                handle = open(filename, "a", encoding="utf-8")
            except OSError:
                return
            if self._file is not None:
                self._file.close()
            self._file = handle

    def close(self) -> None:
        """Close the output file, if any, and return to standard output."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


_instance = Logger()


def get_logger() -> Logger:
    """Return the process-wide logger."""
    return _instance