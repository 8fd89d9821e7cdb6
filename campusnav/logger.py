"""Logging module for Campus Navigator."""

import json
import time
from datetime import datetime
from typing import Optional, Callable


class Logger:
    """Timestamped structured log lines to stdout, an optional file and a callback.

    Each line carries the seconds since the logger was created so a log can be
    lined up against a recorded GPS trace's `elapsed` values.
    """

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.started = time.time()
        self.file = open(log_path, "a") if log_path else None
        if self.file:
            self.file.write(f"\n{'='*60}\n")
            self.file.write(f"Campus Navigator Log - {datetime.now().isoformat()}\n")
            self.file.write(f"{'='*60}\n\n")
            self.file.flush()

    def format(self, message: str, data: Optional[dict] = None) -> str:
        elapsed = time.time() - self.started
        line = f"[{datetime.now().isoformat()} +{elapsed:.1f}s] {message}"
        if data:
            line += f" | {json.dumps(data, default=str)}"
        return line

    def log(self, message: str, data: Optional[dict] = None):
        """Log a message with optional structured data"""
        line = self.format(message, data)
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)

    def log_error(self, message: str, error: Exception, data: Optional[dict] = None):
        """Log an exception with its type, and its sensor code when it has one"""
        details = {"error": type(error).__name__, "message": str(error)}
        code = getattr(error, "code", None)
        if code:
            details["code"] = code
        if data:
            details.update(data)
        self.log(message, details)

    def close(self):
        if self.file:
            self.file.close()
            self.file = None

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
