"""Append-only log file with size-based rollover and timestamped backups."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

LOG_FILE_NAME = "myapp.log"
LOG_DIR = "logs"
MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_BACKUP_FILES = 5

START_BANNER = (
    "/0|----------------------------------START-OF-PROGRAM"
    "----------------------------------|0\\"
)
END_BANNER = (
    "\\0|-----------------------------------END--OF-PROGRAM"
    "----------------------------------|0/"
)

# Log files that already got their start banner in this process.
_started: set[Path] = set()


def _level_name(level: int) -> str:
    if level <= logging.DEBUG:
        return "DEBUG"
    if level <= logging.INFO:
        return "INFO"
    if level <= logging.WARNING:
        return "WARNING"
    if level <= logging.CRITICAL:
        return "CRITICAL"
    return "FATAL"


def format_message(level: int, msg: str, when: datetime | None = None) -> str:
    """Render a log line as "<date> <time> <LEVEL> <message>"."""
    when = datetime.now() if when is None else when
    return f"{when:%Y-%m-%d %H:%M:%S} {_level_name(level)} {msg}"


class Logger:
    """Writes lines to a log file, rolling it over when it grows too large."""

    def __init__(
        self,
        log_dir: str | Path = LOG_DIR,
        file_name: str = LOG_FILE_NAME,
        max_file_size: int = MAX_FILE_SIZE,
        max_backup_files: int = MAX_BACKUP_FILES,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.file_name = file_name
        self.max_file_size = max_file_size
        self.max_backup_files = max_backup_files
        self._init_log_file()

    @property
    def path(self) -> Path:
        return self.log_dir / self.file_name

    def _init_log_file(self) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.path.touch()
        key = self.path.resolve()
        if key not in _started:
            _started.add(key)
            self.log_message(START_BANNER)

    def log_message(self, msg: str) -> None:
        """Append a line, rolling the file over first if it is too large."""
        if self.path.exists() and self.path.stat().st_size > self.max_file_size:
            self._roll_over()
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(msg + "\n")

    def clean_up(self) -> None:
        """Write the end-of-program banner."""
        self.log_message(END_BANNER)

    def backup_file_path(self) -> Path:
        """Path a backup made now would get."""
        stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        return self.log_dir / f"{self.file_name}_{stamp}.bak"

    def _backups(self) -> list[Path]:
        return sorted(self.log_dir.glob(f"{self.file_name}_*.bak"), key=lambda p: p.name)

    def _remove_oldest_backup(self) -> None:
        backups = self._backups()
        if len(backups) >= self.max_backup_files:
            backups[0].unlink(missing_ok=True)

    def _roll_over(self) -> None:
        backup = self.backup_file_path()
        self._remove_oldest_backup()
        if not backup.exists():
            self.path.rename(backup)
        self._init_log_file()


class RollingFileHandler(logging.Handler):
    """A logging handler that forwards formatted records to a Logger."""

    def __init__(self, logger: Logger | None = None) -> None:
        super().__init__()
        self.logger = Logger() if logger is None else logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = format_message(
                record.levelno,
                record.getMessage(),
                datetime.fromtimestamp(record.created),
            )
            self.logger.log_message(line)
        except Exception:
            self.handleError(record)