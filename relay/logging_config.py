import datetime
import logging
from pathlib import Path
from typing import Optional, TextIO
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .settings import settings


APP_LOGGER_NAME = "relay"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

_LOGGING_CONFIGURED = False


class LocalTimezoneFormatter(logging.Formatter):
    """
    Renders record timestamps in LOG_TIMEZONE, or in the system local
    timezone when that is unset or unknown.
    """

    def __init__(self, *args, timezone_name: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.tzinfo = self._resolve_tzinfo(timezone_name)

    @staticmethod
    def _resolve_tzinfo(timezone_name: str | None) -> datetime.tzinfo:
        if timezone_name:
            try:
                return ZoneInfo(timezone_name)
            except ZoneInfoNotFoundError:
                pass
        return datetime.datetime.now().astimezone().tzinfo or datetime.timezone.utc

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.datetime.fromtimestamp(record.created, tz=self.tzinfo)
        return dt.strftime(datefmt) if datefmt else dt.isoformat(timespec="milliseconds")


class DailyFileHandler(logging.Handler):
    """
    One file per calendar day, <log_dir>/<prefix>-YYYY-MM-DD.log. Only the
    newest `retention_days` files are kept.
    """

    def __init__(
        self,
        log_dir: Path,
        prefix: str = APP_LOGGER_NAME,
        retention_days: int = 7,
    ) -> None:
        super().__init__()
        self.log_dir = Path(log_dir)
        self.prefix = prefix
        self.retention_days = retention_days
        self._day: Optional[datetime.date] = None
        self._stream: Optional[TextIO] = None

    def path_for(self, day: datetime.date) -> Path:
        return self.log_dir / f"{self.prefix}-{day.isoformat()}.log"

    def _prune(self) -> None:
        if self.retention_days <= 0:
            return
        files = sorted(self.log_dir.glob(f"{self.prefix}-*.log"))
        for stale in files[: max(0, len(files) - self.retention_days)]:
            try:
                stale.unlink()
            except OSError:
                pass

    def _open_for_today(self) -> TextIO:
        today = datetime.date.today()
        if self._stream is not None and self._day == today:
            return self._stream

        self._close_stream()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._day = today
        self._stream = open(self.path_for(today), "a", encoding="utf-8")
        self._prune()
        return self._stream

    def _close_stream(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.close()
        except OSError:
            pass
        self._stream = None

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            stream = self._open_for_today()
            stream.write(line + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            self._close_stream()
        finally:
            super().close()


def setup_logging() -> None:
    """
    Configure process logging once.

    "relay" records go to the daily file under LOG_DIR; the root logger
    gets a console handler so uvicorn and relay output show up in the
    terminal.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    formatter = LocalTimezoneFormatter(LOG_FORMAT, timezone_name=settings.log_timezone)

    file_handler = DailyFileHandler(
        Path(settings.log_dir), retention_days=settings.log_retention_days
    )
    file_handler.setFormatter(formatter)
    file_handler.addFilter(lambda record: record.name.startswith(APP_LOGGER_NAME))

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(level)
    app_logger.propagate = True
    app_logger.addHandler(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root_logger.handlers
    )
    if not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _LOGGING_CONFIGURED = True


logger = logging.getLogger(APP_LOGGER_NAME)
