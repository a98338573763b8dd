"""Central structured logger with JSON file output and custom handlers.

Provides the ``PublisherLogger`` class that writes structured log entries
to local JSON-lines files (via ``aiofiles``) and hands each entry to any
registered synchronous handler (``run.py`` uses one to mirror entries to
the stdlib ``logging`` console).  A lightweight in-memory ring buffer
allows fast ``get_recent()`` queries.

Log entries are never written to the article store: the scheduler keeps
no execution history beyond the article rows themselves.

Global helpers:
    - ``init_logger()``  -- create and register a singleton ``PublisherLogger``
    - ``get_logger()``   -- retrieve the singleton (raises if not initialised)
"""

import logging
import traceback
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import aiofiles

from blog_scheduler.logging.models import LogComponent, LogEntry, LogLevel
from blog_scheduler.utils import utc_now

_fallback = logging.getLogger(__name__)


class PublisherLogger:
    """Central logging system for the scheduler.

    Parameters:
        log_dir: Directory for log files (created if missing).
        min_level: Entries below this level are dropped entirely.
        max_recent: Size of the in-memory ring buffer.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        min_level: LogLevel = LogLevel.DEBUG,
        max_recent: int = 1000,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.min_level = min_level

        # Current context (set per driver tick)
        self._tick_id: Optional[str] = None
        self._article_id: Optional[str] = None

        # Log file paths
        self._main_log = self.log_dir / "scheduler.log"
        self._error_log = self.log_dir / "errors.log"
        self._debug_log = self.log_dir / "debug.log"

        # In-memory ring buffer for quick access
        self._recent_logs: List[LogEntry] = []
        self._max_recent = max_recent

        # Custom handlers registered via add_handler()
        self._handlers: List[Callable[[LogEntry], None]] = []

    # ------------------------------------------------------------------
    # Context management
    # ------------------------------------------------------------------

    def set_context(
        self, tick_id: Optional[str] = None, article_id: Optional[str] = None
    ) -> None:
        """Set context for subsequent log entries."""
        if tick_id is not None:
            self._tick_id = tick_id
        if article_id is not None:
            self._article_id = article_id

    def clear_context(self) -> None:
        """Clear logging context."""
        self._tick_id = None
        self._article_id = None

    # ------------------------------------------------------------------
    # Custom handler registration
    # ------------------------------------------------------------------

    def add_handler(self, handler: Callable[[LogEntry], None]) -> None:
        """Register a custom synchronous log handler."""
        self._handlers.append(handler)

    # ------------------------------------------------------------------
    # Core log method
    # ------------------------------------------------------------------

    async def log(
        self,
        level: LogLevel,
        component: LogComponent,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        duration_ms: Optional[int] = None,
        article_id: Optional[Any] = None,
    ) -> None:
        """Log a structured message.

        Writes to the JSON files and invokes registered handlers.
        ``article_id`` overrides the context value for this entry only.
        """
        if level.value < self.min_level.value:
            return

        entry = LogEntry(
            timestamp=utc_now(),
            level=level,
            component=component,
            message=message,
            tick_id=self._tick_id,
            article_id=str(article_id) if article_id is not None else self._article_id,
            data=data or {},
            duration_ms=duration_ms,
        )

        if error is not None:
            entry.error_type = type(error).__name__
            entry.error_traceback = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )

        # Append to ring buffer
        self._recent_logs.append(entry)
        if len(self._recent_logs) > self._max_recent:
            self._recent_logs.pop(0)

        # Write to file (awaited so file I/O completes before return)
        await self._write_to_file(entry)

        for handler in self._handlers:
            try:
                handler(entry)
            except Exception:
                # A broken handler must not break logging
                _fallback.exception("Log handler %r failed", handler)

    # ------------------------------------------------------------------
    # Convenience methods
    # ------------------------------------------------------------------

    async def debug(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> None:
        """Log at DEBUG level."""
        await self.log(LogLevel.DEBUG, component, message, **kwargs)

    async def info(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> None:
        """Log at INFO level."""
        await self.log(LogLevel.INFO, component, message, **kwargs)

    async def warning(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> None:
        """Log at WARNING level."""
        await self.log(LogLevel.WARNING, component, message, **kwargs)

    async def error(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> None:
        """Log at ERROR level."""
        await self.log(LogLevel.ERROR, component, message, **kwargs)

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_recent(
        self,
        limit: int = 20,
        level: Optional[LogLevel] = None,
        component: Optional[LogComponent] = None,
        tick_id: Optional[str] = None,
    ) -> List[LogEntry]:
        """Return recent logs from the in-memory ring buffer.

        Filters are applied in-memory (fast, no I/O).
        """
        logs = self._recent_logs.copy()

        if level is not None:
            logs = [entry for entry in logs if entry.level == level]
        if component is not None:
            logs = [entry for entry in logs if entry.component == component]
        if tick_id is not None:
            logs = [entry for entry in logs if entry.tick_id == tick_id]

        return logs[-limit:]

    # ------------------------------------------------------------------
    # Private output methods
    # ------------------------------------------------------------------

    async def _write_to_file(self, entry: LogEntry) -> None:
        """Write log entry to JSON log files using async I/O.

        - ``scheduler.log`` -- all entries
        - ``errors.log``    -- ERROR and CRITICAL only
        - ``debug.log``     -- DEBUG only
        """
        json_line = entry.to_json() + "\n"

        async with aiofiles.open(self._main_log, "a", encoding="utf-8") as f:
            await f.write(json_line)

        if entry.level.value >= LogLevel.ERROR.value:
            async with aiofiles.open(self._error_log, "a", encoding="utf-8") as f:
                await f.write(json_line)

        if entry.level == LogLevel.DEBUG:
            async with aiofiles.open(self._debug_log, "a", encoding="utf-8") as f:
                await f.write(json_line)


# ======================================================================
# STDLIB BRIDGE
# ======================================================================


def stdlib_handler(entry: LogEntry) -> None:
    """Mirror a structured entry to the stdlib ``logging`` tree.

    Registered by the entry point so operators see scheduler activity on the
    console.  The logger name is ``blog_scheduler.<component>``.
    """
    std_logger = logging.getLogger(f"blog_scheduler.{entry.component.value}")
    suffix = f" {entry.data}" if entry.data else ""
    std_logger.log(entry.level.value, "%s%s", entry.message, suffix)


# ======================================================================
# GLOBAL LOGGER SINGLETON
# ======================================================================

_logger: Optional[PublisherLogger] = None


def init_logger(
    log_dir: str = "logs",
    min_level: LogLevel = LogLevel.DEBUG,
) -> PublisherLogger:
    """Initialise and register the global ``PublisherLogger`` singleton.

    Returns the newly created logger instance.
    """
    global _logger
    _logger = PublisherLogger(log_dir=log_dir, min_level=min_level)
    return _logger


def get_logger() -> PublisherLogger:
    """Retrieve the global ``PublisherLogger`` singleton.

    Raises:
        RuntimeError: If ``init_logger()`` has not been called yet.
    """
    if _logger is None:
        raise RuntimeError("Logger not initialized. Call init_logger() first.")
    return _logger
